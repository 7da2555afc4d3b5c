"""
Kiosk photo-booth core.

This package contains the components responsible for:
- Pulling frames from a camera device (camera)
- Driving the preview lifecycle through a small state machine (fsm)
- Rendering adjusted / filtered preview frames and extracting stills (pipeline)
- Laying captured stills out on a print page and merging frame overlays (composite)
- Persisting finished photos locally (storage)
"""

__version__ = "0.3.0"
