"""
Composite package for the photo booth.

This package contains the components responsible for:
- Describing the offered grids and their print pages (grid)
- DPI and cell geometry (geometry)
- Building grid / strip composites and merging frame overlays (engine)
- Discovering frame overlays and their thumbnails (catalog)
"""

from .catalog import NO_FRAME, FrameCatalog, FrameEntry
from .engine import (
    Alignment,
    CellPolicy,
    CompositeImage,
    FramedComposite,
    MergeMode,
    apply_frame,
    build_strip_composite,
    extract_strip,
    frame_preview,
    layout,
    merge_frame,
    merge_strip_frame,
)
from .grid import GRID_PRESETS, GridSpec, get_grid, page_size_for

__all__ = [
    "NO_FRAME",
    "FrameCatalog",
    "FrameEntry",
    "Alignment",
    "CellPolicy",
    "CompositeImage",
    "FramedComposite",
    "MergeMode",
    "apply_frame",
    "build_strip_composite",
    "extract_strip",
    "frame_preview",
    "layout",
    "merge_frame",
    "merge_strip_frame",
    "GRID_PRESETS",
    "GridSpec",
    "get_grid",
    "page_size_for",
]
