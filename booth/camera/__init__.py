from .device import (
    OpenCVStream,
    Picamera2Stream,
    StreamHandle,
    close_stream,
    open_camera_stream,
)

__all__ = [
    "OpenCVStream",
    "Picamera2Stream",
    "StreamHandle",
    "close_stream",
    "open_camera_stream",
]
