"""RasterFrame helpers.

A RasterFrame is an ``(H, W, 4)`` ``uint8`` numpy array in R,G,B,A order.
Camera back-ends deliver BGR (OpenCV) or RGB (Picamera2) arrays; everything
downstream of the device layer works on RGBA.
"""

from typing import Tuple

import cv2
import numpy as np

CHANNELS = 4


def new_frame(width: int, height: int, color: Tuple[int, int, int, int] = (255, 255, 255, 255)) -> np.ndarray:
    """Allocate a frame filled with a solid RGBA color."""
    frame = np.empty((height, width, CHANNELS), dtype=np.uint8)
    frame[...] = color
    return frame


def ensure_rgba(frame: np.ndarray, order: str = "rgb") -> np.ndarray:
    """
    Normalise gray / 3-channel / 4-channel arrays to an RGBA RasterFrame.

    :param order: Channel order of colour input, "rgb" or "bgr".
    """
    if frame is None or frame.size == 0:
        raise ValueError("Empty frame")

    if frame.dtype != np.uint8:
        frame = np.clip(frame, 0, 255).astype(np.uint8)

    if frame.ndim == 2:
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2RGBA)

    channels = frame.shape[2]
    if channels == 4:
        if order == "bgr":
            return cv2.cvtColor(frame, cv2.COLOR_BGRA2RGBA)
        return np.ascontiguousarray(frame)
    if channels == 3:
        code = cv2.COLOR_BGR2RGBA if order == "bgr" else cv2.COLOR_RGB2RGBA
        return cv2.cvtColor(frame, code)

    raise ValueError(f"Unsupported channel count: {channels}")


def clamp_to_uint8(values: np.ndarray) -> np.ndarray:
    """Round and clamp arithmetic results back into 8-bit channels."""
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)
