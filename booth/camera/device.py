"""Camera device back-ends.

Two back-ends are provided:

- opencv: any V4L2 / UVC webcam through ``cv2.VideoCapture``
- picamera2: the Raspberry Pi camera stack, when Picamera2 is installed

Both expose the same small stream handle: ``native_width`` / ``native_height``
(``None`` until the first frame arrives), ``read()`` returning an RGBA frame
or ``None``, ``close()`` and ``blocking_reads``.
"""

from typing import Any, Dict, Optional, Protocol, Tuple, TYPE_CHECKING

import cv2
import numpy as np
from loguru import logger

from booth.config import CameraConfig
from booth.errors import DeviceUnavailable
from booth.raster import ensure_rgba

try:
    from picamera2 import Picamera2
except Exception:
    Picamera2 = None

if TYPE_CHECKING:
    from picamera2 import Picamera2 as Picamera2Type
else:
    Picamera2Type = Any


DEFAULT_PREVIEW_CONTROLS: Dict[str, Any] = {
    "AeEnable": True,
    "AwbEnable": True,
    "Sharpness": 1.0,
}


class StreamHandle(Protocol):
    native_width: Optional[int]
    native_height: Optional[int]
    blocking_reads: bool

    def read(self) -> Optional[np.ndarray]: ...

    def close(self) -> None: ...


class _BaseStream:
    blocking_reads = True

    def __init__(self):
        self.native_width: Optional[int] = None
        self.native_height: Optional[int] = None

    def _track_size(self, frame: np.ndarray):
        h, w = frame.shape[:2]
        if (w, h) != (self.native_width, self.native_height):
            logger.info(f"Camera native resolution is {w}x{h}")
            self.native_width, self.native_height = w, h


class OpenCVStream(_BaseStream):
    """Webcam stream through ``cv2.VideoCapture`` (BGR frames)."""

    def __init__(self, device_index: int = 0, resolution: Tuple[int, int] = (1280, 720), fps: float = 30.0):
        super().__init__()
        self.device_index = device_index
        self.capture = cv2.VideoCapture(device_index)
        if not self.capture.isOpened():
            self.capture.release()
            raise DeviceUnavailable(f"No camera at index {device_index}")

        width, height = resolution
        self.capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self.capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        self.capture.set(cv2.CAP_PROP_FPS, fps)
        logger.info(f"OpenCV camera {device_index} opened (requested {width}x{height}@{fps})")

    def read(self) -> Optional[np.ndarray]:
        if self.capture is None:
            return None
        ok, frame = self.capture.read()
        if not ok or frame is None:
            return None
        self._track_size(frame)
        return ensure_rgba(frame, order="bgr")

    def close(self):
        if self.capture is not None:
            self.capture.release()
            self.capture = None
            logger.info(f"OpenCV camera {self.device_index} released")


class Picamera2Stream(_BaseStream):
    """Raspberry Pi camera preview stream (RGB888, which Picamera2 lays out as BGR)."""

    def __init__(self, resolution: Tuple[int, int] = (1280, 720), controls: Optional[Dict[str, Any]] = None):
        super().__init__()
        if Picamera2 is None:
            raise DeviceUnavailable("Picamera2 not available on this system")

        self.resolution = resolution
        try:
            self.picam: Optional[Picamera2Type] = Picamera2()
            config = self.picam.create_preview_configuration(
                main={"size": tuple(resolution), "format": "RGB888"}
            )
            self.picam.configure(config)
            self.picam.start()
        except Exception as e:
            logger.error(f"Failed to configure and start Picamera2: {e}")
            raise DeviceUnavailable(f"Picamera2 failed to start: {e}") from e

        logger.info(f"Picamera2 started in preview mode at {resolution[0]}x{resolution[1]}")
        self.apply_controls(controls)

    def apply_controls(self, overrides: Optional[Dict[str, Any]] = None):
        """Apply preview controls, skipping any the sensor does not expose."""
        controls: Dict[str, Any] = dict(DEFAULT_PREVIEW_CONTROLS)
        if overrides:
            controls.update(overrides)

        available = set(getattr(self.picam, "camera_controls", {}) or {})
        if available:
            unsupported = sorted(k for k in controls if k not in available)
            if unsupported:
                logger.warning(f"Skipping unsupported controls: {', '.join(unsupported)}")
            controls = {k: v for k, v in controls.items() if k in available}

        if not controls:
            return
        try:
            self.picam.set_controls(controls)
            logger.debug(f"Preview controls applied: {controls}")
        except Exception as exc:
            logger.warning(f"Failed to apply preview controls: {exc}")

    def read(self) -> Optional[np.ndarray]:
        if self.picam is None:
            return None
        try:
            frame = np.array(self.picam.capture_array())
        except Exception as e:
            logger.debug(f"Preview frame capture failed: {e}")
            return None
        self._track_size(frame)
        return ensure_rgba(frame, order="bgr")

    def close(self):
        if self.picam is not None:
            try:
                self.picam.stop()
                self.picam.close()
            except Exception as e:
                logger.debug(f"Picamera2 stop returned: {e} (may already be stopped)")
            self.picam = None
            logger.info("Picamera2 stopped")


def open_camera_stream(constraints: Optional[CameraConfig] = None) -> StreamHandle:
    """Open the configured camera. Raises :class:`DeviceUnavailable`."""
    constraints = constraints or CameraConfig()
    backend = constraints.backend.lower()

    if backend == "opencv":
        return OpenCVStream(constraints.device_index, constraints.resolution, constraints.fps)
    if backend == "picamera2":
        return Picamera2Stream(constraints.resolution)

    raise DeviceUnavailable(f"Unknown camera backend: {constraints.backend}")


def close_stream(stream: Optional[StreamHandle]):
    if stream is not None:
        stream.close()
