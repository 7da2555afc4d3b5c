import logging
import threading
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, Optional

import cv2
import numpy as np

from booth.camera import close_stream, open_camera_stream
from booth.config import CameraConfig
from booth.errors import DetectionUnavailable, DeviceUnavailable, FilterFailure
from booth.fsm import PipelineFSM
from booth.pipeline.adjustments import AdjustmentState, apply_linear_adjustments
from booth.pipeline.detection import DetectionResult, HaarFaceDetector
from booth.pipeline.filters import apply_filter, sharpen
from booth.pipeline.scheduler import TimerFrameScheduler
from booth.pipeline.session import CapturedPhoto

DEFAULT_DETECTION_STRIDE = 6


class CameraPipeline:
    """
    Orchestrates the live preview:
    - Controls the lifecycle FSM (idle -> starting -> running -> stopped)
    - Pulls frames from the camera stream
    - Applies linear adjustments, sharpening and the selected filter
    - Publishes the display frame that stills are captured from
    - Runs throttled, best-effort face detection off the render loop
    """

    def __init__(
        self,
        camera_config: Optional[CameraConfig] = None,
        stream_factory: Optional[Callable] = None,
        scheduler=None,
        detector=None,
        default_filter: str = "smooth_skin",
        adjustments: Optional[dict] = None,
        enable_face_detection: bool = True,
        detection_stride: int = DEFAULT_DETECTION_STRIDE,
        detection_executor: Optional[Executor] = None,
        startup_timeout: float = 5.0,
        on_face_detection: Optional[Callable[[bool], None]] = None,
    ):
        self.log = logging.getLogger("CameraPipeline")

        self.camera_config = camera_config or CameraConfig()
        self.stream_factory = stream_factory or open_camera_stream
        self.scheduler = scheduler
        self.detector = detector
        self.startup_timeout = startup_timeout
        self.on_face_detection = on_face_detection

        # --- Render state (read once per tick) ---
        self.adjustments = AdjustmentState().with_updates(**(adjustments or {}))
        self.filter = default_filter

        # --- Detection ---
        self.enable_face_detection = enable_face_detection
        self.detection_stride = max(1, int(detection_stride))
        self.last_detection: Optional[DetectionResult] = None
        self._detector_loaded = False
        self._detection_in_flight = False
        self._executor = detection_executor
        self._owns_executor = detection_executor is None

        # --- Stream & surfaces ---
        self.stream = None
        self.surface_size = (0, 0)
        self._display: Optional[np.ndarray] = None
        self.frame_count = 0
        self.stalled = False

        # --- Scheduling ---
        self._lock = threading.Lock()
        self._running = False
        self._handle = None
        self._generation = 0

        # --- FSM ---
        self.fsm = PipelineFSM(callbacks={
            "on_enter_starting": self._on_enter_starting,
            "on_enter_running": self._on_enter_running,
            "on_enter_stopped": self._on_enter_stopped,
        })

    # ----------------------------------------------------------------------
    # FSM CALLBACKS
    # ----------------------------------------------------------------------

    def _on_enter_starting(self):
        self.log.info("Starting camera pipeline...")

        try:
            self.stream = self.stream_factory(self.camera_config)
        except DeviceUnavailable as e:
            self.log.error(f"Camera unavailable: {e}")
            self.fsm.fail()
            raise
        except Exception as e:
            self.log.error(f"Camera failed to open: {e}")
            self.fsm.fail()
            raise DeviceUnavailable(f"Camera failed to open: {e}") from e

        if self.enable_face_detection:
            self._ensure_detector()

        try:
            self._await_first_frame()
        except Exception as e:
            close_stream(self.stream)
            self.stream = None
            self.fsm.fail()
            if isinstance(e, DeviceUnavailable):
                raise
            raise DeviceUnavailable(f"Camera stream failed during start-up: {e}") from e

        self._sync_surface_size(self.stream)
        self.fsm.ready()

    def _on_enter_running(self):
        with self._lock:
            self._running = True
            self.stalled = False
        if self.scheduler is None:
            self.scheduler = TimerFrameScheduler.for_stream(self.stream, self.camera_config.fps)
        self.log.info(f"Pipeline running at {self.surface_size[0]}x{self.surface_size[1]}")
        self._schedule_next_frame()

    def _on_enter_stopped(self):
        with self._lock:
            self._running = False
            self._generation += 1
            if self._handle is not None:
                self.scheduler.cancel(self._handle)
                self._handle = None
            self._detection_in_flight = False
            self.last_detection = None
            executor = self._executor if self._owns_executor else None
            if executor is not None:
                self._executor = None

        close_stream(self.stream)
        self.stream = None

        if executor is not None:
            executor.shutdown(wait=False)

        self._notify_face(False)
        self.log.info("Pipeline stopped")

    # ----------------------------------------------------------------------
    # STARTUP HELPERS
    # ----------------------------------------------------------------------

    def _ensure_detector(self):
        if self._detector_loaded:
            return
        if self.detector is None:
            self.detector = HaarFaceDetector()
        try:
            self.detector.load()
            self._detector_loaded = True
            self.log.info("Face detection ready")
        except (DetectionUnavailable, OSError, RuntimeError, cv2.error) as e:
            self.log.warning(f"Failed to load face detection, continuing without it: {e}")
            self.enable_face_detection = False
            self._detector_loaded = False

    def _await_first_frame(self):
        """Block until the stream reports its native size (first frame)."""
        deadline = time.monotonic() + self.startup_timeout
        while True:
            frame = self.stream.read()
            if frame is not None and self.stream.native_width and self.stream.native_height:
                return
            if time.monotonic() >= deadline:
                raise DeviceUnavailable(f"Camera delivered no frame within {self.startup_timeout:.1f}s")
            time.sleep(0.01)

    def _sync_surface_size(self, stream):
        size = (stream.native_width or 0, stream.native_height or 0)
        if 0 in size:
            return
        if size != self.surface_size:
            if self.surface_size != (0, 0):
                self.log.info(f"Camera resolution changed to {size[0]}x{size[1]}")
            self.surface_size = size

    # ----------------------------------------------------------------------
    # RENDER LOOP
    # ----------------------------------------------------------------------

    def _schedule_next_frame(self):
        with self._lock:
            if not self._running:
                return
            self._handle = self.scheduler.schedule(self._on_frame)

    def _on_frame(self):
        with self._lock:
            if not self._running:
                return
            self._handle = None
            generation = self._generation

        try:
            self.render_frame(generation)
        except Exception as e:
            self.log.error(f"Render tick failed: {e}")

        # A lost stream stalls the loop until stop()
        if self.stalled:
            return
        self._schedule_next_frame()

    def render_frame(self, generation: Optional[int] = None) -> bool:
        """
        One render tick body. Returns False when no frame was rendered
        (stream warming up, stopped, or lost).
        """
        if generation is None:
            generation = self._generation
        stream = self.stream
        if stream is None:
            return False

        try:
            raw = stream.read()
        except Exception as e:
            self.log.error(f"Camera stream lost: {e}")
            self.stalled = True
            return False

        if raw is None or not stream.native_width or not stream.native_height:
            return False

        self._sync_surface_size(stream)
        width, height = self.surface_size
        if raw.shape[1] != width or raw.shape[0] != height:
            raw = cv2.resize(raw, (width, height), interpolation=cv2.INTER_LINEAR)

        adjustments = self.adjustments
        working = apply_linear_adjustments(raw, adjustments)

        if adjustments.sharpness > 0:
            try:
                working = sharpen(working, adjustments.sharpness)
            except Exception as e:
                self.log.warning(f"Sharpen failed, showing unsharpened frame: {e}")

        try:
            working = apply_filter(self.filter, working, self.last_detection)
        except FilterFailure as e:
            self.log.warning(str(e))

        # Published frames are never written again
        working.setflags(write=False)
        with self._lock:
            if not self._running or generation != self._generation:
                return False
            self._display = working
            self.frame_count += 1
            frame_count = self.frame_count

        if self.face_detection_enabled and frame_count % self.detection_stride == 0:
            self._schedule_detection(working, generation)
        return True

    # ----------------------------------------------------------------------
    # DETECTION
    # ----------------------------------------------------------------------

    @property
    def face_detection_enabled(self) -> bool:
        return self.enable_face_detection and self._detector_loaded

    def _schedule_detection(self, frame: np.ndarray, generation: int):
        with self._lock:
            # stop() may have landed while the tick was rendering
            if not self._running or generation != self._generation or self._detection_in_flight:
                return
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="face-detect")

            self._detection_in_flight = True
            future = self._executor.submit(self.detector.detect, frame)
        future.add_done_callback(lambda f: self._on_detection_done(f, generation))

    def _on_detection_done(self, future, generation: int):
        if generation != self._generation:
            return
        self._detection_in_flight = False

        error = future.exception()
        if error is not None:
            self.log.warning(f"Face detection failed: {error}")
            return

        result = future.result()
        self.last_detection = result or None
        self._notify_face(result is not None)

    def _notify_face(self, present: bool):
        if self.on_face_detection is None:
            return
        try:
            self.on_face_detection(present)
        except Exception as e:
            self.log.warning(f"Face detection callback failed: {e}")

    # ----------------------------------------------------------------------
    # PUBLIC API
    # ----------------------------------------------------------------------

    @property
    def state(self) -> str:
        return self.fsm.state

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        """Open the camera and begin rendering. No-op while starting or running."""
        if self.fsm.state in ("starting", "running"):
            return
        self.fsm.fire("start")

    def stop(self):
        """Stop rendering and release the camera. No-op unless starting or running."""
        if self.fsm.state not in ("starting", "running"):
            return
        self.fsm.fire("stop")

    def set_filter(self, filter_name="none"):
        self.filter = filter_name

    def set_adjustments(self, **partial):
        self.adjustments = self.adjustments.with_updates(**partial)

    def display_frame(self) -> Optional[np.ndarray]:
        return self._display

    def capture_photo(self, fmt: str = "JPEG", quality: int = 95) -> Optional[CapturedPhoto]:
        """Encode the current display frame. Returns None before the first frame."""
        display = self._display
        if display is None or display.size == 0:
            return None
        try:
            return CapturedPhoto.from_frame(display, fmt, quality)
        except (OSError, ValueError) as e:
            self.log.error(f"Unable to capture photo: {e}")
            return None
