"""
Pipeline package for the photo booth preview.

This package contains the components responsible for:
- Linear image adjustments (adjustments)
- The pixel filter registry (filters)
- Best-effort face detection (detection)
- Render-loop scheduling (scheduler)
- Captured stills and the per-grid capture session (session)
- The live camera pipeline itself (controller)
"""

from .adjustments import AdjustmentState, apply_linear_adjustments
from .controller import CameraPipeline
from .detection import DetectionResult, HaarFaceDetector
from .filters import FILTERS, FilterId, apply_filter, filter_options, resolve_filter
from .scheduler import ManualFrameScheduler, TimerFrameScheduler
from .session import CapturedPhoto, CaptureSession

__all__ = [
    "AdjustmentState",
    "apply_linear_adjustments",
    "CameraPipeline",
    "DetectionResult",
    "HaarFaceDetector",
    "FILTERS",
    "FilterId",
    "apply_filter",
    "filter_options",
    "resolve_filter",
    "ManualFrameScheduler",
    "TimerFrameScheduler",
    "CapturedPhoto",
    "CaptureSession",
]
