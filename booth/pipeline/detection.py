"""Face detection capability consumed by the camera pipeline.

The pipeline only needs ``load()`` and ``detect(frame)``; anything that
provides them can be injected. :class:`HaarFaceDetector` is the bundled
implementation built on the cascades shipped with OpenCV.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

import cv2
import numpy as np

from booth.errors import DetectionUnavailable

FaceBox = Tuple[int, int, int, int]  # x, y, w, h


@dataclass(frozen=True)
class DetectionResult:
    """Faces found in one frame, largest first."""
    faces: Tuple[FaceBox, ...]
    eyes: Tuple[FaceBox, ...] = ()

    @property
    def primary(self) -> FaceBox:
        return self.faces[0]

    @property
    def center(self) -> Tuple[float, float]:
        x, y, w, h = self.primary
        return x + w / 2.0, y + h / 2.0


class FaceDetector(Protocol):
    def load(self) -> None: ...

    def detect(self, frame: np.ndarray) -> Optional[DetectionResult]: ...


class HaarFaceDetector:
    """
    Frontal face detector using OpenCV Haar cascades.

    Detection runs on a downscaled grayscale copy to keep the per-request
    cost low; boxes are mapped back to full-frame coordinates.
    """

    def __init__(
        self,
        cascade_dir: Optional[str] = None,
        scale_factor: float = 1.1,
        min_neighbors: int = 5,
        detect_width: int = 320,
        with_eyes: bool = True,
    ):
        self.log = logging.getLogger("HaarFaceDetector")
        self.cascade_dir = cascade_dir or cv2.data.haarcascades
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.detect_width = detect_width
        self.with_eyes = with_eyes
        self.face_cascade = None
        self.eye_cascade = None

    @property
    def loaded(self) -> bool:
        return self.face_cascade is not None

    def load(self):
        face = cv2.CascadeClassifier(self.cascade_dir + "haarcascade_frontalface_default.xml")
        if face.empty():
            raise DetectionUnavailable(f"Face cascade not found in {self.cascade_dir}")
        self.face_cascade = face

        if self.with_eyes:
            eye = cv2.CascadeClassifier(self.cascade_dir + "haarcascade_eye.xml")
            self.eye_cascade = None if eye.empty() else eye
        self.log.info("Haar cascades loaded from %s", self.cascade_dir)

    def detect(self, frame: np.ndarray) -> Optional[DetectionResult]:
        if not self.loaded:
            raise DetectionUnavailable("Detector used before load()")

        h, w = frame.shape[:2]
        ratio = min(1.0, self.detect_width / float(w))
        gray = cv2.cvtColor(frame, cv2.COLOR_RGBA2GRAY)
        if ratio < 1.0:
            gray = cv2.resize(gray, (int(w * ratio), int(h * ratio)), interpolation=cv2.INTER_AREA)
        gray = cv2.equalizeHist(gray)

        found = self.face_cascade.detectMultiScale(
            gray, scaleFactor=self.scale_factor, minNeighbors=self.min_neighbors
        )
        if len(found) == 0:
            return None

        boxes = sorted((tuple(int(v) for v in box) for box in found), key=lambda b: b[2] * b[3], reverse=True)
        eyes = ()
        if self.eye_cascade is not None:
            x, y, bw, bh = boxes[0]
            roi = gray[y:y + bh, x:x + bw]
            eyes = tuple(
                (x + int(ex), y + int(ey), int(ew), int(eh))
                for ex, ey, ew, eh in self.eye_cascade.detectMultiScale(roi)
            )

        scale = 1.0 / ratio
        return DetectionResult(
            faces=tuple(_scale_box(b, scale) for b in boxes),
            eyes=tuple(_scale_box(b, scale) for b in eyes),
        )


def _scale_box(box: FaceBox, scale: float) -> FaceBox:
    return tuple(int(round(v * scale)) for v in box)
