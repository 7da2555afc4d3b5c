import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from booth.composite.codec import MIME_TYPES, decode_image, encode_image, to_data_url
from booth.composite.engine import CellPolicy, layout
from booth.errors import InvalidPhotoCount


@dataclass(frozen=True)
class CapturedPhoto:
    """An encoded still taken from the preview. Never modified after creation."""
    data: bytes
    mime: str
    width: int
    height: int

    @classmethod
    def from_frame(cls, frame: np.ndarray, fmt: str = "JPEG", quality: int = 95) -> "CapturedPhoto":
        h, w = frame.shape[:2]
        return cls(encode_image(frame, fmt, quality), MIME_TYPES[fmt.upper()], w, h)

    def decode(self) -> np.ndarray:
        return decode_image(self.data, "captured photo")

    def to_data_url(self) -> str:
        return to_data_url(self.data, self.mime)


class CaptureSession:
    """
    Ordered stills for one grid, from grid selection until the composite is
    built. Bounded by the grid's cell count.
    """

    def __init__(self, grid):
        self.log = logging.getLogger("CaptureSession")
        self.grid = grid
        self._photos: List[CapturedPhoto] = []

    @property
    def photos(self) -> List[CapturedPhoto]:
        return list(self._photos)

    @property
    def remaining(self) -> int:
        return self.grid.total_cells - len(self._photos)

    def __len__(self):
        return len(self._photos)

    def is_complete(self) -> bool:
        return len(self._photos) == self.grid.total_cells

    def add(self, photo: Optional[CapturedPhoto]) -> int:
        """Append a still. Returns its index."""
        if photo is None:
            raise ValueError("Cannot add an empty capture")
        if self.is_complete():
            raise InvalidPhotoCount(
                f"Grid '{self.grid.id}' holds {self.grid.total_cells} photos, session is full"
            )
        self._photos.append(photo)
        self.log.info(f"Photo {len(self._photos)}/{self.grid.total_cells} captured")
        return len(self._photos) - 1

    def remove_last(self) -> Optional[CapturedPhoto]:
        if not self._photos:
            return None
        return self._photos.pop()

    def remove_at(self, index: int) -> CapturedPhoto:
        return self._photos.pop(index)

    def clear(self):
        self._photos.clear()

    def build_composite(self, dpi: int = 300, gap_px: int = 5, policy=None):
        """Lay the session's photos out on the grid."""
        return layout(self._photos, self.grid, dpi=dpi, gap_px=gap_px, policy=policy or CellPolicy.COVER)
