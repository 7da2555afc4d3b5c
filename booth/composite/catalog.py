import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np

from booth.composite.codec import decode_image, encode_image, to_data_url
from booth.composite.engine import frame_preview
from booth.config import CompositeConfig

NO_FRAME_ID = "none"

_SEPARATORS = re.compile(r"[-_]")
_WORD_START = re.compile(r"\b\w")


@dataclass(frozen=True)
class FrameEntry:
    id: str
    display_name: str
    image_ref: Optional[Path]

    @property
    def is_none(self) -> bool:
        return self.image_ref is None


NO_FRAME = FrameEntry(NO_FRAME_ID, "No Frame", None)


def display_name_for(stem: str) -> str:
    """``gold_party-frame`` -> ``Gold Party Frame`` (only first letters are touched)."""
    return _WORD_START.sub(lambda m: m.group(0).upper(), _SEPARATORS.sub(" ", stem))


class FrameCatalog:
    """
    Frame overlays available to the kiosk, discovered from a directory of
    transparent PNGs. The synthetic ``NO_FRAME`` entry always comes first.
    """

    def __init__(self, directory: Path, pattern: str = "*.png", preview_size: Tuple[int, int] = (200, 200)):
        self.log = logging.getLogger("FrameCatalog")
        self.directory = Path(directory)
        self.pattern = pattern
        self.preview_size = tuple(preview_size)

    @classmethod
    def from_config(cls, composite: CompositeConfig) -> "FrameCatalog":
        return cls(composite.frames_dir, preview_size=composite.preview_size)

    def entries(self) -> List[FrameEntry]:
        if not self.directory.is_dir():
            self.log.warning(f"Frame directory {self.directory} not found, offering no frames")
            return [NO_FRAME]

        found = [
            FrameEntry(path.stem, display_name_for(path.stem), path)
            for path in self.directory.glob(self.pattern)
            if path.is_file()
        ]
        found.sort(key=lambda e: (e.display_name.casefold(), e.id))
        self.log.info(f"{len(found)} frames found in {self.directory}")
        return [NO_FRAME] + found

    def get(self, frame_id: str) -> FrameEntry:
        for entry in self.entries():
            if entry.id == frame_id:
                return entry
        raise KeyError(f"Unknown frame '{frame_id}'")

    def load(self, entry: FrameEntry) -> Optional[np.ndarray]:
        """Decoded overlay, or None for the no-frame entry."""
        if entry.is_none:
            return None
        return decode_image(entry.image_ref, f"frame {entry.id}")

    def preview(self, entry: FrameEntry, max_width: Optional[int] = None,
                max_height: Optional[int] = None) -> Optional[np.ndarray]:
        """Thumbnail bounded by the given size, or the catalog's ``preview_size``."""
        if entry.is_none:
            return None
        default_w, default_h = self.preview_size
        return frame_preview(entry.image_ref, max_width or default_w, max_height or default_h)

    def preview_data_url(self, entry: FrameEntry, max_width: Optional[int] = None,
                         max_height: Optional[int] = None) -> Optional[str]:
        thumb = self.preview(entry, max_width, max_height)
        if thumb is None:
            return None
        return to_data_url(encode_image(thumb, "PNG"), "image/png")
