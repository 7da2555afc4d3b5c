"""
Pixel filter registry for the live preview.

Every filter has the signature ``(frame, detection) -> frame`` and never
mutates its input. Three kinds exist:

- colour maps: a fixed per-channel ``scale * v + offset`` map, clamped to
  [0, 255] through 256-entry lookup tables
- neighbourhood filters: box blur / soften / sharpen, computed from a
  snapshot of the source and written to the interior only (the border of
  half the kernel size keeps its source pixels)
- detection-gated filters: a slight axis scaling about the detected face,
  returning the input unchanged when no face is known

Unknown filter names resolve to the identity filter so a bad selection can
never break the render loop.
"""

import logging
import re
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

import cv2
import numpy as np

from booth.errors import FilterFailure
from booth.pipeline.detection import DetectionResult
from booth.raster import clamp_to_uint8

log = logging.getLogger("PixelFilter")

PixelFilter = Callable[[np.ndarray, Optional[DetectionResult]], np.ndarray]

MAX_SHARPEN_STRENGTH = 1.5


class FilterId(str, Enum):
    NONE = "none"
    SMOOTH_SKIN = "smooth_skin"
    WHITENING = "whitening"
    EYE_ENLARGE = "eye_enlarge"
    FACE_SLIM = "face_slim"
    HDR_BOOST = "hdr_boost"
    COLOR_POP = "color_pop"
    WARM_TONE = "warm_tone"
    COOL_TONE = "cool_tone"
    ANIME_SMOOTH = "anime_smooth"
    BEAUTY_GLOW = "beauty_glow"
    BRIGHT_POP = "bright_pop"
    BROWN_MOODY = "brown_moody"
    DREAM_BLUR = "dream_blur"
    SKIN_SOFT_PROFESSIONAL = "skin_soft_professional"
    SHARPEN_DETAIL = "sharpen_detail"
    SOFT_PINK = "soft_pink"
    LUT_VINTAGE = "lut_vintage"
    LUT_CINEMATIC = "lut_cinematic"
    LUT_TEAL_ORANGE = "lut_teal_orange"


# -------------------- Colour maps --------------------

class ColorMapFilter:
    """Per-channel affine map ``v * scale + offset`` on R, G, B. Alpha is untouched."""

    def __init__(self, scale: Sequence[float] = (1.0, 1.0, 1.0), offset: Sequence[float] = (0.0, 0.0, 0.0)):
        self.scale = tuple(float(s) for s in scale)
        self.offset = tuple(float(o) for o in offset)

        values = np.arange(256, dtype=np.float64)
        tables = [values * s + o for s, o in zip(self.scale, self.offset)]
        # cv2.LUT expects (256, 1, channels) for a per-channel lookup
        self.lut = clamp_to_uint8(np.stack(tables, axis=-1)).reshape(256, 1, 3)

    def __call__(self, frame: np.ndarray, detection: Optional[DetectionResult] = None) -> np.ndarray:
        out = frame.copy()
        out[..., :3] = cv2.LUT(np.ascontiguousarray(frame[..., :3]), self.lut)
        return out

    def __repr__(self):
        return f"ColorMapFilter(scale={self.scale}, offset={self.offset})"


LUT_PRESETS: Dict[str, ColorMapFilter] = {
    "vintage": ColorMapFilter((0.9, 0.85, 0.7), (20, 10, 30)),
    "cinematic": ColorMapFilter((1.05, 0.95, 0.9)),
    "teal_orange": ColorMapFilter((0.9, 0.85, 1.05), (20, 10, 0)),
}
DEFAULT_LUT = "vintage"


def apply_lut(frame: np.ndarray, lut_name: str = DEFAULT_LUT) -> np.ndarray:
    """Apply a named LUT preset. Unknown names fall back to the vintage preset."""
    preset = LUT_PRESETS.get(lut_name)
    if preset is None:
        log.debug("Unknown LUT preset '%s', using '%s'", lut_name, DEFAULT_LUT)
        preset = LUT_PRESETS[DEFAULT_LUT]
    return preset(frame)


# -------------------- Neighbourhood filters --------------------

def _write_interior(out: np.ndarray, processed: np.ndarray, border: int) -> np.ndarray:
    h, w = out.shape[:2]
    out[border:h - border, border:w - border, :3] = processed[border:h - border, border:w - border]
    return out


def _too_small(frame: np.ndarray, border: int) -> bool:
    h, w = frame.shape[:2]
    return h <= 2 * border or w <= 2 * border


def box_blur(frame: np.ndarray, kernel_size: int = 15) -> np.ndarray:
    """Average over a ``k x k`` window; a border of ``k // 2`` pixels is left as is."""
    if kernel_size < 1 or kernel_size % 2 == 0:
        raise ValueError(f"kernel_size must be a positive odd number, got {kernel_size}")
    half = kernel_size // 2
    out = frame.copy()
    if half == 0 or _too_small(frame, half):
        return out
    blurred = cv2.blur(np.ascontiguousarray(frame[..., :3]), (kernel_size, kernel_size))
    return _write_interior(out, blurred, half)


_SOFTEN_KERNEL = np.full((3, 3), 1.0 / 16.0, dtype=np.float32)
_SOFTEN_KERNEL[1, 1] = 0.5


def soften(frame: np.ndarray) -> np.ndarray:
    """Blend each pixel 50/50 with the mean of its 8 neighbours."""
    out = frame.copy()
    if _too_small(frame, 1):
        return out
    softened = cv2.filter2D(np.ascontiguousarray(frame[..., :3]), cv2.CV_32F, _SOFTEN_KERNEL)
    return _write_interior(out, clamp_to_uint8(softened), 1)


def sharpen_strength(amount: float) -> float:
    return min(MAX_SHARPEN_STRENGTH, amount * 0.2)


def sharpen(frame: np.ndarray, amount: float) -> np.ndarray:
    """
    Unsharp-mask style sharpen against the 4-neighbour average:
    ``v * (1 + 4s) - s * (north + south + east + west)`` with ``s = min(1.5, amount * 0.2)``.
    ``amount <= 0`` returns the frame unchanged.
    """
    if amount <= 0:
        return frame
    out = frame.copy()
    if _too_small(frame, 1):
        return out
    s = sharpen_strength(amount)
    kernel = np.array([[0, -s, 0], [-s, 1 + 4 * s, -s], [0, -s, 0]], dtype=np.float32)
    sharpened = cv2.filter2D(np.ascontiguousarray(frame[..., :3]), cv2.CV_32F, kernel)
    return _write_interior(out, clamp_to_uint8(sharpened), 1)


def smooth_skin(frame: np.ndarray, detection: Optional[DetectionResult] = None) -> np.ndarray:
    blurred = box_blur(frame, 5)
    out = frame.copy()
    out[..., :3] = cv2.addWeighted(
        np.ascontiguousarray(frame[..., :3]), 0.5, np.ascontiguousarray(blurred[..., :3]), 0.5, 0
    )
    return out


# -------------------- Detection-gated filters --------------------

def scale_about(frame: np.ndarray, sx: float, sy: float, center=None) -> np.ndarray:
    """Scale the frame content about ``center`` keeping the output size."""
    h, w = frame.shape[:2]
    cx, cy = center if center is not None else (w / 2.0, h / 2.0)
    matrix = np.float32([[sx, 0, cx * (1 - sx)], [0, sy, cy * (1 - sy)]])
    return cv2.warpAffine(frame, matrix, (w, h), flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_REPLICATE)


def face_scaled(sx: float, sy: float) -> PixelFilter:
    """
    Build a face-shape filter. This is a whole-frame approximation
    anchored at the detected face, not a landmark mesh warp.
    """
    def _filter(frame: np.ndarray, detection: Optional[DetectionResult] = None) -> np.ndarray:
        if detection is None or not detection.faces:
            return frame
        return scale_about(frame, sx, sy, detection.center)
    return _filter


def identity(frame: np.ndarray, detection: Optional[DetectionResult] = None) -> np.ndarray:
    return frame


# -------------------- Registry --------------------

FILTERS: Dict[FilterId, PixelFilter] = {
    FilterId.NONE: identity,
    FilterId.SMOOTH_SKIN: smooth_skin,
    FilterId.WHITENING: ColorMapFilter(offset=(12, 12, 12)),
    FilterId.EYE_ENLARGE: face_scaled(1.04, 1.04),
    FilterId.FACE_SLIM: face_scaled(0.97, 1.0),
    FilterId.HDR_BOOST: ColorMapFilter((1.12, 1.12, 1.12), (-10, -10, -10)),
    FilterId.COLOR_POP: ColorMapFilter((1.1, 1.05, 1.1)),
    FilterId.WARM_TONE: ColorMapFilter(offset=(10, 5, 0)),
    FilterId.COOL_TONE: ColorMapFilter(offset=(0, 0, 14)),
    FilterId.ANIME_SMOOTH: ColorMapFilter((1.1, 1.1, 1.15), (10, 10, 20)),
    FilterId.BEAUTY_GLOW: ColorMapFilter((1.1, 1.05, 1.05), (10, 5, 5)),
    FilterId.BRIGHT_POP: ColorMapFilter((1.2, 1.15, 1.15)),
    FilterId.BROWN_MOODY: ColorMapFilter((0.85, 0.75, 0.6)),
    FilterId.DREAM_BLUR: lambda frame, detection=None: box_blur(frame, 15),
    FilterId.SKIN_SOFT_PROFESSIONAL: lambda frame, detection=None: soften(frame),
    FilterId.SHARPEN_DETAIL: ColorMapFilter((1.15, 1.1, 1.1)),
    FilterId.SOFT_PINK: ColorMapFilter(offset=(10, -5, 20)),
    FilterId.LUT_VINTAGE: LUT_PRESETS["vintage"],
    FilterId.LUT_CINEMATIC: LUT_PRESETS["cinematic"],
    FilterId.LUT_TEAL_ORANGE: LUT_PRESETS["teal_orange"],
}

_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


def normalize_filter_name(name) -> str:
    """Accept enum members, snake_case ids and the kiosk UI's camelCase ids."""
    if isinstance(name, FilterId):
        return name.value
    return _CAMEL.sub("_", str(name or "none")).lower()


def resolve_filter(name) -> PixelFilter:
    try:
        return FILTERS[FilterId(normalize_filter_name(name))]
    except ValueError:
        log.debug("Unknown filter '%s', using identity", name)
        return identity


def apply_filter(name, frame: np.ndarray, detection: Optional[DetectionResult] = None) -> np.ndarray:
    """Run the named filter. Any error is re-raised as :class:`FilterFailure`."""
    fn = resolve_filter(name)
    try:
        return fn(frame, detection)
    except Exception as e:
        raise FilterFailure(f"Filter '{name}' failed: {e}") from e


def filter_options() -> List[Dict[str, str]]:
    """Id / label pairs for a filter picker."""
    return [{"id": f.value, "label": f.value.replace("_", " ").title()} for f in FilterId]
