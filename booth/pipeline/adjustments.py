from dataclasses import dataclass, fields, replace

import cv2
import numpy as np

# Nominal upper bounds, values above are clamped.
LINEAR_MAX = 2.0
SHARPNESS_MAX = 5.0

# Rec.709 luma weights used by the CSS saturate() filter
_LUMA = np.array([0.213, 0.715, 0.072], dtype=np.float64)


@dataclass(frozen=True)
class AdjustmentState:
    """Per-frame image adjustments. Replaced wholesale on every update."""
    brightness: float = 1.0
    contrast: float = 1.0
    saturation: float = 1.0
    sharpness: float = 0.0

    def __post_init__(self):
        for f in fields(self):
            value = float(getattr(self, f.name))
            if value < 0:
                raise ValueError(f"{f.name} must be non-negative, got {value}")
            upper = SHARPNESS_MAX if f.name == "sharpness" else LINEAR_MAX
            object.__setattr__(self, f.name, min(value, upper))

    def with_updates(self, **partial) -> "AdjustmentState":
        unknown = set(partial) - {f.name for f in fields(self)}
        if unknown:
            raise ValueError(f"Unknown adjustments: {', '.join(sorted(unknown))}")
        return replace(self, **partial)

    @property
    def is_linear_identity(self) -> bool:
        return self.brightness == 1.0 and self.contrast == 1.0 and self.saturation == 1.0


def saturation_matrix(s: float) -> np.ndarray:
    """3x3 matrix of the CSS saturate() filter."""
    return np.outer(np.ones(3), _LUMA) * (1.0 - s) + np.eye(3) * s


def linear_transform(state: AdjustmentState) -> np.ndarray:
    """
    Combine brightness, contrast and saturation (applied in that order)
    into one 3x4 affine colour matrix for 0..255 channel values.
    """
    b, c, s = state.brightness, state.contrast, state.saturation
    matrix = np.zeros((3, 4), dtype=np.float64)
    matrix[:, :3] = saturation_matrix(s) * (b * c)
    # Saturation rows sum to one, so the contrast pivot passes through unchanged
    matrix[:, 3] = 127.5 * (1.0 - c)
    return matrix


def apply_linear_adjustments(frame: np.ndarray, state: AdjustmentState) -> np.ndarray:
    """Return a new RGBA frame with the linear adjustments applied. Alpha is preserved."""
    out = frame.copy()
    if state.is_linear_identity:
        return out
    rgb = np.ascontiguousarray(frame[..., :3])
    out[..., :3] = cv2.transform(rgb, linear_transform(state))
    return out
