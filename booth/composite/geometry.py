import math
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def inches_to_px(inches: float, dpi: float) -> int:
    """Physical length to pixels (pixels = inches x dpi)."""
    return round_half_up(inches * dpi)


def cover_scale(src_w: int, src_h: int, dst_w: int, dst_h: int) -> float:
    return max(dst_w / float(src_w), dst_h / float(src_h))


def fit_scale(src_w: int, src_h: int, dst_w: int, dst_h: int) -> float:
    return min(dst_w / float(src_w), dst_h / float(src_h))


def cover_size(src_w: int, src_h: int, dst_w: int, dst_h: int) -> Tuple[int, int]:
    """Scaled size that fills ``dst`` completely (never smaller than it)."""
    s = cover_scale(src_w, src_h, dst_w, dst_h)
    return max(dst_w, round_half_up(src_w * s)), max(dst_h, round_half_up(src_h * s))


def fit_rect(src_w: int, src_h: int, dst_w: int, dst_h: int) -> Rect:
    """Largest aspect-preserving rect inside ``dst``, centred on the free axis."""
    s = fit_scale(src_w, src_h, dst_w, dst_h)
    w = min(dst_w, max(1, round_half_up(src_w * s)))
    h = min(dst_h, max(1, round_half_up(src_h * s)))
    return Rect((dst_w - w) // 2, (dst_h - h) // 2, w, h)


def center_crop_origin(src_w: int, src_h: int, crop_w: int, crop_h: int) -> Tuple[int, int]:
    return max(0, (src_w - crop_w) // 2), max(0, (src_h - crop_h) // 2)


def cell_position(index: int, rows: int) -> Tuple[int, int]:
    """Column-major placement: ``(col, row)`` for photo ``index``."""
    return index // rows, index % rows


def cell_rect(col: int, row: int, cell_w: int, cell_h: int, gap: int) -> Rect:
    return Rect(gap + col * (cell_w + gap), gap + row * (cell_h + gap), cell_w, cell_h)


def canvas_size(cols: int, rows: int, cell_w: int, cell_h: int, gap: int) -> Tuple[int, int]:
    """Gap before the first cell, between cells and after the last one."""
    return gap + cols * (cell_w + gap), gap + rows * (cell_h + gap)


def shrink_to_bounds(width: int, height: int, max_w: int, max_h: int) -> Tuple[int, int]:
    """Shrink (never enlarge) preserving aspect ratio until both bounds hold."""
    w, h = float(width), float(height)
    if w > max_w:
        h = h * max_w / w
        w = max_w
    if h > max_h:
        w = w * max_h / h
        h = max_h
    return max(1, round_half_up(w)), max(1, round_half_up(h))
