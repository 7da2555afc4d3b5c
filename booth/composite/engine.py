"""
Composite engine: lays captured photos out on a print page and merges
transparent frame overlays onto the result.

All sizes are derived from physical inches at a given DPI, so a 4x6in page
at 300 DPI is 1200x1800 px. Functions either return a complete, read-only
result or raise; no partially drawn canvas ever leaves this module.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, List, Optional, Sequence, Tuple

import cv2
import numpy as np
from PIL import Image

from booth.composite.codec import MIME_TYPES, decode_image, encode_image, to_data_url
from booth.composite.geometry import (
    canvas_size,
    cell_position,
    cell_rect,
    center_crop_origin,
    cover_size,
    fit_rect,
    inches_to_px,
    shrink_to_bounds,
)
from booth.composite.grid import GridSpec, STRIP_GRID_CELLS, page_size_for
from booth.errors import InvalidGridSpec, InvalidPhotoCount

log = logging.getLogger("CompositeEngine")

WHITE = (255, 255, 255, 255)

PRINT_WIDTH_IN, PRINT_HEIGHT_IN = 4.0, 6.0
STRIP_WIDTH_IN, STRIP_HEIGHT_IN = 2.0, 6.0

# Margin allowance added around a composite when a frame is applied
FRAME_EXTRA_WIDTH_IN = 0.5
FRAME_EXTRA_HEIGHT_IN = 0.7


class CellPolicy(str, Enum):
    COVER = "cover"
    FIT = "fit"


class MergeMode(str, Enum):
    COMPOSITE_SIZE = "composite-size"
    FRAME_SIZE = "frame-size"


class Alignment(str, Enum):
    CENTER = "center"
    TOP_LEFT = "top-left"
    TOP_CENTER = "top-center"
    CENTER_LEFT = "center-left"


@dataclass(frozen=True)
class CompositeImage:
    """Finished grid composite. ``pixels`` is a read-only RGBA array."""
    pixels: np.ndarray
    grid_id: Optional[str] = None
    dpi: int = 300
    is_strip: bool = False

    default_format: ClassVar[str] = "JPEG"

    def __post_init__(self):
        self.pixels.setflags(write=False)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def encode(self, fmt: Optional[str] = None, quality: int = 95) -> bytes:
        return encode_image(self.pixels, fmt or self.default_format, quality)

    def to_data_url(self, fmt: Optional[str] = None, quality: int = 95) -> str:
        fmt = (fmt or self.default_format).upper()
        return to_data_url(self.encode(fmt, quality), MIME_TYPES[fmt])


@dataclass(frozen=True)
class FramedComposite(CompositeImage):
    """A composite with a frame overlay applied (or passed through when ``frame_id`` is None)."""
    frame_id: Optional[str] = None

    default_format: ClassVar[str] = "PNG"


# -------------------- Raster helpers --------------------

def _canvas(width: int, height: int) -> Image.Image:
    return Image.new("RGBA", (width, height), WHITE)


def _resize(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    h, w = pixels.shape[:2]
    if (w, h) == (width, height):
        return pixels
    interpolation = cv2.INTER_AREA if width < w and height < h else cv2.INTER_LINEAR
    return cv2.resize(pixels, (width, height), interpolation=interpolation)


def _overlay(canvas: Image.Image, pixels: np.ndarray, origin: Tuple[int, int] = (0, 0)):
    """Alpha-composite ``pixels`` onto ``canvas`` at ``origin``, clipped to the canvas."""
    x, y = origin
    h, w = pixels.shape[:2]
    left, top = max(0, -x), max(0, -y)
    right, bottom = min(w, canvas.width - x), min(h, canvas.height - y)
    if right <= left or bottom <= top:
        return
    tile = np.ascontiguousarray(pixels[top:bottom, left:right])
    canvas.alpha_composite(Image.fromarray(tile), dest=(x + left, y + top))


def _overlay_stretched(canvas: Image.Image, overlay: np.ndarray):
    """Stretch an overlay to the full canvas and draw it on top."""
    frame = Image.fromarray(np.ascontiguousarray(overlay))
    if frame.size != canvas.size:
        frame = frame.resize(canvas.size, Image.Resampling.LANCZOS)
    canvas.alpha_composite(frame)


def _to_array(canvas: Image.Image) -> np.ndarray:
    return np.array(canvas)


def cover_tile(pixels: np.ndarray, cell_w: int, cell_h: int) -> np.ndarray:
    """Scale to cover the cell, then centre-crop to exactly ``cell_w x cell_h``."""
    h, w = pixels.shape[:2]
    dw, dh = cover_size(w, h, cell_w, cell_h)
    scaled = _resize(pixels, dw, dh)
    x0, y0 = center_crop_origin(dw, dh, cell_w, cell_h)
    return scaled[y0:y0 + cell_h, x0:x0 + cell_w]


def fit_tile(pixels: np.ndarray, cell_w: int, cell_h: int) -> np.ndarray:
    """Scale to fit inside the cell, centred, transparent elsewhere."""
    h, w = pixels.shape[:2]
    rect = fit_rect(w, h, cell_w, cell_h)
    tile = np.zeros((cell_h, cell_w, 4), dtype=np.uint8)
    tile[rect.y:rect.y + rect.height, rect.x:rect.x + rect.width] = _resize(pixels, rect.width, rect.height)
    return tile


def _inflate_for_fit(images: Sequence[np.ndarray], cell_w: int, cell_h: int) -> Tuple[int, int]:
    """Grow (never shrink) the cell so the widest and tallest photos fit without letterboxing."""
    cell_aspect = cell_w / float(cell_h)
    aspects = [img.shape[1] / float(img.shape[0]) for img in images]
    widest, tallest = max(aspects), min(aspects)
    width, height = cell_w, cell_h
    if widest > cell_aspect:
        width = max(width, int(round(cell_h * widest)))
    if tallest < cell_aspect:
        height = max(height, int(round(cell_w / tallest)))
    return width, height


def _decode_all(photos: Sequence) -> List[np.ndarray]:
    return [decode_image(p, f"photo {i + 1}") for i, p in enumerate(photos)]


# -------------------- Grid layout --------------------

def layout(
    photos: Sequence,
    grid: GridSpec,
    dpi: int = 300,
    gap_px: int = 5,
    policy: CellPolicy = CellPolicy.COVER,
) -> CompositeImage:
    """
    Lay ``photos`` out on ``grid``.

    Cells are filled column by column (top to bottom, then left to right).
    With the cover policy every cell is filled edge to edge and centre-cropped;
    with the fit policy the cells grow so no photo is cropped.
    """
    photos = list(photos or [])
    if grid is None:
        raise InvalidGridSpec("No grid given")

    if grid.strip:
        if len(photos) != STRIP_GRID_CELLS:
            raise InvalidPhotoCount(f"Strip grid requires exactly {STRIP_GRID_CELLS} photos, got {len(photos)}")
        return build_strip_composite(photos, dpi, grid_id=grid.id)

    if not grid.cols or not grid.rows or grid.cols < 0 or grid.rows < 0:
        raise InvalidGridSpec(f"Grid '{grid.id}' has no usable cols/rows ({grid.cols}x{grid.rows})")

    if len(photos) != grid.total_cells:
        raise InvalidPhotoCount(f"Expected {grid.total_cells} photos, got {len(photos)}")

    policy = CellPolicy(policy)
    page = page_size_for(grid)
    page_w = inches_to_px(page.width_inches, dpi)
    page_h = inches_to_px(page.height_inches, dpi)

    cell_w = (page_w - gap_px * (grid.cols + 1)) // grid.cols
    cell_h = (page_h - gap_px * (grid.rows + 1)) // grid.rows
    if cell_w <= 0 or cell_h <= 0:
        raise InvalidGridSpec(f"Page {page.name} at {dpi} DPI is too small for a {grid.cols}x{grid.rows} grid")

    images = _decode_all(photos)
    if policy is CellPolicy.FIT:
        cell_w, cell_h = _inflate_for_fit(images, cell_w, cell_h)

    width, height = canvas_size(grid.cols, grid.rows, cell_w, cell_h, gap_px)
    canvas = _canvas(width, height)

    for index, img in enumerate(images):
        col, row = cell_position(index, grid.rows)
        rect = cell_rect(col, row, cell_w, cell_h, gap_px)
        tile = cover_tile(img, cell_w, cell_h) if policy is CellPolicy.COVER else fit_tile(img, cell_w, cell_h)
        _overlay(canvas, tile, (rect.x, rect.y))

    log.info(f"Composite {grid.id} built: {len(images)} photos, {cell_w}x{cell_h} cells, {width}x{height} px")
    return CompositeImage(_to_array(canvas), grid.id, dpi, False)


def _strip_size(dpi: int) -> Tuple[int, int]:
    return inches_to_px(STRIP_WIDTH_IN, dpi), inches_to_px(STRIP_HEIGHT_IN, dpi)


def _print_size(dpi: int) -> Tuple[int, int]:
    return inches_to_px(PRINT_WIDTH_IN, dpi), inches_to_px(PRINT_HEIGHT_IN, dpi)


def _duplicate_strip(strip: np.ndarray, dpi: int) -> np.ndarray:
    """Place the same strip at x=0 and x=strip width on a white 4x6 page."""
    strip_w, _ = _strip_size(dpi)
    canvas = _canvas(*_print_size(dpi))
    _overlay(canvas, strip, (0, 0))
    _overlay(canvas, strip, (strip_w, 0))
    return _to_array(canvas)


def build_strip_composite(photos: Sequence, dpi: int = 300, grid_id: Optional[str] = "strip-grid") -> CompositeImage:
    """
    Four photos stacked in a 2x6in strip (each fitted, not cropped), printed
    twice side by side on a 4x6in page.
    """
    photos = list(photos or [])
    if len(photos) != STRIP_GRID_CELLS:
        raise InvalidPhotoCount(f"Strip grid requires exactly {STRIP_GRID_CELLS} photos, got {len(photos)}")

    images = _decode_all(photos)
    strip_w, strip_h = _strip_size(dpi)
    cell_h = inches_to_px(STRIP_HEIGHT_IN / STRIP_GRID_CELLS, dpi)

    strip = _canvas(strip_w, strip_h)
    for index, img in enumerate(images):
        _overlay(strip, fit_tile(img, strip_w, cell_h), (0, index * cell_h))

    pixels = _duplicate_strip(_to_array(strip), dpi)
    log.info(f"Strip composite built: {strip_w}x{strip_h} strip on {pixels.shape[1]}x{pixels.shape[0]} page")
    return CompositeImage(pixels, grid_id, dpi, True)


def extract_strip(composite, dpi: int = 300) -> CompositeImage:
    """Crop the left 2x6in strip back out of a strip composite."""
    pixels = decode_image(composite, "composite")
    strip_w, strip_h = _strip_size(dpi)
    canvas = _canvas(strip_w, strip_h)
    _overlay(canvas, pixels[:strip_h, :strip_w], (0, 0))
    return CompositeImage(_to_array(canvas), getattr(composite, "grid_id", None), dpi, True)


# -------------------- Frame merge --------------------

def _frame_margins(dpi: int) -> Tuple[int, int]:
    return inches_to_px(FRAME_EXTRA_WIDTH_IN, dpi), inches_to_px(FRAME_EXTRA_HEIGHT_IN, dpi)


def _aligned_origin(alignment: Alignment, canvas: Tuple[int, int], content: Tuple[int, int],
                    margins: Tuple[int, int]) -> Tuple[int, int]:
    (cw, ch), (w, h), (mx, my) = canvas, content, margins
    centered_x, centered_y = (cw - w) // 2, (ch - h) // 2
    return {
        Alignment.CENTER: (centered_x, centered_y),
        Alignment.TOP_LEFT: (mx // 2, my // 2),
        Alignment.TOP_CENTER: (centered_x, my // 2),
        Alignment.CENTER_LEFT: (mx // 2, centered_y),
    }[alignment]


def _passthrough(composite, dpi: int) -> FramedComposite:
    return FramedComposite(
        decode_image(composite, "composite"),
        getattr(composite, "grid_id", None),
        getattr(composite, "dpi", dpi),
        getattr(composite, "is_strip", False),
        frame_id=None,
    )


def merge_frame(
    composite,
    frame_asset,
    mode: MergeMode = MergeMode.COMPOSITE_SIZE,
    alignment: Alignment = Alignment.CENTER,
    dpi: int = 300,
    frame_id: Optional[str] = None,
) -> FramedComposite:
    """
    Merge a transparent frame overlay onto a composite.

    composite-size: canvas is the composite plus the margin allowance, the
    composite is centred and the frame is stretched over the whole canvas.
    frame-size: canvas is the frame's native size plus the margin allowance,
    the composite is fitted inside the frame's native bounds and placed per
    ``alignment``; the frame again covers the whole canvas.

    ``frame_asset=None`` means "no frame" and returns the composite unchanged.
    """
    if frame_asset is None:
        return _passthrough(composite, dpi)

    mode, alignment = MergeMode(mode), Alignment(alignment)
    comp = decode_image(composite, "composite")
    frame = decode_image(frame_asset, "frame")
    comp_h, comp_w = comp.shape[:2]
    frame_h, frame_w = frame.shape[:2]
    extra_w, extra_h = _frame_margins(dpi)

    if mode is MergeMode.FRAME_SIZE:
        size = (frame_w + extra_w, frame_h + extra_h)
        inner = fit_rect(comp_w, comp_h, frame_w, frame_h)
        comp = _resize(comp, inner.width, inner.height)
        origin = _aligned_origin(alignment, size, inner.size, (extra_w, extra_h))
    else:
        size = (comp_w + extra_w, comp_h + extra_h)
        origin = (extra_w // 2, extra_h // 2)

    canvas = _canvas(*size)
    _overlay(canvas, comp, origin)
    # Frame goes last so its cut-out windows reveal the composite beneath
    _overlay_stretched(canvas, frame)

    log.info(f"Frame {frame_id or ''} merged in {mode.value} mode: {size[0]}x{size[1]} px")
    return FramedComposite(
        _to_array(canvas),
        getattr(composite, "grid_id", None),
        dpi,
        getattr(composite, "is_strip", False),
        frame_id=frame_id,
    )


def merge_strip_frame(composite, frame_asset, dpi: int = 300, frame_id: Optional[str] = None) -> FramedComposite:
    """Frame the left strip of a strip composite, then print it twice on a 4x6 page."""
    if frame_asset is None:
        return _passthrough(composite, dpi)

    strip = decode_image(extract_strip(composite, dpi), "strip")
    frame = decode_image(frame_asset, "frame")

    canvas = Image.fromarray(np.ascontiguousarray(strip))
    _overlay_stretched(canvas, frame)

    pixels = _duplicate_strip(_to_array(canvas), dpi)
    log.info(f"Frame {frame_id or ''} merged onto strip composite")
    return FramedComposite(pixels, getattr(composite, "grid_id", None), dpi, True, frame_id=frame_id)


def apply_frame(
    composite,
    frame_asset,
    grid: Optional[GridSpec] = None,
    mode: MergeMode = MergeMode.COMPOSITE_SIZE,
    alignment: Alignment = Alignment.CENTER,
    dpi: int = 300,
    frame_id: Optional[str] = None,
) -> FramedComposite:
    """Dispatch to the strip path for strip composites, else :func:`merge_frame`."""
    is_strip = (grid is not None and grid.strip) or getattr(composite, "is_strip", False)
    if is_strip:
        return merge_strip_frame(composite, frame_asset, dpi, frame_id)
    return merge_frame(composite, frame_asset, mode, alignment, dpi, frame_id)


def frame_preview(frame_asset, max_width: int = 200, max_height: int = 200) -> np.ndarray:
    """Thumbnail of a frame over opaque white, shrunk to fit the bounds."""
    frame = decode_image(frame_asset, "frame")
    h, w = frame.shape[:2]
    size = shrink_to_bounds(w, h, max_width, max_height)
    canvas = _canvas(*size)
    _overlay_stretched(canvas, frame)
    return _to_array(canvas)
