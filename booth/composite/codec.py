"""Decoding and encoding of raster assets.

Photos, composites and frame overlays travel between the booth stages as
RGBA numpy arrays, encoded bytes, base64 data URLs or files on disk. The
helpers here turn any of those into a RasterFrame and back.
"""

import base64
import binascii
import io
import re
from pathlib import Path
from typing import Tuple, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from booth.errors import AssetLoadFailure
from booth.raster import ensure_rgba

MIME_TYPES = {"JPEG": "image/jpeg", "PNG": "image/png"}

_DATA_URL = re.compile(r"^data:(?P<mime>image/[\w.+-]+)?(;base64)?,(?P<payload>.*)$", re.DOTALL)

ImageSource = Union[np.ndarray, bytes, bytearray, str, Path]


def parse_data_url(url: str) -> Tuple[str, bytes]:
    """Split a base64 data URL into ``(mime, payload bytes)``."""
    match = _DATA_URL.match(url.strip())
    if not match:
        raise AssetLoadFailure("Not a data URL")
    try:
        payload = base64.b64decode(re.sub(r"\s+", "", match.group("payload")), validate=True)
    except (binascii.Error, ValueError) as e:
        raise AssetLoadFailure(f"Invalid base64 payload: {e}") from e
    return match.group("mime") or "application/octet-stream", payload


def to_data_url(data: bytes, mime: str = "image/jpeg") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def _open_bytes(data: bytes, label: str) -> np.ndarray:
    try:
        with Image.open(io.BytesIO(data)) as img:
            return np.asarray(img.convert("RGBA")).copy()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise AssetLoadFailure(f"Failed to decode {label}: {e}") from e


def decode_image(source, label: str = "image") -> np.ndarray:
    """
    Decode ``source`` into a fresh RGBA RasterFrame.

    Accepts RGB(A)/gray arrays, encoded bytes, data URLs, file paths and
    objects exposing encoded ``data`` bytes (captured photos, composites).
    """
    if source is None:
        raise AssetLoadFailure(f"No {label} given")

    if isinstance(source, np.ndarray):
        try:
            return ensure_rgba(source).copy()
        except ValueError as e:
            raise AssetLoadFailure(f"Unusable {label} array: {e}") from e

    pixels = getattr(source, "pixels", None)
    if isinstance(pixels, np.ndarray):
        return pixels.copy()

    data = getattr(source, "data", None)
    if isinstance(data, (bytes, bytearray)):
        return _open_bytes(bytes(data), label)

    if isinstance(source, (bytes, bytearray)):
        return _open_bytes(bytes(source), label)

    if isinstance(source, str) and source.startswith("data:"):
        _, payload = parse_data_url(source)
        return _open_bytes(payload, label)

    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise AssetLoadFailure(f"Cannot read {label} at {path}: {e}") from e
        return _open_bytes(data, f"{label} {path.name}")

    raise AssetLoadFailure(f"Unsupported {label} source: {type(source).__name__}")


def encode_image(frame: np.ndarray, fmt: str = "JPEG", quality: int = 95) -> bytes:
    """Encode an RGBA frame. JPEG output drops alpha."""
    fmt = fmt.upper()
    if fmt not in MIME_TYPES:
        raise ValueError(f"Unsupported format: {fmt}")

    img = Image.fromarray(np.ascontiguousarray(frame))
    buffer = io.BytesIO()
    if fmt == "JPEG":
        img.convert("RGB").save(buffer, format="JPEG", quality=quality)
    else:
        img.save(buffer, format="PNG")
    return buffer.getvalue()
