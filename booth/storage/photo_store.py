import io
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

from PIL import Image, ImageEnhance, ImageFilter, ImageOps, UnidentifiedImageError

from booth.composite.codec import parse_data_url
from booth.config import StorageConfig
from booth.errors import AssetLoadFailure

JPEG_QUALITY = 90


class PhotoStore:
    """
    Local persistence for finished stills and composites.

    Photos are written as ``photo_<session>_<millis>.jpg`` and served back
    under ``base_url``. Printing is only a stub that checks the file exists.
    """

    def __init__(self, photos_dir: Union[str, Path] = "photos", base_url: str = "http://localhost:3001/api/photos"):
        self.log = logging.getLogger("PhotoStore")
        self.photos_dir = Path(photos_dir)
        self.base_url = base_url.rstrip("/")
        self.photos_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_config(cls, storage: StorageConfig) -> "PhotoStore":
        return cls(storage.photos_dir, storage.base_url)

    def save_photo(self, image_data: str, session_id: str, filters: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
        """
        Persist a base64 data URL (or bare base64 payload) as JPEG.

        :param filters: Optional ``{"grayscale": bool, "blur": sigma, "brightness": factor}``.
        :return: ``{"filename", "filepath", "url"}``
        """
        if not image_data.startswith("data:"):
            image_data = f"data:image/jpeg;base64,{image_data}"
        _, payload = parse_data_url(image_data)

        try:
            with Image.open(io.BytesIO(payload)) as img:
                image = img.convert("RGB")
        except (UnidentifiedImageError, OSError) as e:
            raise AssetLoadFailure(f"Failed to decode photo for session {session_id}: {e}") from e

        image = self._apply_filters(image, filters or {})

        filename = f"photo_{session_id}_{int(time.time() * 1000)}.jpg"
        filepath = self.photos_dir / filename
        image.save(filepath, format="JPEG", quality=JPEG_QUALITY)
        self.log.info(f"Saved {filename} ({image.width}x{image.height})")

        return {
            "filename": filename,
            "filepath": str(filepath),
            "url": f"{self.base_url}/{filename}",
        }

    @staticmethod
    def _apply_filters(image: Image.Image, filters: Dict[str, Any]) -> Image.Image:
        if filters.get("grayscale"):
            image = ImageOps.grayscale(image).convert("RGB")
        if filters.get("blur"):
            image = image.filter(ImageFilter.GaussianBlur(radius=float(filters["blur"])))
        if filters.get("brightness"):
            image = ImageEnhance.Brightness(image).enhance(float(filters["brightness"]))
        return image

    def open_photo(self, filename: str) -> bytes:
        """Read a stored photo. Names are resolved inside the photos directory only."""
        path = self.photos_dir / Path(filename).name
        if not path.is_file():
            raise FileNotFoundError(f"Photo not found: {filename}")
        return path.read_bytes()

    def print_photo(self, filepath: Union[str, Path]) -> Dict[str, Any]:
        # No printer integration; only verify the file exists
        if not Path(filepath).is_file():
            self.log.error(f"Cannot print, photo file not found: {filepath}")
            raise FileNotFoundError(f"Photo file not found: {filepath}")
        self.log.info(f"Print job would be sent to printer: {filepath}")
        return {"success": True, "message": "Print job would be sent to printer"}
