import io
import re

import numpy as np
import pytest
from PIL import Image

from booth.composite.codec import encode_image, to_data_url
from booth.config import StorageConfig
from booth.errors import AssetLoadFailure
from booth.storage import PhotoStore
from conftest import solid


def data_url(color=(200, 60, 20, 255), size=(32, 24)):
    return to_data_url(encode_image(solid(size[0], size[1], color), "PNG"), "image/png")


@pytest.fixture
def store(tmp_path):
    return PhotoStore(tmp_path / "photos", base_url="http://kiosk.local/api/photos/")


def test_save_photo_writes_jpeg(store):
    saved = store.save_photo(data_url(), "session42")

    assert re.fullmatch(r"photo_session42_\d+\.jpg", saved["filename"])
    assert saved["url"] == f"http://kiosk.local/api/photos/{saved['filename']}"
    with Image.open(saved["filepath"]) as img:
        assert img.format == "JPEG"
        assert img.size == (32, 24)


def test_save_photo_accepts_bare_base64(store):
    payload = data_url().split(",", 1)[1]
    saved = store.save_photo(payload, "s1")
    assert store.open_photo(saved["filename"])[:2] == b"\xff\xd8"


def test_grayscale_and_brightness_filters(store):
    saved = store.save_photo(data_url(), "s2", {"grayscale": True, "brightness": 0.5})

    with Image.open(saved["filepath"]) as img:
        r, g, b = np.asarray(img.convert("RGB"))[12, 16].astype(int)
    assert abs(r - g) <= 2 and abs(g - b) <= 2
    # luma of (200, 60, 20) is ~97, halved
    assert 40 <= r <= 56


def test_blur_filter_keeps_size(store):
    saved = store.save_photo(data_url(), "s3", {"blur": 2})
    with Image.open(io.BytesIO(store.open_photo(saved["filename"]))) as img:
        assert img.size == (32, 24)


def test_undecodable_photo(store):
    with pytest.raises(AssetLoadFailure):
        store.save_photo("data:image/png;base64,aGVsbG8=", "s4")


def test_open_photo_stays_inside_photos_dir(store, tmp_path):
    (tmp_path / "secret.jpg").write_bytes(b"x")
    with pytest.raises(FileNotFoundError):
        store.open_photo("../secret.jpg")


def test_print_photo_checks_file(store):
    saved = store.save_photo(data_url(), "s5")

    assert store.print_photo(saved["filepath"])["success"] is True
    with pytest.raises(FileNotFoundError):
        store.print_photo(store.photos_dir / "missing.jpg")


def test_store_built_from_storage_config(tmp_path):
    config = StorageConfig(photos_dir=tmp_path / "kiosk", base_url="http://booth:8080/photos")
    store = PhotoStore.from_config(config)

    saved = store.save_photo(data_url(), "cfg")

    assert store.photos_dir == tmp_path / "kiosk"
    assert saved["url"].startswith("http://booth:8080/photos/photo_cfg_")
    assert (tmp_path / "kiosk" / saved["filename"]).is_file()
