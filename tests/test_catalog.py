from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from booth.composite import NO_FRAME, FrameCatalog
from booth.composite.catalog import display_name_for
from booth.config import CompositeConfig


def write_frame(path: Path, size=(40, 60)) -> Path:
    frame = np.zeros((size[1], size[0], 4), dtype=np.uint8)
    frame[:4] = (200, 30, 30, 255)
    Image.fromarray(frame).save(path)
    return path


@pytest.fixture
def frames_dir(tmp_path):
    directory = tmp_path / "frames"
    directory.mkdir()
    write_frame(directory / "zebra.png")
    write_frame(directory / "gold_party-frame.png")
    write_frame(directory / "Autumn.png")
    (directory / "notes.txt").write_text("not a frame")
    return directory


def test_display_names_are_title_cased():
    assert display_name_for("gold_party-frame") == "Gold Party Frame"
    assert display_name_for("summer-fun_2024") == "Summer Fun 2024"
    assert display_name_for("neonGlow") == "NeonGlow"


def test_entries_start_with_no_frame_and_are_sorted(frames_dir):
    entries = FrameCatalog(frames_dir).entries()

    assert entries[0] == NO_FRAME
    assert [e.display_name for e in entries[1:]] == ["Autumn", "Gold Party Frame", "Zebra"]
    assert entries[2].id == "gold_party-frame"
    assert entries[2].image_ref == frames_dir / "gold_party-frame.png"


def test_missing_directory_only_offers_no_frame(tmp_path):
    assert FrameCatalog(tmp_path / "missing").entries() == [NO_FRAME]


def test_load_and_preview(frames_dir):
    catalog = FrameCatalog(frames_dir)
    entry = catalog.get("zebra")

    pixels = catalog.load(entry)
    assert pixels.shape == (60, 40, 4)
    assert tuple(pixels[0, 0]) == (200, 30, 30, 255)

    thumb = catalog.preview(entry, 20, 20)
    assert thumb.shape[:2] == (20, 13)
    assert catalog.preview_data_url(entry).startswith("data:image/png;base64,")


def test_no_frame_has_nothing_to_load(frames_dir):
    catalog = FrameCatalog(frames_dir)
    assert catalog.load(NO_FRAME) is None
    assert catalog.preview(NO_FRAME) is None
    assert catalog.get("none") is NO_FRAME


def test_unknown_frame_id(frames_dir):
    with pytest.raises(KeyError):
        FrameCatalog(frames_dir).get("sparkles")


def test_preview_defaults_to_configured_size(frames_dir):
    catalog = FrameCatalog.from_config(CompositeConfig(frames_dir=frames_dir, preview_size=(30, 30)))
    entry = catalog.get("zebra")

    assert catalog.directory == frames_dir
    assert catalog.preview(entry).shape[:2] == (30, 20)
    # explicit bounds still win
    assert catalog.preview(entry, 20, 20).shape[:2] == (20, 13)
