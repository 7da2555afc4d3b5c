from PIL import Image

from booth import cli
from booth.composite.codec import encode_image
from conftest import FakeStream, solid


def write_photo(path, color):
    path.write_bytes(encode_image(solid(60, 80, color), "PNG"))
    return path


def test_composite_command(tmp_path, monkeypatch):
    monkeypatch.delenv("BOOTH_CONFIG", raising=False)
    photos = [
        write_photo(tmp_path / f"{i}.png", color)
        for i, color in enumerate([(255, 0, 0, 255), (0, 255, 0, 255), (0, 0, 255, 255), (9, 9, 9, 255)])
    ]
    out = tmp_path / "out" / "print.png"

    code = cli.main(["--log-level", "warning", "composite", "--grid", "4x6-4cut", *map(str, photos), "-o", str(out)])

    assert code == 0
    with Image.open(out) as img:
        assert img.size == (1199, 1799)


def test_composite_command_with_frame(tmp_path, monkeypatch):
    monkeypatch.delenv("BOOTH_CONFIG", raising=False)
    frames = tmp_path / "frames"
    frames.mkdir()
    write_photo(frames / "party.png", (0, 0, 0, 0))
    config = tmp_path / "booth.yaml"
    config.write_text(f"composite:\n  frames_dir: {frames}\n")
    photo = write_photo(tmp_path / "solo.png", (255, 0, 0, 255))
    out = tmp_path / "framed.jpg"

    code = cli.main(["--config", str(config), "composite", "--grid", "4x6-single", str(photo),
                     "-o", str(out), "--frame", "party"])

    assert code == 0
    with Image.open(out) as img:
        assert img.size == (1350, 2010)


def test_composite_command_reports_bad_input(tmp_path, monkeypatch):
    monkeypatch.delenv("BOOTH_CONFIG", raising=False)
    photo = write_photo(tmp_path / "only.png", (1, 2, 3, 255))

    code = cli.main(["composite", "--grid", "4x6-4cut", str(photo), "-o", str(tmp_path / "x.jpg")])

    assert code == 1
    assert not (tmp_path / "x.jpg").exists()


def test_frames_command(tmp_path, capsys, monkeypatch):
    monkeypatch.delenv("BOOTH_CONFIG", raising=False)
    write_photo(tmp_path / "gold-star.png", (0, 0, 0, 0))

    assert cli.main(["frames", "--dir", str(tmp_path)]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("none")
    assert "Gold Star" in lines[1]


def test_capture_command(tmp_path, monkeypatch):
    monkeypatch.delenv("BOOTH_CONFIG", raising=False)
    stream = FakeStream()
    monkeypatch.setattr("booth.pipeline.controller.open_camera_stream", lambda config: stream)
    config = tmp_path / "booth.yaml"
    config.write_text("pipeline:\n  enable_face_detection: false\n")
    out = tmp_path / "still.png"

    code = cli.main(["--config", str(config), "capture", "-o", str(out), "--filter", "warm_tone", "--frames", "3"])

    assert code == 0
    assert stream.closed
    with Image.open(out) as img:
        assert img.size == (64, 48)


def test_capture_command_stores_session_photo(tmp_path, monkeypatch, capsys):
    monkeypatch.delenv("BOOTH_CONFIG", raising=False)
    photos = tmp_path / "kiosk-photos"
    monkeypatch.setenv("BOOTH_PHOTOS_DIR", str(photos))
    stream = FakeStream()
    monkeypatch.setattr("booth.pipeline.controller.open_camera_stream", lambda config: stream)
    config = tmp_path / "booth.yaml"
    config.write_text("pipeline:\n  enable_face_detection: false\n"
                      "storage:\n  base_url: http://booth.local/photos\n")
    out = tmp_path / "still.jpg"

    code = cli.main(["--config", str(config), "capture", "-o", str(out), "--frames", "2", "--session", "abc"])

    assert code == 0
    stored = list(photos.glob("photo_abc_*.jpg"))
    assert len(stored) == 1
    with Image.open(stored[0]) as img:
        assert img.size == (64, 48)
    assert f"http://booth.local/photos/{stored[0].name}" in capsys.readouterr().out
