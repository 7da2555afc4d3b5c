"""Command-line entry point for the booth core.

Usage:
    booth composite --grid 4x6-4cut a.jpg b.jpg c.jpg d.jpg -o print.jpg --frame gold-party
    booth frames --dir frames
    booth capture -o still.jpg --filter warm_tone --frames 30
    booth capture -o still.jpg --session abc123

Commands:
    - composite : lay photos out on a grid and optionally merge a frame overlay
    - frames    : list the frame catalog
    - capture   : open the configured camera, render a few frames and save a still
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from booth.composite import CellPolicy, FrameCatalog, apply_frame, get_grid, layout
from booth.config import BoothConfig, load_config
from booth.errors import BoothError
from booth.pipeline import CameraPipeline, ManualFrameScheduler, filter_options
from booth.storage import PhotoStore

LOGGER = logging.getLogger(__name__)
LOG_LEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def _configure_logging(level: str) -> None:
    numeric = LOG_LEVELS.get(level.lower())
    if numeric is None:
        raise ValueError(f"Unknown log level '{level}'. Choose from {list(LOG_LEVELS)}")

    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=numeric, format="%(asctime)s [%(name)s] [%(levelname)s] %(message)s")
    logging.getLogger().setLevel(numeric)
    LOGGER.debug("Logging configured at %s", level.upper())


def _format_for(path: Path) -> str:
    return "PNG" if path.suffix.lower() == ".png" else "JPEG"


def run_composite(config: BoothConfig, grid_id: str, images: List[Path], output: Path,
                  frame: Optional[str] = None, policy: Optional[str] = None) -> Path:
    grid = get_grid(grid_id)
    composite = layout(
        images,
        grid,
        dpi=config.composite.dpi,
        gap_px=config.composite.gap_px,
        policy=CellPolicy(policy or config.composite.policy),
    )
    LOGGER.info("Composite %s built at %dx%d", grid.id, composite.width, composite.height)

    result = composite
    if frame:
        catalog = FrameCatalog.from_config(config.composite)
        entry = catalog.get(frame)
        result = apply_frame(composite, catalog.load(entry), grid=grid,
                             dpi=config.composite.dpi, frame_id=entry.id)
        LOGGER.info("Frame '%s' applied, output is %dx%d", entry.display_name, result.width, result.height)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(result.encode(_format_for(output)))
    print(f"Saved composite to {output}")
    return output


def run_frames(config: BoothConfig, directory: Optional[Path] = None) -> None:
    catalog = FrameCatalog.from_config(config.composite)
    if directory is not None:
        catalog.directory = Path(directory)
    for entry in catalog.entries():
        location = entry.image_ref if entry.image_ref is not None else "-"
        print(f"{entry.id:<24} {entry.display_name:<28} {location}")


def run_capture(config: BoothConfig, output: Path, filter_name: Optional[str] = None, frames: int = 30,
                session: Optional[str] = None) -> Path:
    scheduler = ManualFrameScheduler()
    pipeline = CameraPipeline(
        camera_config=config.camera,
        scheduler=scheduler,
        default_filter=filter_name or config.pipeline.default_filter,
        adjustments=config.pipeline.adjustments,
        enable_face_detection=config.pipeline.enable_face_detection,
        detection_stride=config.pipeline.detection_stride,
        startup_timeout=config.camera.startup_timeout,
    )

    pipeline.start()
    try:
        scheduler.run(max(1, frames))
        photo = pipeline.capture_photo(_format_for(output))
    finally:
        pipeline.stop()

    if photo is None:
        raise BoothError("No frame was rendered, nothing to capture")

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(photo.data)
    print(f"Saved {photo.width}x{photo.height} still to {output} after {pipeline.frame_count} frames")
    if session:
        saved = PhotoStore.from_config(config.storage).save_photo(photo.to_data_url(), session)
        print(f"Stored session photo {saved['filename']} at {saved['url']}")
    return output


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="booth", description="Photo booth camera and compositing tools")
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS.keys(),
        default="info",
        help="Logging verbosity",
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML config file (defaults to $BOOTH_CONFIG)")
    sub = parser.add_subparsers(dest="command", required=True)

    composite = sub.add_parser("composite", help="Build a print composite from photos")
    composite.add_argument("--grid", required=True, help="Grid preset id, e.g. 4x6-4cut or strip-grid")
    composite.add_argument("images", nargs="+", type=Path, help="Photos in capture order")
    composite.add_argument("-o", "--output", type=Path, required=True, help="Output image (.jpg or .png)")
    composite.add_argument("--frame", default=None, help="Frame id from the catalog")
    composite.add_argument("--policy", choices=[p.value for p in CellPolicy], default=None,
                           help="How photos fill their cells")

    frames = sub.add_parser("frames", help="List available frame overlays")
    frames.add_argument("--dir", type=Path, default=None, help="Frame directory")

    capture = sub.add_parser("capture", help="Capture one still from the camera")
    capture.add_argument("-o", "--output", type=Path, required=True, help="Output image (.jpg or .png)")
    capture.add_argument("--filter", default=None, choices=[o["id"] for o in filter_options()],
                         help="Filter applied to the preview")
    capture.add_argument("--frames", type=int, default=30, help="Frames rendered before capturing")
    capture.add_argument("--session", default=None, help="Also store the still in the photo store under this session id")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.log_level)

    try:
        config = load_config(args.config)
        if args.command == "composite":
            run_composite(config, args.grid, args.images, args.output, args.frame, args.policy)
        elif args.command == "frames":
            run_frames(config, args.dir)
        elif args.command == "capture":
            run_capture(config, args.output, args.filter, args.frames, args.session)
    except (BoothError, KeyError, OSError) as e:
        LOGGER.error("%s failed: %s", args.command, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
