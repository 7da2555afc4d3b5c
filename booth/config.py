"""Configuration loading for the booth core.

Defaults are read from ``config.yaml`` next to this module. A different file
can be selected with the ``BOOTH_CONFIG`` environment variable, and the photo
directory can be moved with ``BOOTH_PHOTOS_DIR``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from booth.errors import ConfigError

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


@dataclass
class CameraConfig:
    backend: str = "opencv"
    device_index: int = 0
    resolution: Tuple[int, int] = (1280, 720)
    fps: float = 30.0
    startup_timeout: float = 5.0


@dataclass
class PipelineConfig:
    default_filter: str = "smooth_skin"
    detection_stride: int = 6
    enable_face_detection: bool = True
    adjustments: Dict[str, float] = field(default_factory=dict)


@dataclass
class CompositeConfig:
    dpi: int = 300
    gap_px: int = 5
    policy: str = "cover"
    frames_dir: Path = Path("frames")
    preview_size: Tuple[int, int] = (200, 200)


@dataclass
class StorageConfig:
    photos_dir: Path = Path("photos")
    base_url: str = "http://localhost:3001/api/photos"


@dataclass
class BoothConfig:
    camera: CameraConfig = field(default_factory=CameraConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    composite: CompositeConfig = field(default_factory=CompositeConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


def _build_section(cls, raw: Optional[Dict[str, Any]], section: str):
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigError(f"Section '{section}' must be a mapping, got {type(raw).__name__}")

    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        raise ConfigError(f"Unknown keys in '{section}': {', '.join(sorted(unknown))}")

    values = dict(raw)
    for key in ("resolution", "preview_size"):
        if key in values:
            values[key] = tuple(int(v) for v in values[key])
    for key in ("frames_dir", "photos_dir"):
        if key in values:
            values[key] = Path(values[key])
    return cls(**values)


def load_config(path: Optional[Path] = None) -> BoothConfig:
    """Load a :class:`BoothConfig` from YAML.

    :param path: Explicit file. Falls back to ``$BOOTH_CONFIG`` and then to
                 the bundled defaults.
    """
    config_path = Path(path or os.environ.get("BOOTH_CONFIG") or DEFAULT_CONFIG_PATH)

    try:
        with open(config_path, "r") as f:
            raw = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Top level of {config_path} must be a mapping")

    sections = {"camera": CameraConfig, "pipeline": PipelineConfig,
                "composite": CompositeConfig, "storage": StorageConfig}
    unknown = set(raw) - set(sections)
    if unknown:
        raise ConfigError(f"Unknown config sections: {', '.join(sorted(unknown))}")

    config = BoothConfig(**{
        name: _build_section(cls, raw.get(name), name) for name, cls in sections.items()
    })

    photos_override = os.environ.get("BOOTH_PHOTOS_DIR")
    if photos_override:
        config.storage.photos_dir = Path(photos_override)

    return config
