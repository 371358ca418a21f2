"""
Run configuration for the Trail Cam Sorter.

Values come from command-line flags, an optional YAML file, and environment
variables for the external tool locations. Everything is validated once,
before any file is touched.
"""

import os
import shutil
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .utils import DEFAULT_REGION_SPECS, ConfigurationError, RegionSpec


DEFAULT_CORRECTIONS_FILE = "camera-name-corrections.json"
DEFAULT_TESSDATA_DIR = "/usr/local/share/tessdata"

IGNORED_FILES = (
    ".DS_Store",
    "Thumbs.db",
    "$RECYCLE.BIN",
    ".Spotlight-V100",
    "System Volume Information",
    ".fseventsd",
    ".Trashes",
    ".TemporaryItems",
)

# Deleted from the input tree before sorting
JUNK_FILES = (".DS_Store", "Thumbs.db")

VIDEO_EXTENSIONS = {
    "avi", "mp4", "mkv", "mov", "wmv", "flv", "webm", "3gp", "mpeg", "asf", "ogg",
}

# Single-frame containers: every candidate frame maps to frame 0
IMAGE_EXTENSIONS = {
    "jpeg", "png", "gif", "bmp", "tiff", "tga", "psd",
}

MEDIA_EXTENSIONS = VIDEO_EXTENSIONS | IMAGE_EXTENSIONS


@dataclass
class SorterConfig:
    input_dir: Path = Path(".")
    output_dir: Path = Path(".")
    dry_run: bool = True
    limit: int = 0
    debug: bool = False
    corrections: Optional[str] = DEFAULT_CORRECTIONS_FILE
    tessdata: str = field(default_factory=lambda: os.environ.get("TRAILCAM_TESSDATA", DEFAULT_TESSDATA_DIR))
    ffmpeg: str = field(default_factory=lambda: os.environ.get("TRAILCAM_FFMPEG", "ffmpeg"))
    tesseract: str = field(default_factory=lambda: os.environ.get("TRAILCAM_TESSERACT", "tesseract"))
    lang: str = "eng"
    frame_limit: int = 100
    frame_skip: int = 10
    frame_rate: float = 30.0
    max_age_years: int = 41
    timeout: float = 60.0
    canvas_width: int = 520
    canvas_height: int = 60
    regions: Tuple[RegionSpec, ...] = DEFAULT_REGION_SPECS

    @property
    def debug_dir(self) -> Optional[Path]:
        return self.output_dir / "debug" if self.debug else None

    @property
    def corrections_required(self) -> bool:
        return bool(self.corrections) and self.corrections != DEFAULT_CORRECTIONS_FILE

    def updated(self, values: Dict[str, Any]) -> 'SorterConfig':
        """Return a copy with known keys overridden; unknown keys are rejected."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

        values = dict(values)
        for key in ("input_dir", "output_dir"):
            if key in values and values[key] is not None:
                values[key] = Path(values[key])
        if "regions" in values:
            values["regions"] = parse_regions(values["regions"])

        return replace(self, **values)

    def validate(self) -> 'SorterConfig':
        """
        Check the run can start and resolve external tool commands.

        Returns:
            A copy with ffmpeg/tesseract resolved to absolute paths
        """
        if not self.input_dir.is_dir():
            raise ConfigurationError(f"Input directory does not exist: {self.input_dir}")

        if not str(self.output_dir):
            raise ConfigurationError("Output directory is required.")

        if self.limit < 0:
            raise ConfigurationError(f"limit must be >= 0, got {self.limit}")
        if self.frame_limit < 1 or self.frame_skip < 1:
            raise ConfigurationError("frame_limit and frame_skip must be positive.")
        if self.frame_rate <= 0:
            raise ConfigurationError(f"frame_rate must be positive, got {self.frame_rate}")
        if self.max_age_years < 0:
            raise ConfigurationError(f"max_age_years must be >= 0, got {self.max_age_years}")
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        if not self.regions:
            raise ConfigurationError("At least one region is required.")

        ffmpeg_path = resolve_command(self.ffmpeg, "ffmpeg")
        tesseract_path = resolve_command(self.tesseract, "tesseract")

        if not Path(self.tessdata).is_dir():
            raise ConfigurationError(f"tessdata directory does not exist: {self.tessdata}")

        return replace(self, ffmpeg=ffmpeg_path, tesseract=tesseract_path)


def resolve_command(command: str, tool: str) -> str:
    path = shutil.which(command)
    if not path:
        raise ConfigurationError(f"Failed to load {tool} path: '{command}' not found")
    return path


def parse_regions(raw: Any) -> Tuple[RegionSpec, ...]:
    """Build the region table from a YAML list of mappings."""
    if not isinstance(raw, (list, tuple)) or not raw:
        raise ConfigurationError("regions must be a non-empty list")

    regions: List[RegionSpec] = []
    for entry in raw:
        if isinstance(entry, RegionSpec):
            regions.append(entry)
            continue
        try:
            regions.append(RegionSpec(
                label=str(entry["label"]),
                center_x=float(entry["center_x"]),
                center_y=float(entry["center_y"]),
                width=float(entry["width"]),
                height=float(entry["height"]),
            ))
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid region entry {entry!r}: {e}") from e

    return tuple(regions)


def load_yaml_config(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file must contain a mapping: {path}")
    return data
