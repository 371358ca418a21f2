"""
Utility functions and data classes for the Trail Cam Sorter.

Contains shared data structures, error types, the region table, and
file I/O helpers (corrections, debug images, directory housekeeping).
"""

import json
import os
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import cv2
import numpy as np


# =============================================================================
# Errors
# =============================================================================

class TrailCamError(Exception):
    """Base class for every error raised by the sorter."""


class FrameFailure(TrailCamError):
    """A single candidate frame could not produce metadata."""

    kind = "frame"


class DecodeFailure(FrameFailure):
    kind = "decode"


class CompositionFailure(FrameFailure):
    kind = "composition"


class RecognitionFailure(FrameFailure):
    kind = "recognition"


class ParseFailure(FrameFailure):
    kind = "parse"


class ValidationFailure(FrameFailure):
    kind = "validation"


class RenameFailure(TrailCamError):
    """Destination directory could not be created or the move failed."""


class CleanupFailure(TrailCamError):
    """An empty directory could not be removed."""


class ConfigurationError(TrailCamError):
    """Invalid setup detected before any file is touched."""


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True)
class RegionSpec:
    """Fractional bounding box of a burned-in text region."""
    label: str
    center_x: float
    center_y: float
    width: float
    height: float

    def __post_init__(self):
        for name in ("center_x", "center_y", "width", "height"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Region '{self.label}': {name}={value} is outside [0, 1]")


# Bottom caption strip: timestamp in the middle, camera name on the right.
DEFAULT_REGION_SPECS: Tuple[RegionSpec, ...] = (
    RegionSpec("timestamp", 0.487240, 0.972685, 0.233854, 0.054630),
    RegionSpec("camera_name", 0.864844, 0.972685, 0.270313, 0.054630),
)


@dataclass
class BoundingBox:
    """Pixel bounding box of a region within one decoded frame."""
    label: str
    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    @classmethod
    def from_region(cls, spec: RegionSpec, image_width: int, image_height: int) -> 'BoundingBox':
        """
        Scale a fractional region to pixels, truncating toward zero and
        clamping to the frame.
        """
        left = int((spec.center_x - spec.width / 2) * image_width)
        top = int((spec.center_y - spec.height / 2) * image_height)
        right = int((spec.center_x + spec.width / 2) * image_width)
        bottom = int((spec.center_y + spec.height / 2) * image_height)

        return cls(
            label=spec.label,
            left=min(max(left, 0), image_width),
            top=min(max(top, 0), image_height),
            right=min(max(right, 0), image_width),
            bottom=min(max(bottom, 0), image_height),
        )

    def is_empty(self) -> bool:
        return self.left >= self.right or self.top >= self.bottom


@dataclass(frozen=True)
class TrailCamMetadata:
    """Validated timestamp and camera name read from one frame."""
    timestamp: datetime
    camera_name: str

    @property
    def date_folder(self) -> str:
        return self.timestamp.strftime("%Y-%m-%d")

    @property
    def timestamp_slug(self) -> str:
        return self.timestamp.strftime("%Y-%m-%d-%H-%M-%S")


@dataclass
class FrameAttempt:
    """Outcome of processing one candidate frame."""
    frame_index: int
    metadata: Optional[TrailCamMetadata] = None
    failure: Optional[FrameFailure] = None

    @property
    def ok(self) -> bool:
        return self.metadata is not None


@dataclass
class FileResolution:
    """Outcome of trying candidate frames for one source file."""
    source: Path
    attempts: List[FrameAttempt] = field(default_factory=list)

    @property
    def metadata(self) -> Optional[TrailCamMetadata]:
        for attempt in self.attempts:
            if attempt.ok:
                return attempt.metadata
        return None

    @property
    def succeeded(self) -> bool:
        return self.metadata is not None

    @property
    def frame_index(self) -> Optional[int]:
        for attempt in self.attempts:
            if attempt.ok:
                return attempt.frame_index
        return None


# =============================================================================
# File I/O Utilities
# =============================================================================

def load_corrections(path: Optional[str], required: bool = True) -> Dict[str, str]:
    """
    Load the camera name correction mapping.

    Args:
        path: JSON file holding an object of normalized name -> corrected name
        required: If False, a missing file yields an empty mapping

    Returns:
        Correction mapping (possibly empty)
    """
    if not path:
        return {}

    corrections_path = Path(path)
    if not corrections_path.is_file():
        if required:
            raise ConfigurationError(f"Camera name corrections file not found: {path}")
        return {}

    try:
        with open(corrections_path, "r") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Failed to load camera name corrections: {e}") from e

    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        raise ConfigurationError(
            f"Camera name corrections must be a JSON object of strings: {path}"
        )

    return data


class DebugImageWriter:
    """Writes intermediate images to the debug directory when enabled."""

    def __init__(self, debug_dir: Optional[Path] = None):
        self.debug_dir = Path(debug_dir) if debug_dir else None

    @property
    def enabled(self) -> bool:
        return self.debug_dir is not None

    def write(self, image: np.ndarray, source: Path, tag: str) -> Optional[Path]:
        if not self.enabled:
            return None

        out_path = self.debug_dir / f"{Path(source).name}-{tag}.png"
        if not cv2.imwrite(str(out_path), image):
            print(f"[Debug] Failed to write debug image: {out_path}")
            return None
        return out_path


def natural_sort_key(s: str) -> List[Any]:
    return [int(text) if text.isdigit() else text.lower() for text in re.split(r'(\d+)', s)]


def delete_empty_dirs(root: Path, keep: Tuple[Path, ...] = ()) -> List[Path]:
    """
    Remove empty directories below root, deepest first.

    The root itself and any directory in keep are left alone. Returns the
    removed directories.
    """
    root = Path(root)
    kept = {Path(p).resolve() for p in keep if p is not None}
    removed = []
    if not root.is_dir():
        return removed

    for dirpath, _, _ in os.walk(root, topdown=False):
        path = Path(dirpath)
        if path == root or path.resolve() in kept:
            continue
        if any(path.iterdir()):
            continue
        try:
            path.rmdir()
        except OSError as e:
            raise CleanupFailure(f"Failed to delete empty directory: {path} ({e})") from e
        removed.append(path)

    return removed
