"""
Pytest configuration and shared fixtures for Trail Cam Sorter tests.

This module provides:
- Synthetic frame fixtures (no video files needed)
- Metadata and clock fixtures
- A scripted stand-in for the frame pipeline, so sorting runs without
  ffmpeg or tesseract installed

Usage:
    pytest tests/ -v
    pytest tests/test_postprocessing.py -v
    pytest tests/test_sorter.py -k "dry_run" -v
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
import pytest

# Add parent directory to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from trailcam_core import (  # noqa: E402
    DecodeFailure,
    FrameAttempt,
    FrameFailure,
    ParseFailure,
    SorterConfig,
    TrailCamMetadata,
)


# =============================================================================
# Frame Fixtures
# =============================================================================

@pytest.fixture
def white_frame() -> np.ndarray:
    """Full HD all-white BGR frame."""
    return np.full((1080, 1920, 3), 255, dtype=np.uint8)


@pytest.fixture
def noisy_frame() -> np.ndarray:
    """Full HD BGR frame with seeded random content."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(1080, 1920, 3), dtype=np.uint8)


# =============================================================================
# Metadata Fixtures
# =============================================================================

@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 10, 18, 12, 0, 0)


@pytest.fixture
def cam1_metadata() -> TrailCamMetadata:
    return TrailCamMetadata(
        timestamp=datetime(2021, 6, 15, 8, 30, 0),
        camera_name="CAM1"
    )


# =============================================================================
# Pipeline Doubles
# =============================================================================

Outcome = Union[TrailCamMetadata, FrameFailure]


class ScriptedPipeline:
    """
    Stand-in for FrameProcessingPipeline.

    outcomes maps a file name to either one outcome used for every frame,
    or a dict of frame index -> outcome. Frames with no scripted outcome
    fail with DecodeFailure.
    """

    def __init__(self, outcomes: Dict[str, Union[Outcome, Dict[int, Outcome]]]):
        self.outcomes = outcomes
        self.calls: List[Tuple[str, int]] = []

    def _outcome(self, name: str, frame_index: int) -> Optional[Outcome]:
        scripted = self.outcomes.get(name)
        if isinstance(scripted, dict):
            return scripted.get(frame_index)
        return scripted

    def run(self, source, frame_index, frame_rate, region_specs) -> TrailCamMetadata:
        self.calls.append((Path(source).name, frame_index))
        outcome = self._outcome(Path(source).name, frame_index)
        if outcome is None:
            raise DecodeFailure(f"no frame {frame_index}")
        if isinstance(outcome, FrameFailure):
            raise outcome
        return outcome

    def attempt(self, source, frame_index, frame_rate, region_specs) -> FrameAttempt:
        try:
            metadata = self.run(source, frame_index, frame_rate, region_specs)
        except FrameFailure as e:
            return FrameAttempt(frame_index=frame_index, failure=e)
        return FrameAttempt(frame_index=frame_index, metadata=metadata)


@pytest.fixture
def scripted_pipeline():
    """Factory for ScriptedPipeline instances."""
    return ScriptedPipeline


@pytest.fixture
def parse_failure() -> ParseFailure:
    return ParseFailure("Invalid OCR text.")


# =============================================================================
# Filesystem Fixtures
# =============================================================================

@pytest.fixture
def input_tree(tmp_path) -> Path:
    """
    Input directory laid out like an SD card dump:

        in/DCIM/100MEDIA/IMG_0001.MP4
        in/DCIM/100MEDIA/IMG_0002.MP4
        in/DCIM/100MEDIA/IMG_0010.MP4
        in/DCIM/.DS_Store
        in/notes.txt
    """
    root = tmp_path / "in"
    media = root / "DCIM" / "100MEDIA"
    media.mkdir(parents=True)
    for name in ("IMG_0001.MP4", "IMG_0002.MP4", "IMG_0010.MP4"):
        (media / name).write_bytes(name.encode())
    (root / "DCIM" / ".DS_Store").write_bytes(b"junk")
    (root / "notes.txt").write_text("not media")
    return root


@pytest.fixture
def sorter_config(input_tree, tmp_path) -> SorterConfig:
    return SorterConfig(
        input_dir=input_tree,
        output_dir=tmp_path / "out",
        dry_run=False,
        corrections=None,
    )
