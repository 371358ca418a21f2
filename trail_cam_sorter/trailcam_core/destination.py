"""
Destination paths and moves for the Trail Cam Sorter.

Layout: <output>/<camera>/<YYYY-MM-DD>/<camera>-<YYYY-MM-DD-HH-MM-SS>[-N].<ext>
"""

import shutil
from pathlib import Path
from typing import Optional

from .utils import RenameFailure, TrailCamMetadata


class DestinationPathPlanner:
    """Computes collision-free destination paths for sorted files."""

    def canonical_path(
        self,
        output_root: Path,
        metadata: TrailCamMetadata,
        extension: str,
        sequence: int = 0
    ) -> Path:
        ext = extension.lstrip(".").lower()
        stem = f"{metadata.camera_name}-{metadata.timestamp_slug}"
        if sequence:
            stem = f"{stem}-{sequence}"
        name = f"{stem}.{ext}" if ext else stem

        return Path(output_root) / metadata.camera_name / metadata.date_folder / name

    def plan(
        self,
        output_root: Path,
        metadata: TrailCamMetadata,
        extension: str,
        source: Optional[Path] = None
    ) -> Path:
        """
        Pick the first destination that does not exist yet.

        If a candidate is the source file itself, the file is already in
        place and that candidate is returned.
        """
        source_resolved = Path(source).resolve() if source else None

        sequence = 0
        while True:
            candidate = self.canonical_path(output_root, metadata, extension, sequence)
            if not candidate.exists():
                return candidate
            if source_resolved is not None and candidate.resolve() == source_resolved:
                return candidate
            sequence += 1

    def move(self, source: Path, destination: Path) -> Path:
        """Move source to destination, creating parent directories."""
        source = Path(source)
        destination = Path(destination)

        if destination.exists():
            if destination.resolve() == source.resolve():
                return destination
            raise RenameFailure(f"Destination already exists: {destination}")

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RenameFailure(
                f"Failed to create directory for renamed file: {destination.parent} ({e})"
            ) from e

        try:
            shutil.move(str(source), str(destination))
        except OSError as e:
            raise RenameFailure(f"Failed to rename file: {source} -> {destination} ({e})") from e

        return destination
