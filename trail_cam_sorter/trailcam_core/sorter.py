"""
Run orchestration for the Trail Cam Sorter.

Walks the input tree, resolves metadata for each media file, and moves
files into the output layout.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from .config import IGNORED_FILES, JUNK_FILES, MEDIA_EXTENSIONS, SorterConfig
from .destination import DestinationPathPlanner
from .postprocessing import MetadataParser
from .preprocessing import RegionCompositor
from .recognition import TextRecognizer
from .utils import (
    DebugImageWriter, FileResolution, delete_empty_dirs, load_corrections,
    natural_sort_key
)
from .video import FrameExtractor, FrameProcessingPipeline, RetryScheduler


@dataclass
class RunContext:
    """Mutable per-run state."""
    config: SorterConfig
    input_files: List[Path] = field(default_factory=list)
    media_total: int = 0
    files_processed: int = 0
    files_sorted: int = 0
    files_skipped: int = 0
    remaining_limit: int = 0
    timer_start: datetime = field(default_factory=datetime.now)

    @property
    def elapsed(self) -> str:
        seconds = int((datetime.now() - self.timer_start).total_seconds())
        return f"{seconds // 3600:02d}:{(seconds % 3600) // 60:02d}:{seconds % 60:02d}"


@dataclass
class FileOutcome:
    source: Path
    resolution: FileResolution
    destination: Optional[Path] = None
    moved: bool = False


@dataclass
class RunSummary:
    files_total: int = 0
    files_processed: int = 0
    files_sorted: int = 0
    files_skipped: int = 0
    outcomes: List[FileOutcome] = field(default_factory=list)


class TrailCamSorter:
    """Sorts trail camera media into <output>/<camera>/<date>/ by burned-in metadata."""

    def __init__(
        self,
        config: SorterConfig,
        pipeline: Optional[FrameProcessingPipeline] = None,
        planner: Optional[DestinationPathPlanner] = None
    ):
        self.config = config
        self.planner = planner or DestinationPathPlanner()
        self.pipeline = pipeline
        self.scheduler = None
        self.context = RunContext(config=config, remaining_limit=config.limit)

    def _build_pipeline(self) -> FrameProcessingPipeline:
        config = self.config
        debug_writer = DebugImageWriter(config.debug_dir)
        corrections = load_corrections(config.corrections, required=config.corrections_required)
        if corrections:
            print(f"[Sorter] Loaded {len(corrections)} camera name corrections")

        return FrameProcessingPipeline(
            extractor=FrameExtractor(
                ffmpeg_cmd=config.ffmpeg,
                frame_rate=config.frame_rate,
                timeout=config.timeout,
                debug_writer=debug_writer
            ),
            compositor=RegionCompositor(
                canvas_width=config.canvas_width,
                canvas_height=config.canvas_height
            ),
            recognizer=TextRecognizer(
                tesseract_cmd=config.tesseract,
                tessdata_dir=config.tessdata,
                lang=config.lang,
                timeout=config.timeout,
                verbose=config.debug
            ),
            parser=MetadataParser(
                corrections=corrections,
                max_age_years=config.max_age_years,
                expected_lines=len(config.regions),
                verbose=config.debug
            ),
            debug_writer=debug_writer
        )

    def setup(self):
        """Create output directories and build the processing pipeline."""
        config = self.config

        if not config.dry_run:
            config.output_dir.mkdir(parents=True, exist_ok=True)
        if config.debug_dir is not None:
            config.debug_dir.mkdir(parents=True, exist_ok=True)

        if self.pipeline is None:
            self.pipeline = self._build_pipeline()
        self.scheduler = RetryScheduler(
            self.pipeline,
            frame_limit=config.frame_limit,
            frame_skip=config.frame_skip
        )

    # -------------------------------------------------------------------------
    # File selection
    # -------------------------------------------------------------------------

    def delete_junk_files(self) -> List[Path]:
        if self.config.dry_run:
            return []

        deleted = []
        for name in JUNK_FILES:
            for path in self.config.input_dir.rglob(name):
                if path.is_file():
                    path.unlink()
                    deleted.append(path)
        return deleted

    def is_ignored(self, path: Path) -> bool:
        relative = path.relative_to(self.config.input_dir)
        return any(part in IGNORED_FILES for part in relative.parts)

    def is_media_file(self, path: Path) -> bool:
        return path.suffix.lstrip(".").lower() in MEDIA_EXTENSIONS

    def _is_under(self, path: Path, root: Optional[Path]) -> bool:
        if root is None:
            return False
        try:
            path.resolve().relative_to(root.resolve())
        except ValueError:
            return False
        return True

    def load_input_files(self) -> List[Path]:
        """All files under the input root, naturally sorted."""
        config = self.config
        output_nested = (
            config.output_dir.resolve() != config.input_dir.resolve()
            and self._is_under(config.output_dir, config.input_dir)
        )

        files = []
        for path in config.input_dir.rglob("*"):
            if not path.is_file():
                continue
            if output_nested and self._is_under(path, config.output_dir):
                continue
            if self._is_under(path, config.debug_dir):
                continue
            files.append(path)

        files.sort(key=lambda p: natural_sort_key(str(p)))
        self.context.input_files = files
        return files

    # -------------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------------

    def run(self) -> RunSummary:
        """Process every media file in the input tree."""
        self.setup()
        self.delete_junk_files()

        files = self.load_input_files()
        summary = RunSummary(files_total=len(files))
        self.context.media_total = sum(
            1 for path in files if not self.is_ignored(path) and self.is_media_file(path)
        )
        tqdm.write(f"[Sorter] Found {len(files)} file(s) in {self.config.input_dir}")

        for path in tqdm(files, desc="Sorting files"):
            if self.is_ignored(path) or not self.is_media_file(path):
                continue

            outcome = self.process_file(path)
            summary.outcomes.append(outcome)

            if outcome.resolution.succeeded:
                self.print_status(outcome)

            self.prune_around(path)
            self.context.files_processed += 1

            if self.has_reached_limit():
                tqdm.write(f"[Sorter] Reached processing limit of {self.config.limit}")
                break

        if not self.config.dry_run:
            delete_empty_dirs(self.config.input_dir, keep=self._kept_dirs())

        summary.files_processed = self.context.files_processed
        summary.files_sorted = self.context.files_sorted
        summary.files_skipped = self.context.files_skipped
        return summary

    def process_file(self, path: Path) -> FileOutcome:
        """Resolve metadata for one file and move it. RenameFailure propagates."""
        config = self.config
        resolution = self.scheduler.resolve(path, config.frame_rate, config.regions)
        outcome = FileOutcome(source=path, resolution=resolution)

        if not resolution.succeeded:
            self.context.files_skipped += 1
            tqdm.write(
                f"[Sorter] Could not extract metadata from any of "
                f"{len(resolution.attempts)} frames, leaving in place: {path}"
            )
            return outcome

        destination = self.planner.plan(
            config.output_dir, resolution.metadata, path.suffix, source=path
        )
        outcome.destination = destination

        if destination.resolve() == path.resolve():
            tqdm.write(f"[Rename] Already sorted: {path}")
        elif config.dry_run:
            tqdm.write(f"[Rename] (dry run) {path} -> {destination}")
        else:
            self.planner.move(path, destination)
            outcome.moved = True

        self.context.files_sorted += 1
        return outcome

    def _kept_dirs(self):
        return (self.config.output_dir, self.config.debug_dir)

    def prune_around(self, path: Path):
        """Delete empty directories near a processed file, staying inside the input root."""
        if self.config.dry_run:
            return

        root = self.config.input_dir
        scope = path.parent.parent
        if not self._is_under(scope, root):
            scope = root
        delete_empty_dirs(scope, keep=self._kept_dirs())

    def has_reached_limit(self) -> bool:
        if self.config.limit <= 0:
            return False
        self.context.remaining_limit -= 1
        return self.context.remaining_limit <= 0

    def print_status(self, outcome: FileOutcome):
        processed = self.context.files_processed + 1
        total = self.context.media_total
        percent = processed / total * 100 if total else 100.0
        metadata = outcome.resolution.metadata

        lines = [
            f"Progress: {processed:,} of {total:,} ({percent:.2f}%)",
            f"Input File: {outcome.source}",
            f"Output File: {outcome.destination}",
            f"Timestamp: {metadata.timestamp:%Y-%m-%d %H:%M:%S}",
            f"Camera Name: {metadata.camera_name}",
            f"Elapsed Time: {self.context.elapsed}",
        ]
        tqdm.write("\n".join(lines) + "\n")
