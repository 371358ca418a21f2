"""
Frame extraction and per-file processing for the Trail Cam Sorter.

Contains the ffmpeg-backed frame extractor, the single-frame pipeline
(extract -> compose -> OCR -> parse), and the retry scheduler that walks
candidate frames until one yields valid metadata.
"""

import math
import subprocess
from pathlib import Path
from typing import Iterator, Optional, Sequence

import cv2
import ffmpeg
import numpy as np
from tqdm import tqdm

from .config import IMAGE_EXTENSIONS
from .postprocessing import MetadataParser
from .preprocessing import RegionCompositor
from .recognition import TextRecognizer
from .utils import (
    DecodeFailure, DebugImageWriter, FileResolution, FrameAttempt,
    FrameFailure, RegionSpec, TrailCamMetadata
)


def format_seek_offset(frame_index: int, frame_rate: float) -> str:
    """Seek offset of a frame as HH:MM:SS (whole seconds, rounded down)."""
    seconds = int(math.floor(frame_index / frame_rate))
    return f"{seconds // 3600:02d}:{(seconds % 3600) // 60:02d}:{seconds % 60:02d}"


def frame_within_second(frame_index: int, frame_rate: float) -> int:
    """Index of the frame counted from its whole-second seek offset."""
    seconds = math.floor(frame_index / frame_rate)
    return max(0, int(frame_index - seconds * frame_rate))


def is_still_image(source: Path) -> bool:
    return Path(source).suffix.lstrip(".").lower() in IMAGE_EXTENSIONS


class FrameExtractor:
    """Pulls single still frames out of a media file with ffmpeg."""

    def __init__(
        self,
        ffmpeg_cmd: str = "ffmpeg",
        frame_rate: float = 30,
        timeout: float = 60,
        debug_writer: Optional[DebugImageWriter] = None
    ):
        self.ffmpeg_cmd = ffmpeg_cmd
        self.frame_rate = frame_rate
        self.timeout = timeout
        self.debug_writer = debug_writer or DebugImageWriter()

    def selects_frame(self, source: Path, frame_index: int, frame_rate: Optional[float] = None) -> bool:
        """True if the stream skips frames after the seek point to reach frame_index."""
        if is_still_image(source):
            return False
        return frame_within_second(frame_index, frame_rate or self.frame_rate) > 0

    def build_stream(
        self,
        source: Path,
        frame_index: int,
        frame_rate: Optional[float] = None,
        select_frame: bool = True
    ):
        """
        ffmpeg stream writing the requested frame as one MJPEG image to stdout.

        Still images have a single frame, so they are read without seeking.
        With select_frame=False the first frame after the seek point is taken.
        """
        if is_still_image(source):
            stream = ffmpeg.input(str(source))
        else:
            rate = frame_rate or self.frame_rate
            stream = ffmpeg.input(str(source), ss=format_seek_offset(frame_index, rate))
            if select_frame and self.selects_frame(source, frame_index, rate):
                nth = frame_within_second(frame_index, rate)
                stream = stream.filter("select", f"gte(n,{nth})")

        return (
            stream
            .output("pipe:", vframes=1, format="image2pipe", vcodec="mjpeg")
            .global_args("-loglevel", "error")
        )

    def extract(
        self,
        source: Path,
        frame_index: int,
        frame_rate: Optional[float] = None
    ) -> np.ndarray:
        """
        Decode one frame.

        Args:
            source: Media file
            frame_index: Frame number to extract
            frame_rate: Frames per second used to compute the seek offset

        Returns:
            Decoded BGR image
        """
        stream = self.build_stream(source, frame_index, frame_rate)
        data = self._run(stream)

        # Fewer frames after the seek point than requested: take the first one there
        if not data and self.selects_frame(source, frame_index, frame_rate):
            data = self._run(self.build_stream(source, frame_index, frame_rate, select_frame=False))

        image = self.decode(data)

        self.debug_writer.write(image, source, f"{frame_index}-frame")
        return image

    def _run(self, stream) -> bytes:
        try:
            process = stream.run_async(
                cmd=self.ffmpeg_cmd, pipe_stdout=True, pipe_stderr=True
            )
        except OSError as e:
            raise DecodeFailure(f"Failed to execute ffmpeg command: {e}") from e

        try:
            out, err = process.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            process.kill()
            process.communicate()
            raise DecodeFailure(f"ffmpeg timed out after {self.timeout}s") from e

        if process.returncode != 0:
            message = err.decode(errors="replace").strip() if err else ""
            raise DecodeFailure(f"ffmpeg exited with status {process.returncode}: {message}")

        return out

    @staticmethod
    def decode(data: Optional[bytes]) -> np.ndarray:
        if not data:
            raise DecodeFailure("ffmpeg returned no frame data.")

        buffer = np.frombuffer(data, dtype=np.uint8)
        image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
        if image is None or image.size == 0:
            raise DecodeFailure("Failed to create image from frame data.")

        return image


class FrameProcessingPipeline:
    """Runs one candidate frame through extract, compose, OCR and parse."""

    def __init__(
        self,
        extractor: FrameExtractor,
        compositor: RegionCompositor,
        recognizer: TextRecognizer,
        parser: MetadataParser,
        debug_writer: Optional[DebugImageWriter] = None
    ):
        self.extractor = extractor
        self.compositor = compositor
        self.recognizer = recognizer
        self.parser = parser
        self.debug_writer = debug_writer or DebugImageWriter()

    def run(
        self,
        source: Path,
        frame_index: int,
        frame_rate: float,
        region_specs: Sequence[RegionSpec]
    ) -> TrailCamMetadata:
        """Process one frame. Raises the FrameFailure of the first stage that fails."""
        frame = self.extractor.extract(source, frame_index, frame_rate)

        composite = self.compositor.compose(frame, region_specs)
        self.debug_writer.write(composite, source, f"{frame_index}-joined")

        text = self.recognizer.recognize(composite, Path(source).name)

        return self.parser.parse(text)

    def attempt(
        self,
        source: Path,
        frame_index: int,
        frame_rate: float,
        region_specs: Sequence[RegionSpec]
    ) -> FrameAttempt:
        """Like run(), but reports a failed frame as a result instead of raising."""
        try:
            metadata = self.run(source, frame_index, frame_rate, region_specs)
        except FrameFailure as e:
            return FrameAttempt(frame_index=frame_index, failure=e)
        return FrameAttempt(frame_index=frame_index, metadata=metadata)


class RetryScheduler:
    """Tries candidate frames 1, 1+skip, ... up to the limit until one succeeds."""

    def __init__(
        self,
        pipeline: FrameProcessingPipeline,
        frame_limit: int = 100,
        frame_skip: int = 10
    ):
        if frame_skip < 1:
            raise ValueError(f"frame_skip must be positive, got {frame_skip}")
        self.pipeline = pipeline
        self.frame_limit = frame_limit
        self.frame_skip = frame_skip

    def candidate_frames(self, source: Optional[Path] = None) -> Iterator[int]:
        if source is not None and is_still_image(source):
            return iter([1])
        return iter(range(1, self.frame_limit + 1, self.frame_skip))

    def resolve(
        self,
        source: Path,
        frame_rate: float,
        region_specs: Sequence[RegionSpec]
    ) -> FileResolution:
        resolution = FileResolution(source=Path(source))

        for frame_index in self.candidate_frames(source):
            attempt = self.pipeline.attempt(source, frame_index, frame_rate, region_specs)
            resolution.attempts.append(attempt)

            if attempt.ok:
                if frame_index > 1:
                    tqdm.write(f"[Frame] Found metadata in frame {frame_index}: {Path(source).name}")
                break

            tqdm.write(
                f"[Frame] {Path(source).name} frame {frame_index}: "
                f"{attempt.failure.kind} failure: {attempt.failure}"
            )

        return resolution
