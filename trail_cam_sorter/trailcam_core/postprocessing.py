"""
Text postprocessing for the Trail Cam Sorter.

Turns raw OCR output into validated metadata: line splitting, timestamp
parsing with a plausibility bound, and camera name normalization with an
optional correction mapping.
"""

import re
from datetime import datetime
from typing import Callable, Dict, List, Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from .utils import ParseFailure, TrailCamMetadata, ValidationFailure


CAMERA_NAME_DISALLOWED = re.compile(r'[^A-Za-z0-9. ]')


class MetadataParser:
    """Parses and validates the timestamp and camera name lines."""

    def __init__(
        self,
        corrections: Optional[Dict[str, str]] = None,
        max_age_years: int = 41,
        expected_lines: int = 2,
        now: Optional[Callable[[], datetime]] = None,
        verbose: bool = False
    ):
        self.corrections = dict(corrections or {})
        self.max_age_years = max_age_years
        self.expected_lines = expected_lines
        self.now = now or datetime.now
        self.verbose = verbose

    def parse(self, raw_text: str) -> TrailCamMetadata:
        """
        Parse OCR text into metadata.

        Line 0 is the timestamp, line 1 the camera name. Blank lines are
        ignored.
        """
        lines = self.split_lines(raw_text)
        if len(lines) < self.expected_lines:
            raise ParseFailure(
                f"Invalid OCR text: expected {self.expected_lines} lines, got {len(lines)}."
            )

        timestamp_text = lines[0].strip()
        camera_text = lines[1].strip()

        if self.verbose:
            print(f"[Parse] timestamp={timestamp_text!r} camera_name={camera_text!r}")

        if not timestamp_text or not camera_text:
            raise ParseFailure("Failed to parse OCR text.")

        return TrailCamMetadata(
            timestamp=self.validate_timestamp(timestamp_text),
            camera_name=self.validate_camera_name(camera_text)
        )

    @staticmethod
    def split_lines(raw_text: Optional[str]) -> List[str]:
        if not raw_text:
            return []
        return [line for line in raw_text.splitlines() if line.strip()]

    def validate_timestamp(self, text: str) -> datetime:
        try:
            timestamp = date_parser.parse(text)
        except (ValueError, OverflowError) as e:
            raise ValidationFailure(f"Failed to convert timestamp text {text!r}: {e}") from e

        if timestamp.tzinfo is not None:
            timestamp = timestamp.replace(tzinfo=None)
        timestamp = timestamp.replace(microsecond=0)

        oldest = self.now() - relativedelta(years=self.max_age_years)
        if timestamp < oldest:
            raise ValidationFailure(f"Timestamp is out of range: {timestamp.isoformat()}")

        return timestamp

    def normalize_camera_name(self, text: str) -> str:
        return CAMERA_NAME_DISALLOWED.sub('', text.upper()).strip()

    def validate_camera_name(self, text: str) -> str:
        name = self.normalize_camera_name(text)
        name = self.corrections.get(name, name)

        # "." and ".." would escape the output tree
        if not name.strip(". "):
            raise ValidationFailure(f"Camera name is empty after normalization: {text!r}")

        return name
