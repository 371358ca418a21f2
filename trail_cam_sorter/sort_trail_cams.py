#!/usr/bin/env python3
"""
Trail Cam Sorter

Reads the timestamp and camera name burned into trail camera video frames
and moves each file to <output>/<camera>/<YYYY-MM-DD>/<camera>-<timestamp>.<ext>.

Usage:
    python sort_trail_cams.py --input /media/sdcard --output ~/trailcam
    python sort_trail_cams.py --input in/ --output out/ --no_dry_run --limit 50
    python sort_trail_cams.py --config configs/sorter_config.yaml --debug
"""

import argparse
import sys
from typing import Any, Dict, List, Optional

from trailcam_core import (
    ConfigurationError,
    SorterConfig,
    TrailCamError,
    TrailCamSorter,
    load_yaml_config,
)


# Command-line flag -> SorterConfig field
ARG_TO_FIELD = {
    "input": "input_dir",
    "output": "output_dir",
    "limit": "limit",
    "corrections": "corrections",
    "tessdata": "tessdata",
    "ffmpeg": "ffmpeg",
    "tesseract": "tesseract",
    "lang": "lang",
    "frame_limit": "frame_limit",
    "frame_skip": "frame_skip",
    "frame_rate": "frame_rate",
    "max_age_years": "max_age_years",
    "timeout": "timeout",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sort trail camera media by burned-in timestamp and camera name",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Preview what would be moved (dry run is the default)
  python sort_trail_cams.py --input /media/sdcard --output ~/trailcam

  # Actually move files, stop after 50
  python sort_trail_cams.py --input in/ --output out/ --no_dry_run --limit 50

  # Dump frames, composites and OCR text to <output>/debug
  python sort_trail_cams.py --input in/ --output out/ --debug

Environment:
  TRAILCAM_FFMPEG, TRAILCAM_TESSERACT, TRAILCAM_TESSDATA set tool defaults.
        """
    )

    parser.add_argument(
        "--input", "-i", default=None,
        help="Input directory containing video files (default: .)"
    )
    parser.add_argument(
        "--output", "-o", default=None,
        help="Output directory for sorted video files (default: .)"
    )
    parser.add_argument(
        "--no_dry_run", action="store_true",
        help="Move files (without this flag nothing is changed on disk)"
    )
    parser.add_argument(
        "--limit", type=int, default=None,
        help="Stop after this many media files (default: 0, unlimited)"
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="Write debug images and print OCR text"
    )
    parser.add_argument(
        "--corrections", default=None,
        help="Camera name corrections JSON file (default: camera-name-corrections.json if present)"
    )
    parser.add_argument(
        "--tessdata", default=None,
        help="tessdata directory path (default: /usr/local/share/tessdata)"
    )
    parser.add_argument(
        "--ffmpeg", default=None,
        help="ffmpeg command or path (default: ffmpeg)"
    )
    parser.add_argument(
        "--tesseract", default=None,
        help="tesseract command or path (default: tesseract)"
    )
    parser.add_argument(
        "--lang", "-l", default=None,
        help="Tesseract language code (default: eng)"
    )
    parser.add_argument(
        "--frame_limit", type=int, default=None,
        help="Last candidate frame to try (default: 100)"
    )
    parser.add_argument(
        "--frame_skip", type=int, default=None,
        help="Step between candidate frames (default: 10)"
    )
    parser.add_argument(
        "--frame_rate", type=float, default=None,
        help="Frame rate used to compute seek offsets (default: 30)"
    )
    parser.add_argument(
        "--max_age_years", type=int, default=None,
        help="Reject timestamps older than this many years (default: 41)"
    )
    parser.add_argument(
        "--timeout", type=float, default=None,
        help="Timeout in seconds for each ffmpeg/tesseract call (default: 60)"
    )

    # Config file (command-line flags take precedence)
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to YAML config file; flags given on the command line override it"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> SorterConfig:
    values: Dict[str, Any] = {}
    if args.config:
        values.update(load_yaml_config(args.config))

    # Flags given on the command line win over the config file
    for arg_name, field_name in ARG_TO_FIELD.items():
        value = getattr(args, arg_name)
        if value is not None:
            values[field_name] = value
    if args.no_dry_run:
        values["dry_run"] = False
    if args.debug:
        values["debug"] = True

    return SorterConfig().updated(values)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args).validate()
    except ConfigurationError as e:
        print(f"Error: {e}")
        return 1

    print(f"[Sorter] Input: {config.input_dir}")
    print(f"[Sorter] Output: {config.output_dir}")
    print(f"[Sorter] Dry run: {config.dry_run}")
    if config.debug:
        print(f"[Sorter] Debug dir: {config.debug_dir}")
    print()

    try:
        summary = TrailCamSorter(config).run()
    except TrailCamError as e:
        print(f"Error: {e}")
        return 1

    print("\n" + "=" * 60)
    print("SORT COMPLETE" + (" (dry run)" if config.dry_run else ""))
    print("=" * 60)
    print(f"Files found: {summary.files_total}")
    print(f"Media files processed: {summary.files_processed}")
    print(f"Sorted: {summary.files_sorted}")
    print(f"Skipped: {summary.files_skipped}")
    print("=" * 60)
    print("\nDone.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
