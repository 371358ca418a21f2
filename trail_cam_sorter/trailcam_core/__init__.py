"""
Core module for the Trail Cam Sorter.

This package contains modular components for metadata extraction and sorting:
- utils: Data classes, error types, region table, and file I/O
- config: Run configuration and validation
- preprocessing: Region cropping and composite image assembly
- recognition: Tesseract OCR wrapper
- postprocessing: OCR text parsing and validation
- video: Frame extraction, single-frame pipeline, and retry scheduling
- destination: Destination path planning and file moves
- sorter: Run orchestration over an input tree
"""

# Data classes and errors
from .utils import (
    RegionSpec,
    DEFAULT_REGION_SPECS,
    BoundingBox,
    TrailCamMetadata,
    FrameAttempt,
    FileResolution,
    TrailCamError,
    FrameFailure,
    DecodeFailure,
    CompositionFailure,
    RecognitionFailure,
    ParseFailure,
    ValidationFailure,
    RenameFailure,
    CleanupFailure,
    ConfigurationError,
)

# File I/O utilities
from .utils import (
    load_corrections,
    DebugImageWriter,
    delete_empty_dirs,
)

# Configuration
from .config import SorterConfig, load_yaml_config

# Preprocessing
from .preprocessing import RegionCompositor

# Recognition
from .recognition import TextRecognizer

# Postprocessing
from .postprocessing import MetadataParser

# Pipelines
from .video import FrameExtractor, FrameProcessingPipeline, RetryScheduler

# Destination
from .destination import DestinationPathPlanner

# Orchestration
from .sorter import TrailCamSorter, RunSummary


__all__ = [
    # Data classes
    "RegionSpec",
    "DEFAULT_REGION_SPECS",
    "BoundingBox",
    "TrailCamMetadata",
    "FrameAttempt",
    "FileResolution",
    # Errors
    "TrailCamError",
    "FrameFailure",
    "DecodeFailure",
    "CompositionFailure",
    "RecognitionFailure",
    "ParseFailure",
    "ValidationFailure",
    "RenameFailure",
    "CleanupFailure",
    "ConfigurationError",
    # File I/O
    "load_corrections",
    "DebugImageWriter",
    "delete_empty_dirs",
    # Configuration
    "SorterConfig",
    "load_yaml_config",
    # Preprocessing
    "RegionCompositor",
    # Recognition
    "TextRecognizer",
    # Postprocessing
    "MetadataParser",
    # Pipelines
    "FrameExtractor",
    "FrameProcessingPipeline",
    "RetryScheduler",
    # Destination
    "DestinationPathPlanner",
    # Orchestration
    "TrailCamSorter",
    "RunSummary",
]
