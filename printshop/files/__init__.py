"""
Files — artwork validation before a file joins an order.

    validate_file(file, config)       → FileValidationResult (pure)
    FileSelection.select_files(files) → async stream of SelectionEvent
    ArtworkRegistry.submit(file, cfg) → stored ArtworkFile with a settled status

Example:
    from printshop.files import CandidateFile, FileSelection, config_for

    selection = FileSelection(config_for("flyers"))
    async for event in selection.select_files([CandidateFile("front.pdf", "application/pdf", data)]):
        print(event.name, event.status)
"""

from printshop.files._types import (
    MB,
    GB,
    CandidateFile,
    Dimensions,
    ImageInfo,
    FileErrorCode,
    ValidationIssue,
    ValidationWarning,
    FileInfo,
    FileValidationResult,
    ScanStatus,
    ScanVerdict,
    FileUploadConfig,
    FILE_CONFIGS,
    config_for,
    ArtworkStatus,
    ARTWORK_TRANSITIONS,
    ArtworkTransitionError,
    ArtworkFile,
)
from printshop.files._inspect import (
    detect_type,
    is_executable,
    has_security_risk,
    sanitize_filename,
    format_file_size,
    read_image_info,
)
from printshop.files._validator import MalwareScanner, scan_file, validate_file
from printshop.files._selection import SelectionStatus, SelectionEvent, FileSelection
from printshop.files._artwork import (
    ARTWORK_TABLE,
    status_for,
    ArtworkSubmission,
    ArtworkRegistry,
)

__all__ = (
    # Types
    "MB",
    "GB",
    "CandidateFile",
    "Dimensions",
    "ImageInfo",
    "FileErrorCode",
    "ValidationIssue",
    "ValidationWarning",
    "FileInfo",
    "FileValidationResult",
    "ScanStatus",
    "ScanVerdict",
    "FileUploadConfig",
    "FILE_CONFIGS",
    "config_for",
    "ArtworkStatus",
    "ARTWORK_TRANSITIONS",
    "ArtworkTransitionError",
    "ArtworkFile",
    # Inspection
    "detect_type",
    "is_executable",
    "has_security_risk",
    "sanitize_filename",
    "format_file_size",
    "read_image_info",
    # Validation
    "MalwareScanner",
    "scan_file",
    "validate_file",
    # Selection
    "SelectionStatus",
    "SelectionEvent",
    "FileSelection",
    # Artwork
    "ARTWORK_TABLE",
    "status_for",
    "ArtworkSubmission",
    "ArtworkRegistry",
)
