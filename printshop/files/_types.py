"""
File validation types and per-product upload presets.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import StrEnum
from pathlib import PurePosixPath

MB = 1024 * 1024
GB = 1024 * MB


# ═══════════════════════════════════════════════════════════════════════════════
# Candidate File
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class CandidateFile:
    """A file the customer picked: declared metadata plus raw content."""
    name: str
    mime_type: str
    content: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        """Lower-cased `.ext`, or "" when the name has none."""
        return PurePosixPath(self.name.replace("\\", "/")).suffix.lower()


@dataclass(frozen=True, slots=True)
class Dimensions:
    width: int
    height: int
    dpi: int | None = None


@dataclass(frozen=True, slots=True)
class ImageInfo:
    dimensions: Dimensions
    color_space: str | None = None
    has_transparency: bool = False


# ═══════════════════════════════════════════════════════════════════════════════
# Verdict
# ═══════════════════════════════════════════════════════════════════════════════

class FileErrorCode(StrEnum):
    INVALID_TYPE = "INVALID_TYPE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    TOTAL_SIZE_EXCEEDED = "TOTAL_SIZE_EXCEEDED"
    TOO_MANY_FILES = "TOO_MANY_FILES"
    INVALID_DIMENSIONS = "INVALID_DIMENSIONS"
    LOW_RESOLUTION = "LOW_RESOLUTION"
    CORRUPTED_FILE = "CORRUPTED_FILE"
    SECURITY_THREAT = "SECURITY_THREAT"
    CONTENT_MISMATCH = "CONTENT_MISMATCH"
    PROCESSING_FAILED = "PROCESSING_FAILED"
    SCAN_UNAVAILABLE = "SCAN_UNAVAILABLE"


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    code: FileErrorCode
    message: str
    field: str | None = None


@dataclass(frozen=True, slots=True)
class ValidationWarning:
    code: FileErrorCode
    message: str
    suggestion: str | None = None


@dataclass(frozen=True, slots=True)
class FileInfo:
    detected_type: str | None = None
    image: ImageInfo | None = None


@dataclass(frozen=True, slots=True)
class FileValidationResult:
    """Verdict for one file. Recomputed per validation pass."""
    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationWarning, ...] = ()
    suggestions: tuple[str, ...] = ()
    info: FileInfo = field(default_factory=FileInfo)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def has_error(self, code: FileErrorCode) -> bool:
        return any(e.code == code for e in self.errors)

    def has_warning(self, code: FileErrorCode) -> bool:
        return any(w.code == code for w in self.warnings)


# ═══════════════════════════════════════════════════════════════════════════════
# Malware Scanning
# ═══════════════════════════════════════════════════════════════════════════════

class ScanStatus(StrEnum):
    CLEAN = "clean"
    INFECTED = "infected"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True, slots=True)
class ScanVerdict:
    status: ScanStatus
    detail: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Upload Configuration
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class FileUploadConfig:
    max_files: int
    max_file_size: int
    max_total_size: int
    allowed_types: frozenset[str]
    allowed_extensions: frozenset[str]
    min_dpi: int | None = None
    max_dimensions: Dimensions | None = None


_PRINT_TYPES = frozenset({"image/jpeg", "image/png", "application/pdf", "application/postscript"})
_PRINT_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".pdf", ".ai", ".eps"})

FILE_CONFIGS: Mapping[str, FileUploadConfig] = {
    "business-cards": FileUploadConfig(
        max_files=10,
        max_file_size=50 * MB,
        max_total_size=200 * MB,
        allowed_types=_PRINT_TYPES,
        allowed_extensions=_PRINT_EXTENSIONS,
        min_dpi=300,
        # 3.5" x 2" at 300 DPI with bleed
        max_dimensions=Dimensions(4200, 2400),
    ),
    "flyers": FileUploadConfig(
        max_files=5,
        max_file_size=100 * MB,
        max_total_size=500 * MB,
        allowed_types=_PRINT_TYPES,
        allowed_extensions=_PRINT_EXTENSIONS,
        min_dpi=300,
        max_dimensions=Dimensions(8700, 11200),
    ),
    "posters": FileUploadConfig(
        max_files=3,
        max_file_size=200 * MB,
        max_total_size=1 * GB,
        allowed_types=_PRINT_TYPES,
        allowed_extensions=_PRINT_EXTENSIONS,
        min_dpi=150,
        max_dimensions=Dimensions(7200, 10800),
    ),
    "banners": FileUploadConfig(
        max_files=2,
        max_file_size=500 * MB,
        max_total_size=2 * GB,
        allowed_types=_PRINT_TYPES,
        allowed_extensions=_PRINT_EXTENSIONS,
        min_dpi=100,
        max_dimensions=Dimensions(14400, 7200),
    ),
    "default": FileUploadConfig(
        max_files=10,
        max_file_size=100 * MB,
        max_total_size=500 * MB,
        allowed_types=frozenset({"image/jpeg", "image/png", "application/pdf"}),
        allowed_extensions=frozenset({".jpg", ".jpeg", ".png", ".pdf"}),
    ),
}


def config_for(product_type: str) -> FileUploadConfig:
    """Preset for `product_type`, falling back to "default"."""
    return FILE_CONFIGS.get(product_type, FILE_CONFIGS["default"])


# ═══════════════════════════════════════════════════════════════════════════════
# Artwork Records
# ═══════════════════════════════════════════════════════════════════════════════

class ArtworkStatus(StrEnum):
    PENDING = "pending"
    VALID = "valid"
    INVALID = "invalid"
    NEEDS_REVIEW = "needs_review"


ARTWORK_TRANSITIONS: Mapping[ArtworkStatus, frozenset[ArtworkStatus]] = {
    ArtworkStatus.PENDING: frozenset({
        ArtworkStatus.VALID,
        ArtworkStatus.INVALID,
        ArtworkStatus.NEEDS_REVIEW,
    }),
    # A reviewer settles flagged files
    ArtworkStatus.NEEDS_REVIEW: frozenset({ArtworkStatus.VALID, ArtworkStatus.INVALID}),
    ArtworkStatus.VALID: frozenset(),
    ArtworkStatus.INVALID: frozenset(),
}


class ArtworkTransitionError(Exception):
    def __init__(self, current: ArtworkStatus, target: ArtworkStatus) -> None:
        super().__init__(f"Cannot move artwork from {current} to {target}")
        self.current = current
        self.target = target


@dataclass(frozen=True, slots=True)
class ArtworkFile:
    id: str
    original_filename: str
    stored_filename: str
    file_path: str
    mime_type: str
    file_size: int
    created_at: datetime
    updated_at: datetime
    validation_status: ArtworkStatus = ArtworkStatus.PENDING
    dimensions: Dimensions | None = None
    color_space: str | None = None
    validation_notes: str | None = None

    def transition(
        self,
        status: ArtworkStatus,
        now: datetime,
        notes: str | None = None,
    ) -> ArtworkFile:
        """
        Move to `status`.

        Raises:
            ArtworkTransitionError: the move is not allowed (nothing
                returns to pending, settled files stay settled)
        """
        if status not in ARTWORK_TRANSITIONS[self.validation_status]:
            raise ArtworkTransitionError(self.validation_status, status)
        return replace(
            self,
            validation_status=status,
            updated_at=now,
            validation_notes=notes if notes is not None else self.validation_notes,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
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
)
