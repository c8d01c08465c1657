"""
File validator — five stages, errors accumulated.

    1. security      executables, unsafe names, empty files, bad PDF header,
                     content/type mismatch, malware scan verdict
    2. type          declared MIME type or extension must be allowed
    3. size          per-file size and maximum dimensions
    4. aggregate     running total and file count of already-accepted files
    5. advice        resolution warnings and print suggestions

`validate_file` is pure: the same file, config, batch totals and scan
verdict always produce the same result.
"""

from __future__ import annotations

import logging
from typing import Protocol

from kungfu import Ok, Error

from printshop import lift as L
from printshop.files._types import (
    MB,
    CandidateFile,
    FileErrorCode,
    FileInfo,
    FileUploadConfig,
    FileValidationResult,
    ImageInfo,
    ScanStatus,
    ScanVerdict,
    ValidationIssue,
    ValidationWarning,
)
from printshop.files._inspect import (
    detect_type,
    format_file_size,
    has_pdf_header,
    has_security_risk,
    is_executable,
    read_image_info,
)

logger = logging.getLogger(__name__)

LARGE_FILE_NOTICE = 50 * MB
PRINT_DPI = 300
DRAFT_DPI = 150

_RASTER_TYPES = frozenset({"image/jpeg", "image/png", "image/tiff", "image/bmp"})


class MalwareScanner(Protocol):
    """
    External content scanner (ClamAV, a cloud scanning API, ...).

    Raising means the scanner is unavailable; the file gets a
    SCAN_UNAVAILABLE warning instead of a verdict.
    """

    async def scan(self, file: CandidateFile) -> ScanVerdict: ...


async def scan_file(
    scanner: MalwareScanner | None,
    file: CandidateFile,
) -> ScanVerdict | None:
    """Scanner verdict, UNAVAILABLE if the scanner raised, None without one."""
    if scanner is None:
        return None
    match await L.catching_async(lambda: scanner.scan(file), on_error=str):
        case Ok(verdict):
            return verdict
        case Error(reason):
            logger.warning("malware scan unavailable for %s: %s", file.name, reason)
            return ScanVerdict(ScanStatus.UNAVAILABLE, reason)


# ═══════════════════════════════════════════════════════════════════════════════
# Stages
# ═══════════════════════════════════════════════════════════════════════════════

class _Verdict:
    def __init__(self) -> None:
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationWarning] = []
        self.suggestions: list[str] = []

    def error(self, code: FileErrorCode, message: str, field: str) -> None:
        self.errors.append(ValidationIssue(code, message, field))

    def warn(self, code: FileErrorCode, message: str, suggestion: str | None = None) -> None:
        self.warnings.append(ValidationWarning(code, message, suggestion))


def _effective_type(file: CandidateFile, detected: str | None) -> str:
    return file.mime_type or detected or ""


def _check_security(
    file: CandidateFile,
    detected: str | None,
    scan: ScanVerdict | None,
    v: _Verdict,
) -> None:
    if has_security_risk(file.name):
        v.error(
            FileErrorCode.SECURITY_THREAT,
            "File name contains unsafe characters or an executable extension",
            "name",
        )
    if is_executable(file.content):
        v.error(
            FileErrorCode.SECURITY_THREAT,
            "File contains executable code and cannot be uploaded",
            "security",
        )
    if file.size == 0:
        v.error(FileErrorCode.CORRUPTED_FILE, "File is empty or corrupted", "size")
    elif (
        file.mime_type == "application/pdf" or file.extension == ".pdf"
    ) and not has_pdf_header(file.content):
        v.error(
            FileErrorCode.CORRUPTED_FILE,
            "File appears to be corrupted or is not a valid PDF",
            "format",
        )

    if detected and file.mime_type and detected != file.mime_type:
        v.warn(
            FileErrorCode.CONTENT_MISMATCH,
            f"File content doesn't match declared type. "
            f"Expected {file.mime_type}, detected {detected}",
            "Re-export the file in the format its extension claims",
        )

    match scan:
        case ScanVerdict(status=ScanStatus.INFECTED, detail=detail):
            v.error(
                FileErrorCode.SECURITY_THREAT,
                f"Malware scan flagged this file{f': {detail}' if detail else ''}",
                "security",
            )
        case ScanVerdict(status=ScanStatus.UNAVAILABLE):
            v.warn(
                FileErrorCode.SCAN_UNAVAILABLE,
                "Malware scan could not be completed",
                "The file will be scanned again before printing",
            )
        case _:
            pass


def _check_type(file: CandidateFile, config: FileUploadConfig, v: _Verdict) -> None:
    if file.mime_type in config.allowed_types or file.extension in config.allowed_extensions:
        return
    v.error(
        FileErrorCode.INVALID_TYPE,
        f'File type "{file.mime_type or file.extension}" is not supported. '
        f"Allowed types: {', '.join(sorted(config.allowed_extensions))}",
        "type",
    )


def _check_size(
    file: CandidateFile,
    config: FileUploadConfig,
    image: ImageInfo | None,
    v: _Verdict,
) -> None:
    if file.size > config.max_file_size:
        v.error(
            FileErrorCode.FILE_TOO_LARGE,
            f"File size {format_file_size(file.size)} exceeds maximum allowed size "
            f"of {format_file_size(config.max_file_size)}",
            "size",
        )

    limit = config.max_dimensions
    if image is not None and limit is not None:
        dims = image.dimensions
        if dims.width > limit.width or dims.height > limit.height:
            v.error(
                FileErrorCode.INVALID_DIMENSIONS,
                f"Image dimensions ({dims.width}×{dims.height}) exceed maximum "
                f"allowed ({limit.width}×{limit.height})",
                "dimensions",
            )


def _check_aggregate(
    file: CandidateFile,
    config: FileUploadConfig,
    accepted_total: int,
    accepted_count: int,
    v: _Verdict,
) -> None:
    total = accepted_total + file.size
    if total > config.max_total_size:
        v.error(
            FileErrorCode.TOTAL_SIZE_EXCEEDED,
            f"Total upload size {format_file_size(total)} exceeds maximum "
            f"of {format_file_size(config.max_total_size)}",
            "totalSize",
        )
    if accepted_count >= config.max_files:
        v.error(
            FileErrorCode.TOO_MANY_FILES,
            f"Maximum of {config.max_files} files allowed",
            "count",
        )


def _advise(
    file: CandidateFile,
    config: FileUploadConfig,
    mime_type: str,
    image: ImageInfo | None,
    v: _Verdict,
) -> None:
    if mime_type in _RASTER_TYPES:
        dpi = image.dimensions.dpi if image is not None else None
        if dpi is None:
            v.suggestions.append(
                f"Use at least {PRINT_DPI} DPI for raster images to get sharp prints"
            )
        else:
            if config.min_dpi is not None and dpi < config.min_dpi:
                v.warn(
                    FileErrorCode.LOW_RESOLUTION,
                    f"Image resolution ({dpi} DPI) is below recommended {config.min_dpi} DPI",
                    f"For best print quality, use images with at least {config.min_dpi} DPI",
                )
            if dpi >= PRINT_DPI:
                v.suggestions.append("Excellent resolution for print quality!")
            elif dpi >= DRAFT_DPI:
                v.suggestions.append("Good resolution, but 300+ DPI recommended for crisp prints")
            elif config.min_dpi is None:
                v.suggestions.append(
                    f"Use at least {PRINT_DPI} DPI for raster images to get sharp prints"
                )

        if image is not None and image.has_transparency:
            v.suggestions.append(
                "Image contains transparency. Ensure background is intended "
                "to be transparent in final print"
            )
        if mime_type == "image/jpeg":
            v.suggestions.append(
                "For JPEG files, ensure quality is set to maximum (90-100%) "
                "for print applications"
            )
        if mime_type == "image/png":
            v.suggestions.append(
                "PNG format is excellent for images with transparency or sharp graphics"
            )
        if image is None or image.color_space != "CMYK":
            v.suggestions.append("Convert images to CMYK color mode for accurate print colors")

    if mime_type == "application/pdf":
        v.suggestions.append("Ensure PDF fonts are embedded for consistent text rendering")
        v.suggestions.append("Consider creating a PDF/X-1a file for best print compatibility")
        v.suggestions.append("Include crop marks and bleeds if design extends to page edges")

    if file.size > LARGE_FILE_NOTICE:
        v.suggestions.append(
            "Large file detected - ensure you have a stable internet connection"
        )


# ═══════════════════════════════════════════════════════════════════════════════
# validate_file()
# ═══════════════════════════════════════════════════════════════════════════════

def validate_file(
    file: CandidateFile,
    config: FileUploadConfig,
    *,
    accepted_total: int = 0,
    accepted_count: int = 0,
    scan: ScanVerdict | None = None,
) -> FileValidationResult:
    """
    Validate one file against `config`.

    Args:
        file: Candidate file
        config: Upload rules for the product type
        accepted_total: Bytes already accepted in this batch
        accepted_count: Files already accepted in this batch
        scan: Malware scan verdict, if a scanner ran

    Returns:
        FileValidationResult; never raises for bad input
    """
    v = _Verdict()
    detected = detect_type(file.content)
    mime_type = _effective_type(file, detected)

    image: ImageInfo | None = None
    if mime_type.startswith("image/") and file.size > 0:
        image = read_image_info(file.content)
        if image is None and mime_type in ("image/jpeg", "image/png"):
            v.warn(
                FileErrorCode.PROCESSING_FAILED,
                "Could not analyze image properties",
                "File may be corrupted or in an unsupported format",
            )

    _check_security(file, detected, scan, v)
    _check_type(file, config, v)
    _check_size(file, config, image, v)
    _check_aggregate(file, config, accepted_total, accepted_count, v)
    _advise(file, config, mime_type, image, v)

    return FileValidationResult(
        errors=tuple(v.errors),
        warnings=tuple(v.warnings),
        suggestions=tuple(v.suggestions),
        info=FileInfo(detected_type=detected, image=image),
    )


__all__ = (
    "MalwareScanner",
    "scan_file",
    "validate_file",
)
