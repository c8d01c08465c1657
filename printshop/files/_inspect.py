"""
Content inspection — magic numbers, image headers, filename hygiene.

Pure byte-level helpers; nothing here touches the network or disk.
"""

from __future__ import annotations

import re
import struct

from printshop.files._types import Dimensions, ImageInfo


# ═══════════════════════════════════════════════════════════════════════════════
# Signatures
# ═══════════════════════════════════════════════════════════════════════════════

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
PDF_HEADER = b"%PDF"

# First match wins; longer signatures first
FILE_SIGNATURES: tuple[tuple[str, bytes], ...] = (
    ("image/png", PNG_SIGNATURE),
    ("application/pdf", b"%PDF-"),
    ("application/postscript", b"%!PS"),
    ("image/tiff", b"II*\x00"),
    ("image/tiff", b"MM\x00*"),
    ("image/jpeg", b"\xff\xd8\xff"),
    ("image/bmp", b"BM"),
)

EXECUTABLE_SIGNATURES: tuple[bytes, ...] = (
    b"MZ",                  # PE
    b"\x7fELF",             # ELF
    b"\xcf\xfa\xed\xfe",    # Mach-O
)

_SUSPICIOUS_NAME_PATTERNS = (
    re.compile(r"\.\."),
    re.compile(r"^[/\\]"),
    re.compile(r"\x00"),
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"\.(exe|bat|cmd|com|scr)$", re.IGNORECASE),
)


def detect_type(data: bytes) -> str | None:
    """MIME type implied by the leading bytes, if recognised."""
    for mime_type, signature in FILE_SIGNATURES:
        if data.startswith(signature):
            return mime_type
    return None


def is_executable(data: bytes) -> bool:
    return any(data.startswith(sig) for sig in EXECUTABLE_SIGNATURES)


def has_pdf_header(data: bytes) -> bool:
    return data.startswith(PDF_HEADER)


# ═══════════════════════════════════════════════════════════════════════════════
# Filenames
# ═══════════════════════════════════════════════════════════════════════════════

def has_security_risk(filename: str) -> bool:
    """Traversal, absolute paths, null bytes, script tags, executables."""
    return any(p.search(filename) for p in _SUSPICIOUS_NAME_PATTERNS)


def sanitize_filename(filename: str) -> str:
    """
    Storage-safe basename.

    >>> sanitize_filename("../../etc/my card (final).pdf")
    'my_card__final_.pdf'
    """
    basename = re.split(r"[\\/]", filename)[-1]
    cleaned = re.sub(r"[^a-zA-Z0-9._-]", "_", basename)
    cleaned = re.sub(r"\.{2,}", "_", cleaned)
    cleaned = re.sub(r"^\.", "_", cleaned)
    return cleaned[:255] or "unnamed"


_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def format_file_size(size: int) -> str:
    """
    Human-readable size, binary units, at most two decimals.

    >>> format_file_size(5 * 1024 * 1024)
    '5 MB'
    >>> format_file_size(1536)
    '1.5 KB'
    """
    if size <= 0:
        return "0 Bytes"
    unit = 0
    while unit < len(_SIZE_UNITS) - 1 and size >= 1024 ** (unit + 1):
        unit += 1
    text = f"{size / 1024 ** unit:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[unit]}"


# ═══════════════════════════════════════════════════════════════════════════════
# Image Headers
# ═══════════════════════════════════════════════════════════════════════════════

_PNG_COLOR_SPACES = {0: "Grayscale", 2: "RGB", 3: "Indexed", 4: "Grayscale", 6: "RGB"}
_JPEG_COLOR_SPACES = {1: "Grayscale", 3: "RGB", 4: "CMYK"}
_JPEG_SOF_MARKERS = frozenset(
    {0xC0, 0xC1, 0xC2, 0xC3, 0xC5, 0xC6, 0xC7, 0xC9, 0xCA, 0xCB, 0xCD, 0xCE, 0xCF}
)


def _read_png(data: bytes) -> ImageInfo | None:
    width = height = color_type = None
    dpi: int | None = None
    transparent = False

    pos = len(PNG_SIGNATURE)
    while pos + 8 <= len(data):
        length, chunk = struct.unpack(">I4s", data[pos:pos + 8])
        body = data[pos + 8:pos + 8 + length]
        if not chunk.isalpha() or len(body) < length:
            break

        if chunk == b"IHDR" and length >= 10:
            width, height, _, color_type = struct.unpack(">IIBB", body[:10])
        elif chunk == b"pHYs" and length >= 9:
            ppu_x, _, unit = struct.unpack(">IIB", body[:9])
            if unit == 1:  # pixels per metre
                dpi = round(ppu_x * 0.0254)
        elif chunk == b"tRNS":
            transparent = True
        elif chunk in (b"IDAT", b"IEND"):
            break

        pos += 12 + length

    if width is None or height is None:
        return None
    return ImageInfo(
        dimensions=Dimensions(width, height, dpi),
        color_space=_PNG_COLOR_SPACES.get(color_type or 0),
        has_transparency=transparent or color_type in (4, 6),
    )


def _read_jpeg(data: bytes) -> ImageInfo | None:
    size: tuple[int, int] | None = None
    components: int | None = None
    dpi: int | None = None

    pos = 2
    while pos + 4 <= len(data):
        if data[pos] != 0xFF:
            break
        marker = data[pos + 1]
        if marker == 0xFF:
            pos += 1
            continue
        if marker in (0x01, 0xD8) or 0xD0 <= marker <= 0xD7:
            pos += 2
            continue
        if marker in (0xD9, 0xDA):
            break

        (length,) = struct.unpack(">H", data[pos + 2:pos + 4])
        body = data[pos + 4:pos + 2 + length]

        if marker == 0xE0 and body.startswith(b"JFIF\x00") and len(body) >= 12:
            units = body[7]
            (density,) = struct.unpack(">H", body[8:10])
            if units == 1:
                dpi = density
            elif units == 2:
                dpi = round(density * 2.54)
        elif marker in _JPEG_SOF_MARKERS and len(body) >= 6:
            _, height, width, components = struct.unpack(">BHHB", body[:6])
            size = (width, height)

        pos += 2 + length

    if size is None:
        return None
    return ImageInfo(
        dimensions=Dimensions(size[0], size[1], dpi),
        color_space=_JPEG_COLOR_SPACES.get(components or 0),
    )


def read_image_info(data: bytes) -> ImageInfo | None:
    """Dimensions, DPI and color space from a PNG or JPEG header."""
    if data.startswith(PNG_SIGNATURE):
        return _read_png(data)
    if data.startswith(b"\xff\xd8"):
        return _read_jpeg(data)
    return None


__all__ = (
    "PNG_SIGNATURE",
    "FILE_SIGNATURES",
    "EXECUTABLE_SIGNATURES",
    "detect_type",
    "is_executable",
    "has_pdf_header",
    "has_security_risk",
    "sanitize_filename",
    "format_file_size",
    "read_image_info",
)
