"""
Artwork records — stored uploads with a validation status.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from printshop._types import Row
from printshop.gateway import Gateway, GatewayError, GatewayErrorKind
from printshop.files._types import (
    ArtworkFile,
    ArtworkStatus,
    CandidateFile,
    Dimensions,
    FileUploadConfig,
    FileValidationResult,
)
from printshop.files._inspect import sanitize_filename
from printshop.files._validator import MalwareScanner, scan_file, validate_file

logger = logging.getLogger(__name__)

ARTWORK_TABLE = "artwork_files"


def status_for(result: FileValidationResult) -> ArtworkStatus:
    """Errors → invalid; warnings only → needs_review; otherwise valid."""
    if result.errors:
        return ArtworkStatus.INVALID
    if result.warnings:
        return ArtworkStatus.NEEDS_REVIEW
    return ArtworkStatus.VALID


def _notes(result: FileValidationResult) -> str | None:
    messages = [e.message for e in result.errors] + [w.message for w in result.warnings]
    return "; ".join(messages) or None


# ═══════════════════════════════════════════════════════════════════════════════
# Row Codec
# ═══════════════════════════════════════════════════════════════════════════════

def artwork_to_row(artwork: ArtworkFile) -> Row:
    dims = artwork.dimensions
    return {
        "id": artwork.id,
        "original_filename": artwork.original_filename,
        "stored_filename": artwork.stored_filename,
        "file_path": artwork.file_path,
        "mime_type": artwork.mime_type,
        "file_size": artwork.file_size,
        "validation_status": artwork.validation_status.value,
        "dimensions": (
            {"width": dims.width, "height": dims.height, "dpi": dims.dpi} if dims else None
        ),
        "color_space": artwork.color_space,
        "validation_notes": artwork.validation_notes,
        "created_at": artwork.created_at.isoformat(),
        "updated_at": artwork.updated_at.isoformat(),
    }


def artwork_from_row(row: Row) -> ArtworkFile:
    dims = row.get("dimensions")
    return ArtworkFile(
        id=row["id"],
        original_filename=row["original_filename"],
        stored_filename=row["stored_filename"],
        file_path=row["file_path"],
        mime_type=row["mime_type"],
        file_size=int(row["file_size"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
        validation_status=ArtworkStatus(row["validation_status"]),
        dimensions=Dimensions(**dims) if dims else None,
        color_space=row.get("color_space"),
        validation_notes=row.get("validation_notes"),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Registry
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class ArtworkSubmission:
    artwork: ArtworkFile
    result: FileValidationResult


class ArtworkRegistry:
    """
    Stores artwork blobs and their records.

    Gateway failures propagate as GatewayError.

    Example:
        registry = ArtworkRegistry(gateway, bucket=settings.artwork_bucket)
        submission = await registry.submit(file, config_for("flyers"))
        if submission.artwork.validation_status is ArtworkStatus.NEEDS_REVIEW:
            notify_prepress(submission.artwork)
    """

    def __init__(
        self,
        gateway: Gateway,
        bucket: str = "artwork",
        scanner: MalwareScanner | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._gateway = gateway
        self._bucket = bucket
        self._scanner = scanner
        self._clock = clock

    async def submit(
        self,
        file: CandidateFile,
        config: FileUploadConfig,
        *,
        accepted_total: int = 0,
        accepted_count: int = 0,
    ) -> ArtworkSubmission:
        """
        Store `file`, record it as pending, validate, then settle its status.
        """
        artwork_id = str(uuid.uuid4())
        stored_filename = sanitize_filename(file.name)
        path = await self._gateway.storage.upload(
            self._bucket, f"{artwork_id}/{stored_filename}", file.content, file.mime_type
        )

        now = self._clock()
        pending = ArtworkFile(
            id=artwork_id,
            original_filename=file.name,
            stored_filename=stored_filename,
            file_path=path,
            mime_type=file.mime_type,
            file_size=file.size,
            created_at=now,
            updated_at=now,
        )
        await self._gateway.insert(ARTWORK_TABLE, artwork_to_row(pending))

        result = validate_file(
            file,
            config,
            accepted_total=accepted_total,
            accepted_count=accepted_count,
            scan=await scan_file(self._scanner, file),
        )
        image = result.info.image
        settled = pending.transition(status_for(result), self._clock(), _notes(result))
        if image is not None:
            settled = replace(settled, dimensions=image.dimensions, color_space=image.color_space)
        await self._gateway.update(ARTWORK_TABLE, artwork_id, artwork_to_row(settled))

        logger.info(
            "artwork %s (%s) is %s",
            artwork_id,
            stored_filename,
            settled.validation_status,
        )
        return ArtworkSubmission(settled, result)

    async def get(self, artwork_id: str) -> ArtworkFile:
        rows = await self._gateway.query(ARTWORK_TABLE, {"id": artwork_id})
        if not rows:
            raise GatewayError(GatewayErrorKind.NOT_FOUND, f"Artwork {artwork_id} not found")
        return artwork_from_row(rows[0])

    async def list_artwork(self, status: ArtworkStatus | None = None) -> list[ArtworkFile]:
        filters = {"validation_status": status.value} if status else None
        return [artwork_from_row(r) for r in await self._gateway.query(ARTWORK_TABLE, filters)]

    async def review(
        self,
        artwork_id: str,
        status: ArtworkStatus,
        notes: str | None = None,
    ) -> ArtworkFile:
        """Settle a file flagged for review."""
        reviewed = (await self.get(artwork_id)).transition(status, self._clock(), notes)
        await self._gateway.update(ARTWORK_TABLE, artwork_id, artwork_to_row(reviewed))
        return reviewed

    async def download(self, artwork_id: str) -> bytes:
        artwork = await self.get(artwork_id)
        return await self._gateway.storage.download(
            self._bucket, f"{artwork.id}/{artwork.stored_filename}"
        )


__all__ = (
    "ARTWORK_TABLE",
    "status_for",
    "artwork_to_row",
    "artwork_from_row",
    "ArtworkSubmission",
    "ArtworkRegistry",
)
