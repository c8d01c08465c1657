"""
File selection — validates a batch of picked files against one running total.

Files are scanned concurrently; verdicts are then committed one at a time
in selection order, so the same batch always yields the same outcome.

    selection = FileSelection(config_for("business-cards"), scanner=clamav)
    async for event in selection.select_files(files):
        render(event)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from enum import StrEnum

from kungfu import LazyCoroResult, Ok, Error
from combinators import parallel as C_parallel

from printshop import lift as L
from printshop.files._types import (
    CandidateFile,
    FileUploadConfig,
    FileValidationResult,
    ScanStatus,
    ScanVerdict,
)
from printshop.files._validator import MalwareScanner, scan_file, validate_file

logger = logging.getLogger(__name__)


class SelectionStatus(StrEnum):
    VALIDATING = "validating"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class SelectionEvent:
    index: int
    name: str
    status: SelectionStatus
    result: FileValidationResult | None = None


class FileSelection:
    """
    Accepted files for one upload widget.

    The running total is only read and written while holding the lock, so
    concurrent `select_files` calls can never jointly exceed
    `max_total_size`.
    """

    def __init__(
        self,
        config: FileUploadConfig,
        scanner: MalwareScanner | None = None,
    ) -> None:
        self._config = config
        self._scanner = scanner
        self._accepted: dict[str, CandidateFile] = {}
        self._lock = asyncio.Lock()

    @property
    def config(self) -> FileUploadConfig:
        return self._config

    @property
    def accepted(self) -> tuple[CandidateFile, ...]:
        return tuple(self._accepted.values())

    @property
    def total_size(self) -> int:
        return sum(f.size for f in self._accepted.values())

    def _scan(self, file: CandidateFile) -> LazyCoroResult[ScanVerdict | None, str]:
        return L.catching_async(lambda: scan_file(self._scanner, file), on_error=str)

    async def select_files(
        self,
        files: Sequence[CandidateFile],
    ) -> AsyncIterator[SelectionEvent]:
        """
        Validate `files` and yield status events.

        Every file first reports VALIDATING, then ACCEPTED or REJECTED in
        selection order.
        """
        if not files:
            return

        for index, file in enumerate(files):
            yield SelectionEvent(index, file.name, SelectionStatus.VALIDATING)

        match await C_parallel(*[self._scan(f) for f in files]):
            case Ok(verdicts):
                scans: list[ScanVerdict | None] = list(verdicts)
            case Error(reason):
                logger.warning("scan batch failed: %s", reason)
                scans = [ScanVerdict(ScanStatus.UNAVAILABLE, reason) for _ in files]

        for index, (file, scan) in enumerate(zip(files, scans, strict=True)):
            async with self._lock:
                # Re-selecting a name replaces the earlier file
                previous = self._accepted.get(file.name)
                result = validate_file(
                    file,
                    self._config,
                    accepted_total=self.total_size - (previous.size if previous else 0),
                    accepted_count=len(self._accepted) - (1 if previous else 0),
                    scan=scan,
                )
                if result.is_valid:
                    self._accepted[file.name] = file

            status = SelectionStatus.ACCEPTED if result.is_valid else SelectionStatus.REJECTED
            logger.info(
                "file %s %s errors=%s",
                file.name,
                status,
                [e.code.value for e in result.errors],
            )
            yield SelectionEvent(index, file.name, status, result)

    def remove(self, name: str) -> bool:
        """Drop an accepted file, releasing its share of the total."""
        return self._accepted.pop(name, None) is not None

    def clear(self) -> None:
        self._accepted.clear()


__all__ = (
    "SelectionStatus",
    "SelectionEvent",
    "FileSelection",
)
