"""
Gateway types — the remote data boundary.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Any, Protocol
from collections.abc import Callable, Awaitable

from printshop._types import Row, Filters

# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════

class GatewayErrorKind(Enum):
    """Gateway error kinds."""
    CONNECTION = auto()
    TIMEOUT = auto()
    NOT_FOUND = auto()
    CONFLICT = auto()
    RPC = auto()
    STORAGE = auto()


class GatewayError(Exception):
    """Failure reported by a gateway implementation."""

    def __init__(self, kind: GatewayErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def transient(self) -> bool:
        """Whether retrying the same call may succeed."""
        return self.kind in (GatewayErrorKind.CONNECTION, GatewayErrorKind.TIMEOUT)


# ═══════════════════════════════════════════════════════════════════════════════
# Remote Procedures
# ═══════════════════════════════════════════════════════════════════════════════

type RpcHandler = Callable[[Row], Awaitable[Any]]
"""Server-side implementation of a named remote procedure."""


# ═══════════════════════════════════════════════════════════════════════════════
# Blob Storage Protocol
# ═══════════════════════════════════════════════════════════════════════════════

class BlobStorage(Protocol):
    """Bucket/key blob storage."""

    async def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str | None = None,
    ) -> str:
        """Store blob. Returns the storage path."""
        ...

    async def download(self, bucket: str, key: str) -> bytes:
        """Fetch blob. Raises GatewayError(NOT_FOUND) on miss."""
        ...

    async def remove(self, bucket: str, key: str) -> bool:
        """Delete blob. Returns True if existed."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Gateway Protocol — Backends Implement This
# ═══════════════════════════════════════════════════════════════════════════════

class Gateway(Protocol):
    """
    Remote data gateway protocol.

    Every call is a suspension point. Implementations raise GatewayError
    on failure and never partially apply a write.

    Example:
        class SupabaseGateway:
            def __init__(self, client: AsyncClient) -> None:
                self.client = client

            async def query(self, table: str, filters: Filters | None = None) -> list[Row]:
                q = self.client.table(table).select("*")
                for column, value in (filters or {}).items():
                    q = q.eq(column, value)
                return (await q.execute()).data

            async def rpc(self, name: str, args: Row) -> Any:
                return (await self.client.rpc(name, args).execute()).data

            # ... insert / update / delete / storage
    """

    @property
    def storage(self) -> BlobStorage:
        """Blob storage attached to this gateway."""
        ...

    async def query(self, table: str, filters: Filters | None = None) -> list[Row]:
        """Rows of `table` whose columns equal every filter value."""
        ...

    async def insert(self, table: str, row: Row) -> Row:
        """Insert row. Assigns `id` when missing. Returns the stored row."""
        ...

    async def update(self, table: str, id: str, patch: Row) -> Row:
        """Merge patch into row `id`. Returns the stored row."""
        ...

    async def delete(self, table: str, id: str) -> None:
        """Delete row `id`. Missing rows are ignored."""
        ...

    async def rpc(self, name: str, args: Row) -> Any:
        """Invoke a named remote procedure."""
        ...


__all__ = (
    "GatewayErrorKind",
    "GatewayError",
    "RpcHandler",
    "BlobStorage",
    "Gateway",
)
