"""
In-memory gateway — dict tables, blob dict, procedure registry.
"""

from __future__ import annotations

import copy
import uuid
from collections.abc import Mapping
from typing import Any

from printshop._types import Row, Filters
from printshop.gateway._types import GatewayError, GatewayErrorKind, RpcHandler


# ═══════════════════════════════════════════════════════════════════════════════
# Storage
# ═══════════════════════════════════════════════════════════════════════════════

class MemoryStorage:
    """
    In-memory blob storage.

    Example:
        storage = MemoryStorage()
        path = await storage.upload("artwork", "abc/front.pdf", data)
    """

    def __init__(self) -> None:
        self._blobs: dict[tuple[str, str], bytes] = {}
        self._content_types: dict[tuple[str, str], str | None] = {}

    async def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str | None = None,
    ) -> str:
        self._blobs[(bucket, key)] = bytes(data)
        self._content_types[(bucket, key)] = content_type
        return f"{bucket}/{key}"

    async def download(self, bucket: str, key: str) -> bytes:
        try:
            return self._blobs[(bucket, key)]
        except KeyError:
            raise GatewayError(
                GatewayErrorKind.NOT_FOUND, f"Blob not found: {bucket}/{key}"
            ) from None

    async def remove(self, bucket: str, key: str) -> bool:
        self._content_types.pop((bucket, key), None)
        return self._blobs.pop((bucket, key), None) is not None

    def content_type(self, bucket: str, key: str) -> str | None:
        return self._content_types.get((bucket, key))


# ═══════════════════════════════════════════════════════════════════════════════
# Gateway
# ═══════════════════════════════════════════════════════════════════════════════

def _matches(row: Row, filters: Filters | None) -> bool:
    return all(row.get(column) == value for column, value in (filters or {}).items())


class MemoryGateway:
    """
    In-process gateway for tests and local runs.

    Rows are deep-copied on the way in and out; callers never share
    state with the store.

    Example:
        gateway = MemoryGateway(procedures=REFERENCE_PROCEDURES)
        row = await gateway.insert("checkout_sessions", {"subtotal": 10.0})
        await gateway.rpc("calculate_shipping", {...})
    """

    def __init__(self, procedures: Mapping[str, RpcHandler] | None = None) -> None:
        self._tables: dict[str, dict[str, Row]] = {}
        self._procedures: dict[str, RpcHandler] = dict(procedures or {})
        self._storage = MemoryStorage()

    @property
    def storage(self) -> MemoryStorage:
        return self._storage

    def register(self, name: str, handler: RpcHandler) -> None:
        """Register (or replace) a remote procedure."""
        self._procedures[name] = handler

    def _table(self, table: str) -> dict[str, Row]:
        return self._tables.setdefault(table, {})

    async def query(self, table: str, filters: Filters | None = None) -> list[Row]:
        return [
            copy.deepcopy(row)
            for row in self._table(table).values()
            if _matches(row, filters)
        ]

    async def insert(self, table: str, row: Row) -> Row:
        rows = self._table(table)
        stored = copy.deepcopy(row)
        stored.setdefault("id", str(uuid.uuid4()))
        if stored["id"] in rows:
            raise GatewayError(
                GatewayErrorKind.CONFLICT, f"Duplicate id in {table}: {stored['id']}"
            )
        rows[stored["id"]] = stored
        return copy.deepcopy(stored)

    async def update(self, table: str, id: str, patch: Row) -> Row:
        rows = self._table(table)
        if id not in rows:
            raise GatewayError(GatewayErrorKind.NOT_FOUND, f"Row not found in {table}: {id}")
        merged = {**rows[id], **copy.deepcopy(patch), "id": id}
        rows[id] = merged
        return copy.deepcopy(merged)

    async def delete(self, table: str, id: str) -> None:
        self._table(table).pop(id, None)

    async def rpc(self, name: str, args: Row) -> Any:
        handler = self._procedures.get(name)
        if handler is None:
            raise GatewayError(GatewayErrorKind.RPC, f"Unknown procedure: {name}")
        try:
            return await handler(copy.deepcopy(args))
        except GatewayError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise GatewayError(GatewayErrorKind.RPC, f"{name} failed: {e}") from e


__all__ = (
    "MemoryStorage",
    "MemoryGateway",
)
