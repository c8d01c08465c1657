"""
SQLAlchemy integration — generic gateway over two tables.

Rows of every logical table live in `records` as JSON documents keyed by
(table_name, id). Blobs live in `blobs` keyed by (bucket, key).

Usage:
    gateway = await create_gateway("sqlite+aiosqlite:///printshop.db")
    gateway.register("calculate_shipping", calculate_shipping)

    row = await gateway.insert("checkout_sessions", {...})
    await gateway.storage.upload("artwork", "abc/front.pdf", data)

    await gateway.close()
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from typing import Any

from sqlalchemy import JSON, LargeBinary, String, select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from printshop._types import Row, Filters
from printshop.gateway._types import GatewayError, GatewayErrorKind, RpcHandler

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Models
# ═══════════════════════════════════════════════════════════════════════════════

class Base(DeclarativeBase):
    pass


class RecordTable(Base):
    """One row of a logical table, stored as a JSON document."""
    __tablename__ = "records"

    table_name: Mapped[str] = mapped_column(String(64), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)


class BlobTable(Base):
    __tablename__ = "blobs"

    bucket: Mapped[str] = mapped_column(String(64), primary_key=True)
    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    content_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)


def _driver_error(action: str, e: SQLAlchemyError) -> GatewayError:
    logger.warning("gateway %s failed: %s", action, e)
    return GatewayError(GatewayErrorKind.CONNECTION, f"Failed to {action}: {e}")


# ═══════════════════════════════════════════════════════════════════════════════
# Storage
# ═══════════════════════════════════════════════════════════════════════════════

class SQLAlchemyStorage:
    """Blob storage backed by the `blobs` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str | None = None,
    ) -> str:
        try:
            async with self._session_factory() as session:
                await session.merge(
                    BlobTable(bucket=bucket, key=key, content_type=content_type, data=data)
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise _driver_error("upload blob", e) from e
        return f"{bucket}/{key}"

    async def download(self, bucket: str, key: str) -> bytes:
        try:
            async with self._session_factory() as session:
                blob = await session.get(BlobTable, (bucket, key))
        except SQLAlchemyError as e:
            raise _driver_error("download blob", e) from e

        if blob is None:
            raise GatewayError(GatewayErrorKind.NOT_FOUND, f"Blob not found: {bucket}/{key}")
        return blob.data

    async def remove(self, bucket: str, key: str) -> bool:
        try:
            async with self._session_factory() as session:
                blob = await session.get(BlobTable, (bucket, key))
                if blob is None:
                    return False
                await session.delete(blob)
                await session.commit()
                return True
        except SQLAlchemyError as e:
            raise _driver_error("remove blob", e) from e


# ═══════════════════════════════════════════════════════════════════════════════
# Gateway
# ═══════════════════════════════════════════════════════════════════════════════

class SQLAlchemyGateway:
    """
    Gateway over an async SQLAlchemy engine.

    Filters are equality matches on top-level JSON keys, applied after
    loading the table's rows.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
        procedures: Mapping[str, RpcHandler] | None = None,
    ) -> None:
        """
        Args:
            session_factory: SQLAlchemy async session factory
            engine: Engine disposed by close(), if owned
            procedures: Remote procedures by name
        """
        self._session_factory = session_factory
        self._engine = engine
        self._procedures: dict[str, RpcHandler] = dict(procedures or {})
        self._storage = SQLAlchemyStorage(session_factory)

    @property
    def storage(self) -> SQLAlchemyStorage:
        return self._storage

    def register(self, name: str, handler: RpcHandler) -> None:
        self._procedures[name] = handler

    async def query(self, table: str, filters: Filters | None = None) -> list[Row]:
        try:
            async with self._session_factory() as session:
                stmt = select(RecordTable).where(RecordTable.table_name == table)
                result = await session.execute(stmt)
                records = result.scalars().all()
        except SQLAlchemyError as e:
            raise _driver_error(f"query {table}", e) from e

        return [
            dict(record.data)
            for record in records
            if all(record.data.get(c) == v for c, v in (filters or {}).items())
        ]

    async def insert(self, table: str, row: Row) -> Row:
        stored = dict(row)
        stored.setdefault("id", str(uuid.uuid4()))
        try:
            async with self._session_factory() as session:
                existing = await session.get(RecordTable, (table, stored["id"]))
                if existing is not None:
                    raise GatewayError(
                        GatewayErrorKind.CONFLICT, f"Duplicate id in {table}: {stored['id']}"
                    )
                session.add(RecordTable(table_name=table, id=stored["id"], data=stored))
                await session.commit()
        except SQLAlchemyError as e:
            raise _driver_error(f"insert into {table}", e) from e
        return stored

    async def update(self, table: str, id: str, patch: Row) -> Row:
        try:
            async with self._session_factory() as session:
                record = await session.get(RecordTable, (table, id))
                if record is None:
                    raise GatewayError(
                        GatewayErrorKind.NOT_FOUND, f"Row not found in {table}: {id}"
                    )
                # Reassign so the JSON column is flagged dirty
                record.data = {**record.data, **patch, "id": id}
                merged = dict(record.data)
                await session.commit()
        except SQLAlchemyError as e:
            raise _driver_error(f"update {table}", e) from e
        return merged

    async def delete(self, table: str, id: str) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    delete(RecordTable).where(
                        RecordTable.table_name == table,
                        RecordTable.id == id,
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise _driver_error(f"delete from {table}", e) from e

    async def rpc(self, name: str, args: Row) -> Any:
        handler = self._procedures.get(name)
        if handler is None:
            raise GatewayError(GatewayErrorKind.RPC, f"Unknown procedure: {name}")
        try:
            return await handler(dict(args))
        except GatewayError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise GatewayError(GatewayErrorKind.RPC, f"{name} failed: {e}") from e

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()


# ═══════════════════════════════════════════════════════════════════════════════
# Database Setup
# ═══════════════════════════════════════════════════════════════════════════════

async def create_gateway(
    url: str = "sqlite+aiosqlite:///:memory:",
    procedures: Mapping[str, RpcHandler] | None = None,
) -> SQLAlchemyGateway:
    """Create tables and return a gateway owning its engine."""
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return SQLAlchemyGateway(
        async_sessionmaker(engine, expire_on_commit=False),
        engine=engine,
        procedures=procedures,
    )


__all__ = (
    "Base",
    "RecordTable",
    "BlobTable",
    "SQLAlchemyStorage",
    "SQLAlchemyGateway",
    "create_gateway",
)
