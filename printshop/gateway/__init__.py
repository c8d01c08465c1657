"""
Gateway — the remote data/storage boundary.

The core never talks to a backend directly; it consumes this protocol:

    gateway.query(table, filters)
    gateway.insert(table, row)
    gateway.update(table, id, patch)
    gateway.delete(table, id)
    gateway.rpc(name, args)
    gateway.storage.download(bucket, key) / upload(...)

Implementations:
    MemoryGateway       — in-process, for tests and local runs
    SQLAlchemyGateway   — async SQLAlchemy (aiosqlite by default)

Example:
    from printshop.gateway import MemoryGateway, REFERENCE_PROCEDURES

    gateway = MemoryGateway(procedures=REFERENCE_PROCEDURES)
"""

from printshop.gateway._types import (
    GatewayErrorKind,
    GatewayError,
    RpcHandler,
    BlobStorage,
    Gateway,
)
from printshop.gateway._memory import MemoryStorage, MemoryGateway
from printshop.gateway._sqlalchemy import (
    SQLAlchemyStorage,
    SQLAlchemyGateway,
    create_gateway,
)
from printshop.gateway._procedures import (
    REFERENCE_PROCEDURES,
    DECLINED_TOKEN_PREFIX,
    reference_number,
)

__all__ = (
    # Types
    "GatewayErrorKind",
    "GatewayError",
    "RpcHandler",
    "BlobStorage",
    "Gateway",
    # Implementations
    "MemoryStorage",
    "MemoryGateway",
    "SQLAlchemyStorage",
    "SQLAlchemyGateway",
    "create_gateway",
    # Reference procedures
    "REFERENCE_PROCEDURES",
    "DECLINED_TOKEN_PREFIX",
    "reference_number",
)
