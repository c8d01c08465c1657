"""
Core types for printshop.

Shared aliases for gateway payloads and money.
"""

from __future__ import annotations

from typing import Any
from collections.abc import Mapping

# ═══════════════════════════════════════════════════════════════════════════════
# Row Shapes (gateway payloads)
# ═══════════════════════════════════════════════════════════════════════════════

type Row = dict[str, Any]
"""A single stored row as returned by the gateway."""

type Filters = Mapping[str, Any]
"""Equality filters for row queries."""

type Money = float
"""Currency amount. Accumulated unrounded; rounded only for display."""

# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Row",
    "Filters",
    "Money",
)
