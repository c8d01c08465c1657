"""
printshop — checkout and artwork intake for a print shop.

    from printshop import checkout as CO   # Session state machine + wizard
    from printshop import files as F       # Artwork validation
    from printshop import gateway as G     # Persistence, storage, RPC
    from printshop import wire as W        # FastAPI surface
"""

from printshop import lift
from printshop import config
from printshop import gateway
from printshop import checkout
from printshop import files
from printshop import wire
from printshop._types import Row, Filters, Money

__version__ = "0.1.0"

__all__ = (
    "lift",
    "config",
    "gateway",
    "checkout",
    "files",
    "wire",
    "Row",
    "Filters",
    "Money",
)
