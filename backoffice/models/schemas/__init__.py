from .base import PaginatedResponse, DownloadResponse
from .prices import PriceCreate, PriceUpdate, PriceRead, PriceHistoryRead
from .harvests import HarvestCreate, HarvestRead

__all__ = [
    # Base
    "PaginatedResponse",
    "DownloadResponse",

    # Prices
    "PriceCreate",
    "PriceUpdate",
    "PriceRead",
    "PriceHistoryRead",

    # Harvests
    "HarvestCreate",
    "HarvestRead",
]
