from .commodities import Commodity, City
from .prices import Price, PriceHistory
from .harvests import Land, LandCommodity, Harvest

__all__ = [
    "Commodity",
    "City",
    "Price",
    "PriceHistory",
    "Land",
    "LandCommodity",
    "Harvest",
]
