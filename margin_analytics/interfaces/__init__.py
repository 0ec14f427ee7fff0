"""Protocol interfaces for the margin analytics collaborators."""
from .data_provider import DataProvider
from .price_oracle import PriceOracle

__all__ = ["DataProvider", "PriceOracle"]
