"""Protocol interfaces for the engine's external collaborators."""
from .price_oracle import PriceOracle
from .token import FungibleToken, StableToken

__all__ = ["FungibleToken", "PriceOracle", "StableToken"]
