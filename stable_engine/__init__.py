"""Over-collateralized stable-unit issuance engine."""
from .errors import EngineError, ErrorKind
from .ledger import CollateralLedger
from .models import AccountInfo, CollateralAsset, LiquidationResult, PriceQuote
from .services import SolvencyEngine

__all__ = [
    "AccountInfo",
    "CollateralAsset",
    "CollateralLedger",
    "EngineError",
    "ErrorKind",
    "LiquidationResult",
    "PriceQuote",
    "SolvencyEngine",
]
