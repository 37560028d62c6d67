from briq_router.core.adapters.MarketAdapter import MarketAdapter, StatusResult
from briq_router.core.ledger.liquidity_manager import LiquidityManager
from briq_router.core.ledger.share_ledger import ShareLedger
from briq_router.core.registry.apy_registry import ApyRegistry
from briq_router.core.strategies.Strategy import LendingStrategy
from briq_router.core.strategies.StrategyCoordinator import StrategyCoordinator

__all__ = [
    "ApyRegistry",
    "LendingStrategy",
    "LiquidityManager",
    "MarketAdapter",
    "ShareLedger",
    "StatusResult",
    "StrategyCoordinator",
]
