__version__ = "0.1.0"

from briq_router.core import (
    ApyRegistry,
    LendingStrategy,
    LiquidityManager,
    MarketAdapter,
    StrategyCoordinator,
)

__all__ = [
    "__version__",
    "ApyRegistry",
    "LendingStrategy",
    "LiquidityManager",
    "MarketAdapter",
    "StrategyCoordinator",
]
