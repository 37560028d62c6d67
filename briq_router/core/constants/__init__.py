from briq_router.core.constants.base import (
    MAX_UINT256,
    ZERO_ADDRESS,
    MarketType,
    StrategyId,
)

__all__ = ["MAX_UINT256", "ZERO_ADDRESS", "MarketType", "StrategyId"]
