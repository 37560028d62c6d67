from briq_router.chain.aave_v3_pool import AaveV3Pool
from briq_router.chain.comet_market import CometMarket
from briq_router.chain.token_bank import TokenBank

__all__ = ["AaveV3Pool", "CometMarket", "TokenBank"]
