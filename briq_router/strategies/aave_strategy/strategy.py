from __future__ import annotations

from briq_router.adapters.aave_v3_adapter.adapter import AaveV3Adapter
from briq_router.chain.token_bank import TokenBank
from briq_router.core.constants.base import StrategyId
from briq_router.core.events import EventLog, PoolSupportUpdated
from briq_router.core.strategies.Strategy import LendingStrategy
from briq_router.core.utils.addresses import checksum


class StrategyAave(LendingStrategy):
    name = "aave_strategy"
    strategy_id = StrategyId.AAVE

    adapter: AaveV3Adapter

    def __init__(
        self,
        address: str,
        owner: str,
        bank: TokenBank,
        adapter: AaveV3Adapter,
        *,
        events: EventLog | None = None,
    ) -> None:
        super().__init__(address, owner, bank, adapter, events=events)

    def _market_support_event(
        self, market: str, token: str, supported: bool
    ) -> PoolSupportUpdated:
        return PoolSupportUpdated(pool=market, token=token, supported=supported)

    async def update_pool_support(
        self, sender: str, pool: str, token: str, supported: bool
    ) -> None:
        await self._set_market_support(sender, pool, token, supported)

    def token_to_pool(self, token: str) -> str | None:
        return self.market_for(token)

    def token_to_a_token(self, token: str) -> str | None:
        """aToken received for supplying ``token``, once its pool is enabled."""
        if self.market_for(token) is None:
            return None
        return self.adapter.a_token(checksum(token))
