from __future__ import annotations

from briq_router.adapters.compound_v3_adapter.adapter import CompoundV3Adapter
from briq_router.chain.token_bank import TokenBank
from briq_router.core.constants.base import StrategyId
from briq_router.core.events import EventLog, MarketSupportUpdated
from briq_router.core.strategies.Strategy import LendingStrategy


class StrategyCompoundComet(LendingStrategy):
    name = "compound_comet_strategy"
    strategy_id = StrategyId.COMPOUND

    adapter: CompoundV3Adapter

    def __init__(
        self,
        address: str,
        owner: str,
        bank: TokenBank,
        adapter: CompoundV3Adapter,
        *,
        events: EventLog | None = None,
    ) -> None:
        super().__init__(address, owner, bank, adapter, events=events)

    def _market_support_event(
        self, market: str, token: str, supported: bool
    ) -> MarketSupportUpdated:
        return MarketSupportUpdated(market=market, token=token, supported=supported)

    async def update_market_support(
        self, sender: str, comet: str, token: str, supported: bool
    ) -> None:
        await self._set_market_support(sender, comet, token, supported)

    def token_to_comet(self, token: str) -> str | None:
        return self.market_for(token)

    def principal(self) -> int:
        """Raw Comet principal, before the supply index is applied."""
        return self.adapter.principal()
