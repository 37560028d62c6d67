from __future__ import annotations

from typing import Any

from briq_router.chain.aave_v3_pool import AaveV3Pool
from briq_router.chain.token_bank import TokenBank
from briq_router.core.adapters.MarketAdapter import MarketAdapter
from briq_router.core.constants.base import ADAPTER_AAVE_V3, MarketType


class AaveV3Adapter(MarketAdapter):
    """Supplies into an Aave V3 pool; the position is the holder's aToken balance."""

    adapter_type = ADAPTER_AAVE_V3
    market_type = MarketType.AAVE

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        pool: AaveV3Pool,
        bank: TokenBank,
        wallet_address: str | None = None,
    ) -> None:
        super().__init__(
            "aave_v3_adapter", config, bank=bank, wallet_address=wallet_address
        )
        self.pool = pool

    @property
    def market_address(self) -> str:
        return self.pool.address

    def supports(self, token: str) -> bool:
        return self.pool.has_reserve(token)

    def a_token(self, token: str) -> str:
        return self.pool.reserve(token).a_token

    def _supply(self, token: str, amount: int) -> None:
        self.pool.supply(token, amount, on_behalf_of=self.wallet_address)

    def _withdraw(self, token: str, amount: int) -> None:
        self.pool.withdraw(token, amount, to=self.wallet_address)

    def _balance(self, token: str) -> int:
        return self.pool.a_token_balance(token, self.wallet_address)

    def _withdrawable(self, token: str) -> int:
        return self.pool.available_liquidity(token)
