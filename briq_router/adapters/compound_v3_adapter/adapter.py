from __future__ import annotations

from typing import Any

from briq_router.chain.comet_market import CometMarket
from briq_router.chain.token_bank import TokenBank
from briq_router.core.adapters.MarketAdapter import MarketAdapter
from briq_router.core.constants.base import ADAPTER_COMPOUND_V3, MarketType
from briq_router.core.utils.addresses import checksum


class CompoundV3Adapter(MarketAdapter):
    """Supplies the base asset of a Comet market; the position is a principal."""

    adapter_type = ADAPTER_COMPOUND_V3
    market_type = MarketType.COMPOUND

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        comet: CometMarket,
        bank: TokenBank,
        wallet_address: str | None = None,
    ) -> None:
        super().__init__(
            "compound_v3_adapter", config, bank=bank, wallet_address=wallet_address
        )
        self.comet = comet

    @property
    def market_address(self) -> str:
        return self.comet.address

    def supports(self, token: str) -> bool:
        return checksum(token) == self.comet.base_token

    def principal(self) -> int:
        return self.comet.principal_of(self.wallet_address)

    def _supply(self, token: str, amount: int) -> None:
        self.comet.supply(token, amount, sender=self.wallet_address)

    def _withdraw(self, token: str, amount: int) -> None:
        self.comet.withdraw(token, amount, sender=self.wallet_address)

    def _balance(self, token: str) -> int:
        if not self.supports(token):
            return 0
        return self.comet.balance_of(self.wallet_address)

    def _withdrawable(self, token: str) -> int:
        if not self.supports(token):
            return 0
        return self.comet.available_liquidity()
