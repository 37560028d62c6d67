from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

from loguru import logger

from briq_router.chain.token_bank import TokenBank
from briq_router.core.access import AccessPolicy
from briq_router.core.adapters.MarketAdapter import MarketAdapter, unwrap_status
from briq_router.core.constants.base import StrategyId
from briq_router.core.errors import (
    InvalidTokenOrAmount,
    MarketSupportUnchanged,
    TokenSupportUnchanged,
    UnknownMarket,
)
from briq_router.core.events import Event, EventLog, TokenSupportUpdated
from briq_router.core.utils.addresses import checksum
from briq_router.core.utils.atomic import compensating
from briq_router.core.utils.tokens import get_token_balance


class LendingStrategy(ABC):
    """Deposits a caller's tokens into a single lending venue.

    A strategy holds its position in its own name through one adapter and
    keeps no share accounting: whoever deposits is trusted to track what
    it is owed. Only the owner and whitelisted callers (normally the
    coordinator) may move funds.
    """

    name: str | None = None
    strategy_id: StrategyId = StrategyId.NONE

    def __init__(
        self,
        address: str,
        owner: str,
        bank: TokenBank,
        adapter: MarketAdapter,
        *,
        events: EventLog | None = None,
    ) -> None:
        self.address = checksum(address)
        self.bank = bank
        self.adapter = adapter
        self.adapter.bind_wallet(self.address)
        self.events = events or EventLog(emitter=self.address)
        self.access = AccessPolicy(owner, events=self.events)
        self.logger = logger.bind(strategy=self.__class__.__name__)

        self._supported_tokens: dict[str, bool] = {}
        self._token_market: dict[str, str] = {}
        self._lock = asyncio.Lock()

    @abstractmethod
    def _market_support_event(self, market: str, token: str, supported: bool) -> Event:
        pass

    @property
    def owner(self) -> str:
        return self.access.owner

    @property
    def market_address(self) -> str:
        return self.adapter.market_address

    def is_token_supported(self, token: str) -> bool:
        return self._supported_tokens.get(checksum(token), False)

    def market_for(self, token: str) -> str | None:
        return self._token_market.get(checksum(token))

    async def update_token_support(self, sender: str, token: str, supported: bool) -> None:
        async with self._lock:
            self.access.require_owner(sender, "update_token_support")
            token = checksum(token)
            supported = bool(supported)
            if self._supported_tokens.get(token, False) == supported:
                raise TokenSupportUnchanged(token, supported)
            self._supported_tokens[token] = supported
            self.events.emit(TokenSupportUpdated(token=token, supported=supported))

    async def whitelist_account(self, sender: str, account: str) -> None:
        async with self._lock:
            self.access.whitelist_account(sender, account)

    async def remove_from_whitelist(self, sender: str, account: str) -> None:
        async with self._lock:
            self.access.remove_from_whitelist(sender, account)

    async def _set_market_support(
        self, sender: str, market: str, token: str, supported: bool
    ) -> None:
        async with self._lock:
            self.access.require_owner(sender, "update_market_support")
            market, token = checksum(market), checksum(token)
            supported = bool(supported)
            if market != self.market_address:
                raise UnknownMarket(market, token)
            if supported and not self.adapter.supports(token):
                raise UnknownMarket(market, token)
            if (self._token_market.get(token) == market) == supported:
                raise MarketSupportUnchanged(market, token, supported)
            if supported:
                self._token_market[token] = market
            else:
                del self._token_market[token]
            self.events.emit(self._market_support_event(market, token, supported))

    async def deposit(self, sender: str, token: str, amount: int) -> int:
        async with self._lock:
            sender, token, amount = checksum(sender), checksum(token), int(amount)
            self.access.require_authorized(sender, "deposit")
            market = self._routable_market(token, amount)
            if amount <= 0:
                raise InvalidTokenOrAmount(token, amount, "deposit must be greater than 0")

            async with compensating(f"{self.name}.deposit") as comp:
                self.bank.transfer_from(token, self.address, sender, self.address, amount)
                comp.push(
                    f"refund {amount} {token} to {sender}",
                    lambda: self.bank.transfer(token, self.address, sender, amount),
                )
                unwrap_status(market, "supply", await self.adapter.supply(token, amount))
                comp.clear()

            self.logger.info(f"deposited {amount} {token} into {market} for {sender}")
            return amount

    async def withdraw(self, sender: str, token: str, amount: int) -> int:
        async with self._lock:
            sender, token, amount = checksum(sender), checksum(token), int(amount)
            self.access.require_authorized(sender, "withdraw")
            market = self._routable_market(token, amount)
            if amount <= 0:
                raise InvalidTokenOrAmount(token, amount, "withdraw must be greater than 0")

            received = unwrap_status(
                market, "withdraw", await self.adapter.withdraw(token, amount)
            )
            self.bank.transfer(token, self.address, sender, received)
            self.logger.info(f"returned {received} {token} to {sender} (requested {amount})")
            return received

    async def balance_of(self, token: str) -> int:
        """Current value of the position in ``token``, including accrued yield."""
        token = checksum(token)
        if not self.adapter.supports(token):
            return 0
        return int(
            unwrap_status(self.market_address, "balance", await self.adapter.balance(token))
        )

    async def withdraw_all(self, sender: str, token: str) -> tuple[int, int]:
        """Pull everything the venue will release and hand it to ``sender``.

        Returns ``(reported, recovered)``: the position the venue reported
        before the call and what actually reached ``sender``. They differ
        when the venue is short of liquidity, has accrued since the last read,
        or refuses withdrawals altogether, in which case only tokens already
        held by the strategy are swept.
        Support flags are not consulted so funds can always be recovered.
        """
        async with self._lock:
            sender, token = checksum(sender), checksum(token)
            self.access.require_authorized(sender, "withdraw_all")
            reported = 0
            if self.adapter.supports(token):
                reported = int(
                    unwrap_status(
                        self.market_address, "balance", await self.adapter.balance(token)
                    )
                )
                if reported:
                    ok, pulled = await self.adapter.withdraw_max(token)
                    if not ok:
                        # Tokens already held are still swept when the venue refuses.
                        self.logger.error(
                            f"withdraw_max of {token} from {self.market_address} failed: {pulled}"
                        )
            recovered = get_token_balance(self.bank, token, self.address)
            if recovered:
                self.bank.transfer(token, self.address, sender, recovered)
            if recovered != reported:
                self.logger.warning(
                    f"emergency withdrawal of {token}: reported {reported}, recovered {recovered}"
                )
            return reported, recovered

    def _routable_market(self, token: str, amount: int) -> str:
        if not self._supported_tokens.get(token, False):
            raise InvalidTokenOrAmount(token, amount, "token not supported")
        market = self._token_market.get(token)
        if market is None:
            raise UnknownMarket(self.market_address, token)
        return market
