from __future__ import annotations

import asyncio

from loguru import logger

from briq_router.chain.token_bank import TokenBank
from briq_router.core.access import AccessPolicy
from briq_router.core.adapters.MarketAdapter import MarketAdapter, unwrap_status
from briq_router.core.constants.base import MarketType
from briq_router.core.errors import (
    InsufficientLiquidity,
    InsufficientShares,
    InvalidMarketType,
    InvalidTokenOrAmount,
    MarketSupportUnchanged,
    TokenSupportUnchanged,
    UnknownMarket,
    ValidationError,
)
from briq_router.core.events import (
    Deposit,
    EventLog,
    MarketRegistered,
    MarketSupplied,
    MarketSupportUpdated,
    MarketWithdrawn,
    SharesMinted,
    TokenSupportUpdated,
    Withdraw,
)
from briq_router.core.ledger.share_ledger import ShareLedger
from briq_router.core.utils.addresses import checksum
from briq_router.core.utils.atomic import compensating


class LiquidityManager:
    """Custodial pool: users deposit tokens for shares, the owner routes the
    pooled balance into registered lending markets.

    Every entry point runs under one lock, validates first, performs its
    external calls, and only then commits to the share ledger, so a failure
    at any step leaves both the ledger and the token balances as they were.
    """

    def __init__(
        self,
        address: str,
        owner: str,
        bank: TokenBank,
        *,
        events: EventLog | None = None,
    ) -> None:
        self.address = checksum(address)
        self.bank = bank
        self.events = events or EventLog(emitter=self.address)
        self.access = AccessPolicy(owner, events=self.events)
        self.ledger = ShareLedger()
        self.logger = logger.bind(component="LiquidityManager")

        self._supported_tokens: dict[str, bool] = {}
        self._supported_markets: dict[tuple[str, str], bool] = {}
        self._adapters: dict[str, MarketAdapter] = {}
        self._lock = asyncio.Lock()

    # Reads

    @property
    def owner(self) -> str:
        return self.access.owner

    def is_token_supported(self, token: str) -> bool:
        return self._supported_tokens.get(checksum(token), False)

    def is_market_supported(self, market: str, token: str) -> bool:
        return self._supported_markets.get((checksum(token), checksum(market)), False)

    def adapter_for(self, market: str) -> MarketAdapter:
        adapter = self._adapters.get(checksum(market))
        if adapter is None:
            raise UnknownMarket(checksum(market))
        return adapter

    def user_shares(self, user: str, token: str) -> int:
        return self.ledger.shares_of(checksum(user), checksum(token))

    def total_shares(self, token: str) -> int:
        return self.ledger.view(checksum(token)).total_shares

    def total_liquidity(self, token: str) -> int:
        return self.ledger.view(checksum(token)).total_liquidity

    def idle_balance(self, token: str) -> int:
        return self.ledger.view(checksum(token)).idle

    def market_liquidity(self, token: str, market: str) -> int:
        return self.ledger.market_balance(checksum(token), checksum(market))

    def preview_deposit(self, token: str, amount: int) -> int:
        return self.ledger.shares_for_deposit(checksum(token), int(amount))

    def preview_withdraw(self, token: str, shares: int) -> int:
        return self.ledger.value_of_shares(checksum(token), int(shares))

    def check_invariants(self, token: str) -> None:
        self.ledger.check_invariants(checksum(token))

    # Owner configuration

    async def transfer_ownership(self, sender: str, new_owner: str) -> None:
        async with self._lock:
            self.access.transfer_ownership(sender, new_owner)

    async def update_token_support(self, sender: str, token: str, supported: bool) -> None:
        async with self._lock:
            self.access.require_owner(sender, "update_token_support")
            token = checksum(token)
            supported = bool(supported)
            if self._supported_tokens.get(token, False) == supported:
                raise TokenSupportUnchanged(token, supported)
            self._supported_tokens[token] = supported
            self.events.emit(TokenSupportUpdated(token=token, supported=supported))

    async def register_market(self, sender: str, adapter: MarketAdapter) -> None:
        async with self._lock:
            self.access.require_owner(sender, "register_market")
            market = checksum(adapter.market_address)
            if market in self._adapters:
                raise ValidationError(f"Market already registered: {market}")
            adapter.bind_wallet(self.address)
            self._adapters[market] = adapter
            self.events.emit(
                MarketRegistered(market=market, market_type=int(adapter.market_type))
            )

    async def update_market_support(
        self, sender: str, market: str, token: str, supported: bool
    ) -> None:
        async with self._lock:
            self.access.require_owner(sender, "update_market_support")
            market, token = checksum(market), checksum(token)
            supported = bool(supported)
            if supported:
                if not self._supported_tokens.get(token, False):
                    raise InvalidTokenOrAmount(token, 0, "token not supported")
                self.adapter_for(market)
            key = (token, market)
            if self._supported_markets.get(key, False) == supported:
                raise MarketSupportUnchanged(market, token, supported)
            self._supported_markets[key] = supported
            self.events.emit(
                MarketSupportUpdated(market=market, token=token, supported=supported)
            )

    # User entry points

    async def deposit(self, sender: str, token: str, amount: int) -> int:
        async with self._lock:
            sender, token, amount = checksum(sender), checksum(token), int(amount)
            if not self._supported_tokens.get(token, False):
                raise InvalidTokenOrAmount(token, amount, "token not supported")
            if amount <= 0:
                raise InvalidTokenOrAmount(token, amount, "deposit must be greater than 0")

            book = self.ledger.view(token)
            if book.total_shares and not book.total_liquidity:
                raise InvalidTokenOrAmount(
                    token, amount, "outstanding shares have no liquidity backing them"
                )
            shares = self.ledger.shares_for_deposit(token, amount)
            if shares <= 0:
                raise InvalidTokenOrAmount(token, amount, "deposit too small to mint shares")

            self.bank.transfer_from(token, self.address, sender, self.address, amount)
            self.ledger.mint(sender, token, amount, shares)
            self.ledger.check_invariants(token)

            self.events.emit(
                SharesMinted(
                    user=sender, token=token, amount_deposited=amount, shares_minted=shares
                )
            )
            self.events.emit(Deposit(user=sender, token=token, amount=amount))
            self.logger.info(f"{sender} deposited {amount} {token} for {shares} shares")
            return shares

    async def withdraw(self, sender: str, token: str, shares: int) -> int:
        async with self._lock:
            sender, token, shares = checksum(sender), checksum(token), int(shares)
            if not self._supported_tokens.get(token, False):
                raise InvalidTokenOrAmount(token, shares, "token not supported")
            if shares <= 0:
                raise InvalidTokenOrAmount(token, shares, "must withdraw more than 0 shares")

            held = self.ledger.shares_of(sender, token)
            if shares > held:
                raise InsufficientShares(sender, token, shares, held)
            value = self.ledger.value_of_shares(token, shares)
            if value <= 0:
                raise InvalidTokenOrAmount(token, shares, "shares redeem for nothing")
            idle = self.ledger.view(token).idle
            if value > idle:
                raise InsufficientLiquidity(token, value, idle)

            self.bank.transfer(token, self.address, sender, value)
            self.ledger.burn(sender, token, shares, value)
            self.ledger.check_invariants(token)

            self.events.emit(Withdraw(user=sender, token=token, amount=value))
            self.logger.info(f"{sender} redeemed {shares} shares for {value} {token}")
            return value

    # Market routing

    async def supply(
        self,
        sender: str,
        token: str,
        market: str,
        amount: int,
        market_type: MarketType | int,
    ) -> int:
        async with self._lock:
            self.access.require_owner(sender, "supply")
            token, market, amount = checksum(token), checksum(market), int(amount)
            adapter = self._routable_adapter(token, market, market_type)
            if amount <= 0:
                raise InvalidTokenOrAmount(token, amount, "supply must be greater than 0")
            idle = self.ledger.view(token).idle
            if amount > idle:
                raise InsufficientLiquidity(token, amount, idle)

            unwrap_status(market, "supply", await adapter.supply(token, amount))
            self.ledger.move_to_market(token, market, amount)
            self.ledger.check_invariants(token)

            self.events.emit(MarketSupplied(token=token, market=market, amount=amount))
            self.logger.info(f"supplied {amount} {token} to {market}")
            return amount

    async def withdraw_from_market(
        self,
        sender: str,
        token: str,
        market: str,
        amount: int,
        market_type: MarketType | int,
    ) -> int:
        async with self._lock:
            self.access.require_owner(sender, "withdraw_from_market")
            token, market, amount = checksum(token), checksum(market), int(amount)
            adapter = self._adapter_of_type(market, market_type)
            if amount <= 0:
                raise InvalidTokenOrAmount(token, amount, "withdraw must be greater than 0")
            booked = self.ledger.market_balance(token, market)
            if amount > booked:
                raise InsufficientLiquidity(token, amount, booked, where="market")

            async with compensating("withdraw_from_market") as comp:
                received = unwrap_status(market, "withdraw", await adapter.withdraw(token, amount))

                async def _resupply() -> None:
                    unwrap_status(market, "supply", await adapter.supply(token, received))

                comp.push(f"resupply {received} {token} to {market}", _resupply)
                self.ledger.return_from_market(token, market, amount, received)
                comp.clear()
            self.ledger.check_invariants(token)

            self.events.emit(
                MarketWithdrawn(
                    token=token, market=market, requested=amount, received=received
                )
            )
            if received != amount:
                self.logger.warning(
                    f"{market} returned {received} {token} for {amount} requested"
                )
            return received

    async def sync_market(self, sender: str, token: str, market: str) -> int:
        """Book interest accrued in ``market`` since the last sync; returns the delta."""
        async with self._lock:
            self.access.require_owner(sender, "sync_market")
            token, market = checksum(token), checksum(market)
            adapter = self.adapter_for(market)
            booked = self.ledger.market_balance(token, market)
            if not booked and not self._supported_markets.get((token, market), False):
                raise UnknownMarket(market, token)
            value = unwrap_status(market, "balance", await adapter.balance(token))
            delta = self.ledger.mark_market(token, market, int(value))
            self.ledger.check_invariants(token)
            if delta:
                self.logger.info(f"marked {market} {token} position by {delta:+d}")
            return delta

    def _adapter_of_type(self, market: str, market_type: MarketType | int) -> MarketAdapter:
        adapter = self.adapter_for(market)
        try:
            requested = MarketType(int(market_type))
        except ValueError as exc:
            raise InvalidMarketType(market, adapter.market_type.name, market_type) from exc
        if adapter.market_type != requested:
            raise InvalidMarketType(market, adapter.market_type.name, requested.name)
        return adapter

    def _routable_adapter(
        self, token: str, market: str, market_type: MarketType | int
    ) -> MarketAdapter:
        if not self._supported_tokens.get(token, False):
            raise InvalidTokenOrAmount(token, 0, "token not supported")
        if not self._supported_markets.get((token, market), False):
            raise UnknownMarket(market, token)
        return self._adapter_of_type(market, market_type)
