from __future__ import annotations

import asyncio
from collections.abc import Iterable

from loguru import logger

from briq_router.chain.token_bank import TokenBank
from briq_router.core.access import AccessPolicy
from briq_router.core.constants.base import StrategyId
from briq_router.core.errors import (
    InvalidTokenOrAmount,
    StrategyUnchanged,
    TokenSupportUnchanged,
    UnknownStrategy,
    ValidationError,
)
from briq_router.core.events import (
    EmergencyWithdrawal,
    EventLog,
    StrategyUpdated,
    TokenSupportUpdated,
)
from briq_router.core.strategies.Strategy import LendingStrategy
from briq_router.core.utils.addresses import checksum
from briq_router.core.utils.atomic import compensating
from briq_router.core.utils.tokens import ensure_allowance


class StrategyCoordinator:
    """Routes each token to one active strategy on behalf of a controller.

    The controller is the coordinator's owner. Funds flow controller ->
    coordinator -> strategy on deposit and back the same way on withdraw.
    Switching a token's strategy moves no funds; whatever sits in the old
    strategy stays there until the owner withdraws it.
    """

    def __init__(
        self,
        address: str,
        owner: str,
        bank: TokenBank,
        strategies: Iterable[LendingStrategy],
        *,
        events: EventLog | None = None,
    ) -> None:
        self.address = checksum(address)
        self.bank = bank
        self.events = events or EventLog(emitter=self.address)
        self.access = AccessPolicy(owner, events=self.events)
        self.logger = logger.bind(component="StrategyCoordinator")

        self._strategies: dict[StrategyId, LendingStrategy] = {}
        for strategy in strategies:
            if strategy.strategy_id == StrategyId.NONE:
                raise ValidationError(f"{strategy.name} has no strategy id")
            if strategy.strategy_id in self._strategies:
                raise ValidationError(f"duplicate strategy {strategy.strategy_id.name}")
            self._strategies[strategy.strategy_id] = strategy

        self._supported_tokens: dict[str, bool] = {}
        self._selection: dict[str, StrategyId] = {}
        self._deployed: dict[tuple[str, StrategyId], int] = {}
        self._lock = asyncio.Lock()

    @property
    def owner(self) -> str:
        return self.access.owner

    def strategy(self, strategy_id: StrategyId | int) -> LendingStrategy:
        sid = self._strategy_id(strategy_id)
        strategy = self._strategies.get(sid)
        if strategy is None:
            raise UnknownStrategy(sid)
        return strategy

    def strategy_for_token(self, token: str) -> StrategyId:
        return self._selection.get(checksum(token), StrategyId.NONE)

    def is_token_supported(self, token: str) -> bool:
        return self._supported_tokens.get(checksum(token), False)

    def deployed_balance(self, token: str, strategy_id: StrategyId | int) -> int:
        """Book value this coordinator has placed in a strategy, net of withdrawals."""
        return self._deployed.get((checksum(token), self._strategy_id(strategy_id)), 0)

    async def update_token_support(self, sender: str, token: str, supported: bool) -> None:
        async with self._lock:
            self.access.require_owner(sender, "update_token_support")
            token = checksum(token)
            supported = bool(supported)
            if self._supported_tokens.get(token, False) == supported:
                raise TokenSupportUnchanged(token, supported)
            self._supported_tokens[token] = supported
            self.events.emit(TokenSupportUpdated(token=token, supported=supported))

    async def set_strategy_for_token(
        self, sender: str, token: str, strategy_id: StrategyId | int
    ) -> None:
        async with self._lock:
            self.access.require_owner(sender, "set_strategy_for_token")
            token = checksum(token)
            sid = self._strategy_id(strategy_id)
            if sid != StrategyId.NONE and sid not in self._strategies:
                raise UnknownStrategy(sid)
            previous = self._selection.get(token, StrategyId.NONE)
            if previous == sid:
                raise StrategyUnchanged(token, sid.name)
            self._selection[token] = sid
            self.events.emit(
                StrategyUpdated(
                    token=token, previous_strategy=int(previous), new_strategy=int(sid)
                )
            )
            self.logger.info(f"{token} routed {previous.name} -> {sid.name}")

    async def deposit(self, sender: str, token: str, amount: int) -> int:
        async with self._lock:
            sender, token, amount = checksum(sender), checksum(token), int(amount)
            self.access.require_owner(sender, "deposit")
            sid, strategy = self._active(token, amount)
            if amount <= 0:
                raise InvalidTokenOrAmount(token, amount, "deposit must be greater than 0")

            async with compensating("coordinator.deposit") as comp:
                self.bank.transfer_from(token, self.address, sender, self.address, amount)
                comp.push(
                    f"refund {amount} {token} to {sender}",
                    lambda: self.bank.transfer(token, self.address, sender, amount),
                )
                ensure_allowance(
                    self.bank,
                    token_address=token,
                    owner=self.address,
                    spender=strategy.address,
                    amount=amount,
                )
                await strategy.deposit(self.address, token, amount)
                comp.clear()

            key = (token, sid)
            self._deployed[key] = self._deployed.get(key, 0) + amount
            self.logger.info(f"deployed {amount} {token} to {sid.name}")
            return amount

    async def withdraw(self, sender: str, token: str, amount: int) -> int:
        async with self._lock:
            sender, token, amount = checksum(sender), checksum(token), int(amount)
            self.access.require_owner(sender, "withdraw")
            sid, strategy = self._active(token, amount)
            if amount <= 0:
                raise InvalidTokenOrAmount(token, amount, "withdraw must be greater than 0")

            received = await strategy.withdraw(self.address, token, amount)
            self.bank.transfer(token, self.address, sender, received)

            key = (token, sid)
            self._deployed[key] = max(0, self._deployed.get(key, 0) - received)
            self.logger.info(f"withdrew {received} {token} from {sid.name}")
            return received

    async def balance_of(self, token: str) -> int:
        token = checksum(token)
        sid = self._selection.get(token, StrategyId.NONE)
        if sid == StrategyId.NONE:
            return 0
        return await self._strategies[sid].balance_of(token)

    async def emergency_withdraw(self, sender: str, token: str) -> int:
        """Recover everything the active strategy can release to the controller.

        Book values are ignored: the amount returned is whatever the venue
        actually paid out, and the deployed balance is reset to zero.
        """
        async with self._lock:
            sender, token = checksum(sender), checksum(token)
            self.access.require_owner(sender, "emergency_withdraw")
            sid = self._selection.get(token, StrategyId.NONE)
            if sid == StrategyId.NONE:
                raise UnknownStrategy(sid)
            strategy = self._strategies[sid]

            reported, recovered = await strategy.withdraw_all(self.address, token)
            if recovered:
                self.bank.transfer(token, self.address, self.owner, recovered)
            self._deployed[(token, sid)] = 0

            self.events.emit(
                EmergencyWithdrawal(
                    token=token, strategy=int(sid), reported=reported, recovered=recovered
                )
            )
            self.logger.warning(
                f"emergency withdrawal of {token} from {sid.name}: "
                f"reported {reported}, recovered {recovered}"
            )
            return recovered

    def _active(self, token: str, amount: int) -> tuple[StrategyId, LendingStrategy]:
        if not self._supported_tokens.get(token, False):
            raise InvalidTokenOrAmount(token, amount, "token not supported")
        sid = self._selection.get(token, StrategyId.NONE)
        if sid == StrategyId.NONE:
            raise UnknownStrategy(sid)
        return sid, self._strategies[sid]

    @staticmethod
    def _strategy_id(value: StrategyId | int) -> StrategyId:
        try:
            return StrategyId(int(value))
        except ValueError as exc:
            raise UnknownStrategy(value) from exc
