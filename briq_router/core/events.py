from __future__ import annotations

from collections.abc import Iterator
from typing import Literal, TypeVar

from loguru import logger
from pydantic import BaseModel, ConfigDict


class EventBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Address of the component that emitted the event.
    emitter: str = "unknown"


E = TypeVar("E", bound=EventBase)


class SharesMinted(EventBase):
    type: Literal["SharesMinted"] = "SharesMinted"
    user: str
    token: str
    amount_deposited: int
    shares_minted: int


class Deposit(EventBase):
    type: Literal["Deposit"] = "Deposit"
    user: str
    token: str
    amount: int


class Withdraw(EventBase):
    type: Literal["Withdraw"] = "Withdraw"
    user: str
    token: str
    amount: int


class TokenSupportUpdated(EventBase):
    type: Literal["TokenSupportUpdated"] = "TokenSupportUpdated"
    token: str
    supported: bool


class PoolSupportUpdated(EventBase):
    type: Literal["PoolSupportUpdated"] = "PoolSupportUpdated"
    pool: str
    token: str
    supported: bool


class MarketSupportUpdated(EventBase):
    type: Literal["MarketSupportUpdated"] = "MarketSupportUpdated"
    market: str
    token: str
    supported: bool


class MarketRegistered(EventBase):
    type: Literal["MarketRegistered"] = "MarketRegistered"
    market: str
    market_type: int


class MarketSupplied(EventBase):
    type: Literal["MarketSupplied"] = "MarketSupplied"
    token: str
    market: str
    amount: int


class MarketWithdrawn(EventBase):
    type: Literal["MarketWithdrawn"] = "MarketWithdrawn"
    token: str
    market: str
    requested: int
    received: int


class APYUpdated(EventBase):
    type: Literal["APYUpdated"] = "APYUpdated"
    pool: str
    apy: int
    timestamp: int


class OwnershipTransferred(EventBase):
    type: Literal["OwnershipTransferred"] = "OwnershipTransferred"
    previous_owner: str
    new_owner: str


class WhitelistUpdated(EventBase):
    type: Literal["WhitelistUpdated"] = "WhitelistUpdated"
    account: str
    whitelisted: bool


class StrategyUpdated(EventBase):
    type: Literal["StrategyUpdated"] = "StrategyUpdated"
    token: str
    previous_strategy: int
    new_strategy: int


class EmergencyWithdrawal(EventBase):
    type: Literal["EmergencyWithdrawal"] = "EmergencyWithdrawal"
    token: str
    strategy: int
    reported: int
    recovered: int


Event = (
    SharesMinted
    | Deposit
    | Withdraw
    | TokenSupportUpdated
    | PoolSupportUpdated
    | MarketSupportUpdated
    | MarketRegistered
    | MarketSupplied
    | MarketWithdrawn
    | APYUpdated
    | OwnershipTransferred
    | WhitelistUpdated
    | StrategyUpdated
    | EmergencyWithdrawal
)


class EventLog:
    """Append-only record of state transitions, in emission order."""

    def __init__(self, emitter: str = "unknown") -> None:
        self.emitter = emitter
        self._events: list[Event] = []

    def emit(self, event: Event) -> Event:
        if event.emitter == "unknown":
            event = event.model_copy(update={"emitter": self.emitter})
        self._events.append(event)
        logger.debug(f"[{self.emitter}] {event.type} {event.model_dump(exclude={'type', 'emitter'})}")
        return event

    def of_type(self, kind: type[E]) -> list[E]:
        return [e for e in self._events if isinstance(e, kind)]

    def last(self) -> Event | None:
        return self._events[-1] if self._events else None

    def dump(self) -> list[dict]:
        return [e.model_dump(mode="json") for e in self._events]

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(list(self._events))
