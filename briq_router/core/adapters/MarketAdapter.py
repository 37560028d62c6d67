from __future__ import annotations

import functools
from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

from loguru import logger

from briq_router.chain.token_bank import TokenBank
from briq_router.core.constants.base import MAX_UINT256, MarketType
from briq_router.core.errors import MarketCallFailed
from briq_router.core.utils.addresses import checksum
from briq_router.core.utils.tokens import ensure_allowance, get_token_balance

StatusResult = tuple[bool, Any]

T = TypeVar("T")


def unwrap_status(market: str, operation: str, result: StatusResult) -> Any:
    """Turn a failed status tuple into a single ``MarketCallFailed``."""
    ok, value = result
    if not ok:
        raise MarketCallFailed(market, operation, str(value))
    return value


def require_wallet(fn: Callable) -> Callable:
    """Return ``(False, ...)`` early if ``self.wallet_address`` is not set."""

    @functools.wraps(fn)
    async def wrapper(self: MarketAdapter, *args: Any, **kwargs: Any) -> Any:
        if not getattr(self, "wallet_address", None):
            return False, "wallet address not configured"
        return await fn(self, *args, **kwargs)

    return wrapper


def status_tuple(
    fn: Callable[..., Coroutine[Any, Any, T]],
) -> Callable[..., Coroutine[Any, Any, tuple[bool, T | str]]]:
    """Wrap an async adapter method to return ``(True, result)`` or ``(False, error_str)``.

    Venue reverts and failed transfers are logged via ``self.logger`` and
    returned as ``(False, str(e))``; callers decide whether to abort.
    """

    @functools.wraps(fn)
    async def wrapper(self: Any, *args: Any, **kwargs: Any) -> tuple[bool, T | str]:
        try:
            result = await fn(self, *args, **kwargs)
            return (True, result)
        except Exception as exc:
            self.logger.error(f"Error in {fn.__name__}: {exc}")
            return (False, str(exc))

    return wrapper  # type: ignore[return-value]


class MarketAdapter(ABC):
    """Capability over one external lending market: supply, withdraw, balance.

    The adapter acts for a single holder (``wallet_address``), which is the
    ledger or strategy whose tokens it moves. Every operation returns a
    status tuple; ``withdraw`` reports the amount that actually arrived in
    the holder's wallet, which may differ from the amount requested.
    """

    adapter_type: str | None = None
    market_type: MarketType

    def __init__(
        self,
        name: str,
        config: dict[str, Any] | None = None,
        *,
        bank: TokenBank,
        wallet_address: str | None = None,
    ) -> None:
        self.name = name
        self.config = config or {}
        self.bank = bank
        self.logger = logger.bind(adapter=self.__class__.__name__)

        holder = wallet_address or (self.config.get("strategy_wallet") or {}).get(
            "address"
        )
        self.wallet_address: str | None = checksum(holder) if holder else None

    def bind_wallet(self, wallet_address: str) -> None:
        self.wallet_address = checksum(wallet_address)

    @property
    @abstractmethod
    def market_address(self) -> str: ...

    @abstractmethod
    def supports(self, token: str) -> bool:
        """Whether the venue accepts ``token`` at all."""

    @abstractmethod
    def _supply(self, token: str, amount: int) -> None: ...

    @abstractmethod
    def _withdraw(self, token: str, amount: int) -> None: ...

    @abstractmethod
    def _balance(self, token: str) -> int: ...

    @abstractmethod
    def _withdrawable(self, token: str) -> int:
        """Largest amount the venue would release right now."""

    @require_wallet
    @status_tuple
    async def supply(self, token: str, amount: int) -> int:
        amount = int(amount)
        if amount <= 0:
            raise ValueError("amount must be positive")
        ensure_allowance(
            self.bank,
            token_address=token,
            owner=self.wallet_address,
            spender=self.market_address,
            amount=amount,
            approval_amount=MAX_UINT256,
        )
        self._supply(token, amount)
        self.logger.info(f"supplied {amount} {token} to {self.market_address}")
        return amount

    @require_wallet
    @status_tuple
    async def withdraw(self, token: str, amount: int) -> int:
        amount = int(amount)
        if amount <= 0:
            raise ValueError("amount must be positive")
        return self._withdraw_measured(token, amount)

    @require_wallet
    @status_tuple
    async def withdraw_max(self, token: str) -> int:
        """Withdraw as much as the venue will release, possibly less than the balance."""
        amount = min(self._balance(token), self._withdrawable(token))
        if amount <= 0:
            return 0
        return self._withdraw_measured(token, amount)

    @require_wallet
    @status_tuple
    async def balance(self, token: str) -> int:
        return self._balance(token)

    def _withdraw_measured(self, token: str, amount: int) -> int:
        before = get_token_balance(self.bank, token, self.wallet_address)
        self._withdraw(token, amount)
        received = get_token_balance(self.bank, token, self.wallet_address) - before
        self.logger.info(
            f"withdrew {received} {token} from {self.market_address} (requested {amount})"
        )
        return received
