from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable

from loguru import logger

from briq_router.core.access import AccessPolicy
from briq_router.core.errors import ApyUnchanged, UnknownPool, ValidationError
from briq_router.core.events import APYUpdated, EventLog
from briq_router.core.utils.addresses import checksum


class ApyRegistry:
    """Latest APY per pool, in basis points, with the time it was written.

    Written by the owner or a whitelisted publisher; read by whoever decides
    where liquidity goes. Nothing here acts on the values.
    """

    def __init__(
        self,
        address: str,
        owner: str,
        *,
        events: EventLog | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.address = checksum(address)
        self.events = events or EventLog(emitter=self.address)
        self.access = AccessPolicy(owner, events=self.events)
        self.logger = logger.bind(component="ApyRegistry")
        self._clock = clock or (lambda: int(time.time()))
        self._apys: dict[str, tuple[int, int]] = {}
        self._lock = asyncio.Lock()

    @property
    def owner(self) -> str:
        return self.access.owner

    def pools(self) -> list[str]:
        return list(self._apys)

    def has_pool(self, pool: str) -> bool:
        return checksum(pool) in self._apys

    def get_apy(self, pool: str) -> tuple[int, int]:
        """Return ``(apy_bps, timestamp)``; raises ``UnknownPool`` if never written."""
        pool = checksum(pool)
        if pool not in self._apys:
            raise UnknownPool(pool)
        return self._apys[pool]

    def best_pool(self, pools: Iterable[str] | None = None) -> tuple[str, int] | None:
        """Highest-APY pool among ``pools`` (default: every recorded pool).

        Ties keep the first pool in iteration order.
        """
        candidates = [checksum(p) for p in pools] if pools is not None else self.pools()
        best: tuple[str, int] | None = None
        for pool in candidates:
            apy, _ = self.get_apy(pool)
            if best is None or apy > best[1]:
                best = (pool, apy)
        return best

    async def update_apy(self, sender: str, pool: str, new_apy: int) -> int:
        async with self._lock:
            self.access.require_authorized(sender, "update_apy")
            pool = checksum(pool)
            if isinstance(new_apy, bool) or not isinstance(new_apy, int) or new_apy < 0:
                raise ValidationError(f"APY must be a non-negative integer, got {new_apy!r}")
            current = self._apys.get(pool)
            if current is not None and current[0] == new_apy:
                raise ApyUnchanged(pool, new_apy)

            timestamp = int(self._clock())
            self._apys[pool] = (new_apy, timestamp)
            self.events.emit(APYUpdated(pool=pool, apy=new_apy, timestamp=timestamp))
            self.logger.info(f"{pool} APY set to {new_apy} bps")
            return timestamp

    async def whitelist_account(self, sender: str, account: str) -> None:
        async with self._lock:
            self.access.whitelist_account(sender, account)

    async def remove_from_whitelist(self, sender: str, account: str) -> None:
        async with self._lock:
            self.access.remove_from_whitelist(sender, account)

    async def transfer_ownership(self, sender: str, new_owner: str) -> None:
        async with self._lock:
            self.access.transfer_ownership(sender, new_owner)
