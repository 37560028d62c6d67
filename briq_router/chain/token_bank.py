from __future__ import annotations

from loguru import logger

from briq_router.core.constants.base import MAX_UINT256
from briq_router.core.errors import TransferFailed
from briq_router.core.utils.addresses import checksum


class TokenBank:
    """In-memory ERC-20 ledger for every token the router touches.

    Balances are keyed ``(token, holder)`` and allowances
    ``(token, owner, spender)``. An allowance of ``MAX_UINT256`` is never
    decremented, as with most ERC-20 implementations.
    """

    def __init__(self) -> None:
        self._balances: dict[tuple[str, str], int] = {}
        self._allowances: dict[tuple[str, str, str], int] = {}
        self._supply: dict[str, int] = {}

    def balance_of(self, token: str, holder: str) -> int:
        return self._balances.get((checksum(token), checksum(holder)), 0)

    def total_supply(self, token: str) -> int:
        return self._supply.get(checksum(token), 0)

    def allowance(self, token: str, owner: str, spender: str) -> int:
        return self._allowances.get(
            (checksum(token), checksum(owner), checksum(spender)), 0
        )

    def mint(self, token: str, to: str, amount: int) -> None:
        token, to = checksum(token), checksum(to)
        amount = int(amount)
        if amount < 0:
            raise ValueError("mint amount must be non-negative")
        self._balances[(token, to)] = self._balances.get((token, to), 0) + amount
        self._supply[token] = self._supply.get(token, 0) + amount

    def approve(self, token: str, owner: str, spender: str, amount: int) -> None:
        amount = int(amount)
        if amount < 0:
            raise ValueError("allowance must be non-negative")
        self._allowances[(checksum(token), checksum(owner), checksum(spender))] = (
            amount
        )

    def transfer(self, token: str, source: str, dest: str, amount: int) -> None:
        token, source, dest = checksum(token), checksum(source), checksum(dest)
        amount = int(amount)
        if amount < 0:
            raise TransferFailed(token, source, dest, amount, "negative amount")
        have = self._balances.get((token, source), 0)
        if have < amount:
            raise TransferFailed(
                token, source, dest, amount, f"balance {have} < {amount}"
            )
        self._balances[(token, source)] = have - amount
        self._balances[(token, dest)] = self._balances.get((token, dest), 0) + amount
        logger.trace(f"transfer {amount} {token} {source} -> {dest}")

    def transfer_from(
        self, token: str, spender: str, owner: str, dest: str, amount: int
    ) -> None:
        token, spender, owner = checksum(token), checksum(spender), checksum(owner)
        amount = int(amount)
        if spender != owner:
            allowed = self._allowances.get((token, owner, spender), 0)
            if allowed < amount:
                raise TransferFailed(
                    token, owner, dest, amount, f"allowance {allowed} < {amount}"
                )
            self.transfer(token, owner, dest, amount)
            if allowed != MAX_UINT256:
                self._allowances[(token, owner, spender)] = allowed - amount
            return
        self.transfer(token, owner, dest, amount)
