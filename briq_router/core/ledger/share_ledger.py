"""Share accounting for pooled token deposits.

The ledger keeps three numbers per token consistent:

- total shares, always the literal sum of every user's share record;
- total liquidity, the value the pool is entitled to (idle + supplied);
- the per-market supplied balances, whose sum plus the idle balance is the
  total liquidity.

Share price is derived from the state at the moment of each call: a
deposit into a token with no outstanding shares mints 1:1, later deposits
mint ``amount * total_shares // total_liquidity`` (nothing while the
outstanding shares are backed by zero liquidity), and redemptions return
``shares * total_liquidity // total_shares``. Rounding always favours the
pool, so no sequence of calls can extract more than was put in.

Nothing here moves tokens; ``LiquidityManager`` performs the external calls
and only then commits the matching change through these methods.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from briq_router.core.errors import (
    InsufficientLiquidity,
    InsufficientShares,
    InvariantViolation,
)


@dataclass
class TokenBook:
    total_shares: int = 0
    total_liquidity: int = 0
    idle: int = 0
    markets: dict[str, int] = field(default_factory=dict)

    @property
    def supplied(self) -> int:
        return sum(self.markets.values())


class ShareLedger:
    def __init__(self) -> None:
        self._books: dict[str, TokenBook] = {}
        self._shares: dict[tuple[str, str], int] = {}

    # Reads

    def book(self, token: str) -> TokenBook:
        return self._books.setdefault(token, TokenBook())

    def view(self, token: str) -> TokenBook:
        """Book for ``token`` without creating one; unknown tokens read as empty."""
        return self._books.get(token) or TokenBook()

    def has_book(self, token: str) -> bool:
        return token in self._books

    def shares_of(self, user: str, token: str) -> int:
        return self._shares.get((user, token), 0)

    def has_record(self, user: str, token: str) -> bool:
        return (user, token) in self._shares

    def holders(self, token: str) -> dict[str, int]:
        return {u: s for (u, t), s in self._shares.items() if t == token}

    def market_balance(self, token: str, market: str) -> int:
        return self.view(token).markets.get(market, 0)

    def shares_for_deposit(self, token: str, amount: int) -> int:
        book = self.view(token)
        if book.total_shares == 0:
            return amount
        if book.total_liquidity == 0:
            # Outstanding shares are worthless; nothing a deposit mints could be priced.
            return 0
        return amount * book.total_shares // book.total_liquidity

    def value_of_shares(self, token: str, shares: int) -> int:
        book = self.view(token)
        if book.total_shares == 0:
            return 0
        return shares * book.total_liquidity // book.total_shares

    # Commits

    def mint(self, user: str, token: str, amount: int, shares: int) -> None:
        book = self.book(token)
        self._shares[(user, token)] = self._shares.get((user, token), 0) + shares
        book.total_shares += shares
        book.total_liquidity += amount
        book.idle += amount

    def burn(self, user: str, token: str, shares: int, value: int) -> None:
        held = self.shares_of(user, token)
        if shares > held:
            raise InsufficientShares(user, token, shares, held)
        book = self.book(token)
        if value > book.idle:
            raise InsufficientLiquidity(token, value, book.idle)
        self._shares[(user, token)] = held - shares
        book.total_shares -= shares
        book.total_liquidity -= value
        book.idle -= value

    def move_to_market(self, token: str, market: str, amount: int) -> None:
        book = self.book(token)
        if amount > book.idle:
            raise InsufficientLiquidity(token, amount, book.idle)
        book.idle -= amount
        book.markets[market] = book.markets.get(market, 0) + amount

    def return_from_market(
        self, token: str, market: str, booked: int, received: int
    ) -> None:
        """Release ``booked`` from a market and credit ``received`` to idle.

        The difference is interest (or a loss) realised on the way out and
        flows straight into total liquidity.
        """
        book = self.book(token)
        held = book.markets.get(market, 0)
        if booked > held:
            raise InsufficientLiquidity(token, booked, held, where="market")
        book.markets[market] = held - booked
        book.idle += received
        book.total_liquidity += received - booked

    def mark_market(self, token: str, market: str, value: int) -> int:
        """Re-price a market position to ``value``; returns the change booked."""
        book = self.book(token)
        delta = value - book.markets.get(market, 0)
        book.markets[market] = value
        book.total_liquidity += delta
        return delta

    def check_invariants(self, token: str) -> None:
        book = self._books.get(token)
        if book is None:
            return
        share_sum = sum(self.holders(token).values())
        if book.total_shares != share_sum:
            raise InvariantViolation(
                f"{token}: total shares {book.total_shares} != sum of records {share_sum}"
            )
        if book.total_liquidity != book.idle + book.supplied:
            raise InvariantViolation(
                f"{token}: total liquidity {book.total_liquidity} != "
                f"idle {book.idle} + supplied {book.supplied}"
            )
        if book.idle < 0 or any(v < 0 for v in book.markets.values()):
            raise InvariantViolation(f"{token}: negative balance in {book}")
