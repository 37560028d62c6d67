from __future__ import annotations

from dataclasses import dataclass, field

from briq_router.chain.token_bank import TokenBank
from briq_router.core.constants.base import MAX_UINT256, RAY
from briq_router.core.errors import MarketCallReverted
from briq_router.core.utils.addresses import checksum
from briq_router.core.utils.interest import linear_interest, ray_mul


@dataclass
class AaveReserve:
    asset: str
    a_token: str
    liquidity_index: int = RAY
    liquidity_rate: int = 0  # ray, per year
    is_paused: bool = False
    scaled_balances: dict[str, int] = field(default_factory=dict)

    def balance_of(self, holder: str) -> int:
        return self.scaled_balances.get(holder, 0) * self.liquidity_index // RAY

    def total_supplied(self) -> int:
        return sum(self.balance_of(h) for h in self.scaled_balances)


class AaveV3Pool:
    """Minimal Aave V3 pool: supply/withdraw against aToken scaled balances.

    Interest accrues through the reserve's liquidity index, so an aToken
    balance grows without any transfer. ``accrue`` mints the matching
    underlying into the pool, standing in for borrower repayments.
    """

    def __init__(self, address: str, bank: TokenBank) -> None:
        self.address = checksum(address)
        self.bank = bank
        self._reserves: dict[str, AaveReserve] = {}

    def init_reserve(self, asset: str, a_token: str, *, liquidity_rate: int = 0) -> None:
        asset = checksum(asset)
        if asset in self._reserves:
            raise MarketCallReverted(self.address, f"reserve already initialized: {asset}")
        self._reserves[asset] = AaveReserve(
            asset=asset, a_token=checksum(a_token), liquidity_rate=int(liquidity_rate)
        )

    def reserve(self, asset: str) -> AaveReserve:
        reserve = self._reserves.get(checksum(asset))
        if reserve is None:
            raise MarketCallReverted(self.address, f"reserve not initialized: {asset}")
        return reserve

    def has_reserve(self, asset: str) -> bool:
        return checksum(asset) in self._reserves

    def set_liquidity_rate(self, asset: str, rate_ray: int) -> None:
        self.reserve(asset).liquidity_rate = int(rate_ray)

    def set_paused(self, asset: str, paused: bool) -> None:
        self.reserve(asset).is_paused = bool(paused)

    def a_token_balance(self, asset: str, holder: str) -> int:
        return self.reserve(asset).balance_of(checksum(holder))

    def available_liquidity(self, asset: str) -> int:
        return self.bank.balance_of(asset, self.address)

    def accrue(self, asset: str, elapsed_s: int) -> int:
        """Advance the liquidity index by ``elapsed_s`` seconds of interest."""
        reserve = self.reserve(asset)
        before = reserve.total_supplied()
        factor = linear_interest(reserve.liquidity_rate, elapsed_s)
        reserve.liquidity_index = ray_mul(reserve.liquidity_index, factor)
        interest = reserve.total_supplied() - before
        if interest > 0:
            self.bank.mint(reserve.asset, self.address, interest)
        return interest

    def lend_out(self, asset: str, amount: int, borrower: str) -> None:
        """Move idle liquidity to a borrower, lowering what can be withdrawn."""
        self.bank.transfer(asset, self.address, borrower, amount)

    def supply(self, asset: str, amount: int, on_behalf_of: str) -> None:
        reserve = self._active_reserve(asset)
        amount = int(amount)
        if amount <= 0:
            raise MarketCallReverted(self.address, "INVALID_AMOUNT")
        holder = checksum(on_behalf_of)
        self.bank.transfer_from(reserve.asset, self.address, holder, self.address, amount)
        scaled = amount * RAY // reserve.liquidity_index
        reserve.scaled_balances[holder] = reserve.scaled_balances.get(holder, 0) + scaled

    def withdraw(self, asset: str, amount: int, to: str) -> int:
        reserve = self._active_reserve(asset)
        holder = checksum(to)
        balance = reserve.balance_of(holder)
        amount = balance if int(amount) == MAX_UINT256 else int(amount)
        if amount <= 0:
            raise MarketCallReverted(self.address, "INVALID_AMOUNT")
        if amount > balance:
            raise MarketCallReverted(self.address, "NOT_ENOUGH_AVAILABLE_USER_BALANCE")
        available = self.available_liquidity(reserve.asset)
        if amount > available:
            raise MarketCallReverted(
                self.address, f"insufficient pool liquidity: {available} < {amount}"
            )

        if amount == balance:
            reserve.scaled_balances[holder] = 0
        else:
            burned = -(-amount * RAY // reserve.liquidity_index)
            reserve.scaled_balances[holder] = max(
                0, reserve.scaled_balances.get(holder, 0) - burned
            )
        self.bank.transfer(reserve.asset, self.address, holder, amount)
        return amount

    def _active_reserve(self, asset: str) -> AaveReserve:
        reserve = self.reserve(asset)
        if reserve.is_paused:
            raise MarketCallReverted(self.address, f"RESERVE_PAUSED: {reserve.asset}")
        return reserve
