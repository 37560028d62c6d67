from __future__ import annotations

from briq_router.chain.token_bank import TokenBank
from briq_router.core.constants.base import MANTISSA, MAX_UINT256, SECONDS_PER_YEAR
from briq_router.core.errors import MarketCallReverted
from briq_router.core.utils.addresses import checksum

BASE_INDEX_SCALE = 10**15


class CometMarket:
    """Minimal Compound V3 (Comet) market for a single base asset.

    Suppliers hold a principal; their present value is
    ``principal * base_supply_index / BASE_INDEX_SCALE``. Borrowing and
    collateral are not modelled.
    """

    def __init__(self, address: str, bank: TokenBank, base_token: str) -> None:
        self.address = checksum(address)
        self.bank = bank
        self.base_token = checksum(base_token)
        self.base_supply_index = BASE_INDEX_SCALE
        self.supply_rate = 0  # per second, scaled by 1e18
        self.is_supply_paused = False
        self.is_withdraw_paused = False
        self._principals: dict[str, int] = {}

    def set_supply_rate(self, rate_per_second: int) -> None:
        self.supply_rate = int(rate_per_second)

    def set_supply_apr(self, apr: float) -> None:
        self.supply_rate = int(float(apr) * MANTISSA / SECONDS_PER_YEAR)

    def pause(self, *, supply: bool = True, withdraw: bool = True) -> None:
        self.is_supply_paused = bool(supply)
        self.is_withdraw_paused = bool(withdraw)

    def principal_of(self, account: str) -> int:
        return self._principals.get(checksum(account), 0)

    def balance_of(self, account: str) -> int:
        return self._present(self.principal_of(account))

    def total_supply(self) -> int:
        return sum(self._present(p) for p in self._principals.values())

    def available_liquidity(self) -> int:
        return self.bank.balance_of(self.base_token, self.address)

    def accrue(self, elapsed_s: int) -> int:
        before = self.total_supply()
        self.base_supply_index += (
            self.base_supply_index * self.supply_rate * int(elapsed_s) // MANTISSA
        )
        interest = self.total_supply() - before
        if interest > 0:
            self.bank.mint(self.base_token, self.address, interest)
        return interest

    def lend_out(self, amount: int, borrower: str) -> None:
        self.bank.transfer(self.base_token, self.address, borrower, amount)

    def supply(self, asset: str, amount: int, sender: str) -> None:
        self._require_base(asset)
        if self.is_supply_paused:
            raise MarketCallReverted(self.address, "Paused")
        amount = int(amount)
        if amount <= 0:
            raise MarketCallReverted(self.address, "InvalidAmount")
        sender = checksum(sender)
        self.bank.transfer_from(self.base_token, self.address, sender, self.address, amount)
        principal = amount * BASE_INDEX_SCALE // self.base_supply_index
        self._principals[sender] = self._principals.get(sender, 0) + principal

    def withdraw(self, asset: str, amount: int, sender: str) -> int:
        self._require_base(asset)
        if self.is_withdraw_paused:
            raise MarketCallReverted(self.address, "Paused")
        sender = checksum(sender)
        balance = self.balance_of(sender)
        amount = balance if int(amount) == MAX_UINT256 else int(amount)
        if amount <= 0:
            raise MarketCallReverted(self.address, "InvalidAmount")
        if amount > balance:
            # Withdrawing past the supplied balance would open a borrow.
            raise MarketCallReverted(self.address, "NotCollateralized")
        if amount > self.available_liquidity():
            raise MarketCallReverted(self.address, "InsufficientReserves")

        if amount == balance:
            self._principals[sender] = 0
        else:
            burned = -(-amount * BASE_INDEX_SCALE // self.base_supply_index)
            self._principals[sender] = max(0, self._principals[sender] - burned)
        self.bank.transfer(self.base_token, self.address, sender, amount)
        return amount

    def _present(self, principal: int) -> int:
        return principal * self.base_supply_index // BASE_INDEX_SCALE

    def _require_base(self, asset: str) -> None:
        if checksum(asset) != self.base_token:
            raise MarketCallReverted(self.address, f"unsupported asset {asset}")
