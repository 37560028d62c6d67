from __future__ import annotations


class BriqError(Exception):
    """Root of every error raised by the ledger, strategies and registry."""


# Authorization


class NotAuthorized(BriqError):
    def __init__(self, sender: str, action: str | None = None):
        self.sender = sender
        self.action = action
        suffix = f" for {action}" if action else ""
        super().__init__(f"Not authorized: {sender}{suffix}")


# Validation


class ValidationError(BriqError):
    pass


class InvalidTokenOrAmount(ValidationError):
    def __init__(self, token: str, amount: int, reason: str):
        self.token = token
        self.amount = amount
        super().__init__(f"Invalid token or amount ({token}, {amount}): {reason}")


class InvalidAddress(ValidationError):
    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid address: {value!r}")


class InvalidMarketType(ValidationError):
    def __init__(self, market: str, expected: object, got: object):
        self.market = market
        super().__init__(f"Market {market} is {expected!s}, not {got!s}")


class UnknownMarket(ValidationError):
    def __init__(self, market: str, token: str | None = None):
        self.market = market
        self.token = token
        detail = f" for token {token}" if token else ""
        super().__init__(f"Market not supported{detail}: {market}")


class UnknownPool(ValidationError, LookupError):
    def __init__(self, pool: str):
        self.pool = pool
        super().__init__(f"No APY recorded for pool {pool}")


class UnknownStrategy(ValidationError):
    def __init__(self, strategy_id: object):
        self.strategy_id = strategy_id
        super().__init__(f"No strategy registered for {strategy_id!s}")


class UnchangedError(ValidationError):
    """A toggle-style setter was asked to write the value it already holds."""


class TokenSupportUnchanged(UnchangedError):
    def __init__(self, token: str, supported: bool):
        self.token = token
        self.supported = supported
        super().__init__(f"Token status unchanged: {token} already {supported}")


class MarketSupportUnchanged(UnchangedError):
    def __init__(self, market: str, token: str, supported: bool):
        self.market = market
        self.token = token
        self.supported = supported
        super().__init__(
            f"Market status unchanged: {market} ({token}) already {supported}"
        )


class WhitelistUnchanged(UnchangedError):
    def __init__(self, account: str, whitelisted: bool):
        self.account = account
        super().__init__(f"Whitelist unchanged: {account} already {whitelisted}")


class StrategyUnchanged(UnchangedError):
    def __init__(self, token: str, strategy_id: object):
        self.token = token
        self.strategy_id = strategy_id
        super().__init__(f"Strategy unchanged: {token} already routed to {strategy_id!s}")


class ApyUnchanged(UnchangedError):
    def __init__(self, pool: str, apy: int):
        self.pool = pool
        self.apy = apy
        super().__init__(f"APY Has not changed: {pool} already {apy}")


# Accounting


class AccountingError(BriqError):
    pass


class InsufficientShares(AccountingError):
    def __init__(self, user: str, token: str, requested: int, available: int):
        self.user = user
        self.token = token
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient shares: {user} holds {available} of {token}, "
            f"requested {requested}"
        )


class InsufficientLiquidity(AccountingError):
    def __init__(self, token: str, requested: int, available: int, where: str = "idle"):
        self.token = token
        self.requested = requested
        self.available = available
        self.where = where
        super().__init__(
            f"Insufficient {where} liquidity for {token}: "
            f"requested {requested}, available {available}"
        )


class InvariantViolation(AccountingError):
    pass


# External calls


class ExternalCallError(BriqError):
    pass


class TransferFailed(ExternalCallError):
    def __init__(self, token: str, source: str, dest: str, amount: int, reason: str):
        self.token = token
        self.source = source
        self.dest = dest
        self.amount = amount
        super().__init__(
            f"Transfer of {amount} {token} from {source} to {dest} failed: {reason}"
        )


class MarketCallReverted(ExternalCallError):
    """Raised by a lending venue when it refuses a call (paused, no liquidity)."""

    def __init__(self, market: str, message: str):
        self.market = market
        super().__init__(f"{market}: {message}")


class MarketCallFailed(ExternalCallError):
    """An adapter reported ``(False, reason)`` for a supply or withdraw."""

    def __init__(self, market: str, operation: str, reason: str):
        self.market = market
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} on {market} failed: {reason}")
