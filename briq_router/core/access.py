from __future__ import annotations

from briq_router.core.errors import NotAuthorized, WhitelistUnchanged
from briq_router.core.events import EventLog, OwnershipTransferred, WhitelistUpdated
from briq_router.core.utils.addresses import checksum


class AccessPolicy:
    """Single owner plus a whitelist of accounts allowed privileged updates.

    Held by each stateful component rather than consulted globally, so a
    ledger, a strategy and the APY registry can each have their own owner.
    """

    def __init__(
        self,
        owner: str,
        *,
        events: EventLog | None = None,
        whitelist: set[str] | None = None,
    ) -> None:
        self._owner = checksum(owner)
        self._whitelist: set[str] = {checksum(a) for a in (whitelist or set())}
        self.events = events or EventLog()

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def whitelist(self) -> frozenset[str]:
        return frozenset(self._whitelist)

    def is_owner(self, account: str) -> bool:
        return checksum(account, allow_zero=True) == self._owner

    def is_whitelisted(self, account: str) -> bool:
        return checksum(account, allow_zero=True) in self._whitelist

    def is_authorized(self, account: str) -> bool:
        return self.is_owner(account) or self.is_whitelisted(account)

    def require_owner(self, sender: str, action: str | None = None) -> None:
        if not self.is_owner(sender):
            raise NotAuthorized(sender, action)

    def require_authorized(self, sender: str, action: str | None = None) -> None:
        if not self.is_authorized(sender):
            raise NotAuthorized(sender, action)

    def transfer_ownership(self, sender: str, new_owner: str) -> None:
        self.require_owner(sender, "transfer_ownership")
        new_owner = checksum(new_owner)
        previous = self._owner
        self._owner = new_owner
        self.events.emit(
            OwnershipTransferred(previous_owner=previous, new_owner=new_owner)
        )

    def whitelist_account(self, sender: str, account: str) -> None:
        self._set_whitelisted(sender, account, True)

    def remove_from_whitelist(self, sender: str, account: str) -> None:
        self._set_whitelisted(sender, account, False)

    def _set_whitelisted(self, sender: str, account: str, whitelisted: bool) -> None:
        self.require_owner(sender, "whitelist")
        account = checksum(account)
        if (account in self._whitelist) == whitelisted:
            raise WhitelistUnchanged(account, whitelisted)
        if whitelisted:
            self._whitelist.add(account)
        else:
            self._whitelist.discard(account)
        self.events.emit(WhitelistUpdated(account=account, whitelisted=whitelisted))
