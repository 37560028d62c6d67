from __future__ import annotations

from eth_utils import is_address, to_checksum_address

from briq_router.core.constants.base import ZERO_ADDRESS
from briq_router.core.errors import InvalidAddress


def checksum(value: str, *, allow_zero: bool = False) -> str:
    """Normalize an account/token/market identifier to its checksum form."""
    if not isinstance(value, str) or not is_address(value):
        raise InvalidAddress(value)
    addr = to_checksum_address(value)
    if not allow_zero and addr == ZERO_ADDRESS:
        raise InvalidAddress(value)
    return addr
