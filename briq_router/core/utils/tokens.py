from __future__ import annotations

from typing import Any

from briq_router.chain.token_bank import TokenBank


def get_token_balance(bank: TokenBank, token_address: str, wallet_address: str) -> int:
    return bank.balance_of(token_address, wallet_address)


def ensure_allowance(
    bank: TokenBank,
    *,
    token_address: str,
    owner: str,
    spender: str,
    amount: int,
    approval_amount: int | None = None,
) -> tuple[bool, Any]:
    allowance = bank.allowance(token_address, owner, spender)
    if allowance >= amount:
        return True, {}

    bank.approve(
        token_address,
        owner,
        spender,
        approval_amount if approval_amount is not None else amount,
    )
    return True, {"approved": approval_amount if approval_amount is not None else amount}
