"""Randomised operation sequences against the full LiquidityManager."""

import random

import pytest

from briq_router.core.constants.base import MarketType
from briq_router.core.errors import BriqError
from briq_router.testing.world import (
    AAVE_POOL,
    ALICE,
    BOB,
    CAROL,
    COMET,
    LM_ADDRESS,
    OWNER,
    USDC,
    make_chain,
    make_liquidity_manager,
)

USERS = (ALICE, BOB, CAROL)
MARKETS = ((AAVE_POOL, MarketType.AAVE), (COMET, MarketType.COMPOUND))


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", [1, 7, 42, 1337])
async def test_ledger_invariants_hold_under_random_operations(seed):
    rng = random.Random(seed)
    chain = make_chain()
    lm = await make_liquidity_manager(chain)
    chain.aave_pool.set_liquidity_rate(USDC, 3 * 10**25)
    chain.comet.set_supply_rate(10**9)
    for user in USERS:
        chain.fund(USDC, user, 10**12, spender=LM_ADDRESS)

    for _ in range(200):
        op = rng.choice(["deposit", "withdraw", "supply", "unwind", "accrue"])
        user = rng.choice(USERS)
        market, market_type = rng.choice(MARKETS)
        try:
            if op == "deposit":
                amount = rng.randint(1, 5_000_000)
                await lm.deposit(user, USDC, amount)
            elif op == "withdraw":
                held = lm.user_shares(user, USDC)
                if held:
                    await lm.withdraw(user, USDC, rng.randint(1, held))
            elif op == "supply":
                idle = lm.idle_balance(USDC)
                if idle:
                    await lm.supply(OWNER, USDC, market, rng.randint(1, idle), market_type)
            elif op == "unwind":
                booked = lm.market_liquidity(USDC, market)
                if booked:
                    await lm.withdraw_from_market(
                        OWNER, USDC, market, rng.randint(1, booked), market_type
                    )
            else:
                chain.aave_pool.accrue(USDC, rng.randint(1, 86_400))
                chain.comet.accrue(rng.randint(1, 86_400))
                for m, _ in MARKETS:
                    if lm.market_liquidity(USDC, m):
                        await lm.sync_market(OWNER, USDC, m)
        except BriqError:
            # Rejected operations must leave the ledger consistent too.
            pass

        lm.check_invariants(USDC)
        assert lm.total_shares(USDC) == sum(lm.user_shares(u, USDC) for u in USERS)
        book = lm.ledger.book(USDC)
        assert book.total_liquidity == book.idle + book.supplied
        assert chain.bank.balance_of(USDC, LM_ADDRESS) >= lm.idle_balance(USDC)

    for market, market_type in MARKETS:
        if lm.market_liquidity(USDC, market):
            await lm.sync_market(OWNER, USDC, market)
        booked = lm.market_liquidity(USDC, market)
        if booked:
            await lm.withdraw_from_market(OWNER, USDC, market, booked, market_type)
    for user in USERS:
        held = lm.user_shares(user, USDC)
        if held:
            await lm.withdraw(user, USDC, held)

    lm.check_invariants(USDC)
    assert lm.total_shares(USDC) == 0
    assert lm.total_liquidity(USDC) == lm.idle_balance(USDC)
    assert chain.bank.balance_of(USDC, LM_ADDRESS) >= lm.idle_balance(USDC)
