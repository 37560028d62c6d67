import pytest

from briq_router.adapters.compound_v3_adapter.adapter import CompoundV3Adapter
from briq_router.core.constants.base import StrategyId
from briq_router.core.errors import (
    MarketCallFailed,
    MarketSupportUnchanged,
    NotAuthorized,
    UnknownMarket,
)
from briq_router.core.events import MarketSupportUpdated
from briq_router.strategies.compound_comet_strategy.strategy import (
    StrategyCompoundComet,
)
from briq_router.testing.world import (
    AAVE_POOL,
    COMET,
    COMPOUND_STRATEGY_ADDRESS,
    DAI,
    OWNER,
    USDC,
)

CALLER = "0x" + "cc" * 20


@pytest.fixture
async def strategy(chain):
    s = StrategyCompoundComet(
        COMPOUND_STRATEGY_ADDRESS,
        OWNER,
        chain.bank,
        CompoundV3Adapter(comet=chain.comet, bank=chain.bank),
    )
    await s.update_token_support(OWNER, USDC, True)
    await s.update_market_support(OWNER, COMET, USDC, True)
    await s.whitelist_account(OWNER, CALLER)
    chain.fund(USDC, CALLER, 1_000_000, spender=s.address)
    return s


def test_strategy_id():
    assert StrategyCompoundComet.strategy_id == StrategyId.COMPOUND


@pytest.mark.asyncio
async def test_market_support(strategy):
    assert strategy.token_to_comet(USDC) == COMET
    assert strategy.token_to_comet(DAI) is None
    event = strategy.events.of_type(MarketSupportUpdated)[-1]
    assert (event.market, event.token, event.supported) == (COMET, USDC, True)

    with pytest.raises(MarketSupportUnchanged):
        await strategy.update_market_support(OWNER, COMET, USDC, True)


@pytest.mark.asyncio
async def test_market_support_rejects_non_base_token(strategy):
    with pytest.raises(UnknownMarket):
        await strategy.update_market_support(OWNER, COMET, DAI, True)
    with pytest.raises(UnknownMarket):
        await strategy.update_market_support(OWNER, AAVE_POOL, USDC, True)


@pytest.mark.asyncio
async def test_deposit_and_accrue(strategy, chain):
    chain.comet.set_supply_rate(10**16)
    await strategy.deposit(CALLER, USDC, 1_000_000)

    chain.comet.accrue(1)

    assert strategy.principal() == 1_000_000
    assert await strategy.balance_of(USDC) == 1_010_000


@pytest.mark.asyncio
async def test_withdraw_with_yield(strategy, chain):
    chain.comet.set_supply_rate(10**16)
    await strategy.deposit(CALLER, USDC, 1_000_000)
    chain.comet.accrue(1)

    received = await strategy.withdraw(CALLER, USDC, 1_010_000)

    assert received == 1_010_000
    assert chain.bank.balance_of(USDC, CALLER) == 1_010_000
    assert await strategy.balance_of(USDC) == 0


@pytest.mark.asyncio
async def test_paused_supply_leaves_caller_whole(strategy, chain):
    chain.comet.pause(supply=True, withdraw=False)

    with pytest.raises(MarketCallFailed):
        await strategy.deposit(CALLER, USDC, 500_000)

    assert chain.bank.balance_of(USDC, CALLER) == 1_000_000


@pytest.mark.asyncio
async def test_removed_caller_loses_access(strategy):
    await strategy.remove_from_whitelist(OWNER, CALLER)
    with pytest.raises(NotAuthorized):
        await strategy.deposit(CALLER, USDC, 1)
