import pytest

from briq_router.core.constants.base import StrategyId
from briq_router.core.errors import (
    InvalidTokenOrAmount,
    MarketCallFailed,
    NotAuthorized,
    StrategyUnchanged,
    TokenSupportUnchanged,
    UnknownStrategy,
)
from briq_router.core.events import EmergencyWithdrawal, StrategyUpdated
from briq_router.testing.world import (
    AAVE_STRATEGY_ADDRESS,
    BORROWER,
    COMPOUND_STRATEGY_ADDRESS,
    COORDINATOR_ADDRESS,
    DAI,
    OUTSIDER,
    OWNER,
    USDC,
    make_strategy_stack,
)

RATE_5_PCT = 5 * 10**25
YEAR = 365 * 24 * 60 * 60


@pytest.fixture
def controller_funds(chain):
    chain.fund(USDC, OWNER, 2_000_000, spender=COORDINATOR_ADDRESS)


@pytest.mark.asyncio
async def test_deposit_routes_to_active_strategy(stack, chain, controller_funds):
    coordinator = stack.coordinator

    assert await coordinator.deposit(OWNER, USDC, 1_000_000) == 1_000_000

    assert chain.bank.balance_of(USDC, OWNER) == 1_000_000
    assert chain.bank.balance_of(USDC, COORDINATOR_ADDRESS) == 0
    assert chain.aave_pool.a_token_balance(USDC, AAVE_STRATEGY_ADDRESS) == 1_000_000
    assert await coordinator.balance_of(USDC) == 1_000_000
    assert coordinator.deployed_balance(USDC, StrategyId.AAVE) == 1_000_000


@pytest.mark.asyncio
async def test_withdraw_returns_funds_to_controller(stack, chain, controller_funds):
    coordinator = stack.coordinator
    await coordinator.deposit(OWNER, USDC, 1_000_000)

    assert await coordinator.withdraw(OWNER, USDC, 400_000) == 400_000

    assert chain.bank.balance_of(USDC, OWNER) == 1_400_000
    assert await coordinator.balance_of(USDC) == 600_000
    assert coordinator.deployed_balance(USDC, StrategyId.AAVE) == 600_000


@pytest.mark.asyncio
async def test_entry_points_are_controller_only(stack, chain, controller_funds):
    coordinator = stack.coordinator
    chain.fund(USDC, OUTSIDER, 100, spender=COORDINATOR_ADDRESS)
    with pytest.raises(NotAuthorized):
        await coordinator.deposit(OUTSIDER, USDC, 100)
    with pytest.raises(NotAuthorized):
        await coordinator.withdraw(OUTSIDER, USDC, 100)
    with pytest.raises(NotAuthorized):
        await coordinator.set_strategy_for_token(OUTSIDER, USDC, StrategyId.COMPOUND)
    with pytest.raises(NotAuthorized):
        await coordinator.emergency_withdraw(OUTSIDER, USDC)


@pytest.mark.asyncio
async def test_deposit_validation(stack):
    coordinator = stack.coordinator
    with pytest.raises(InvalidTokenOrAmount):
        await coordinator.deposit(OWNER, DAI, 100)
    with pytest.raises(InvalidTokenOrAmount):
        await coordinator.deposit(OWNER, USDC, 0)
    with pytest.raises(TokenSupportUnchanged):
        await coordinator.update_token_support(OWNER, USDC, True)


@pytest.mark.asyncio
async def test_deposit_without_strategy(chain, controller_funds):
    stack = await make_strategy_stack(chain, active=StrategyId.NONE)

    with pytest.raises(UnknownStrategy):
        await stack.coordinator.deposit(OWNER, USDC, 100)
    assert await stack.coordinator.balance_of(USDC) == 0


@pytest.mark.asyncio
async def test_failed_strategy_deposit_refunds_controller(stack, chain, controller_funds):
    chain.aave_pool.set_paused(USDC, True)

    with pytest.raises(MarketCallFailed):
        await stack.coordinator.deposit(OWNER, USDC, 1_000_000)

    assert chain.bank.balance_of(USDC, OWNER) == 2_000_000
    assert chain.bank.balance_of(USDC, COORDINATOR_ADDRESS) == 0
    assert chain.bank.balance_of(USDC, AAVE_STRATEGY_ADDRESS) == 0
    assert stack.coordinator.deployed_balance(USDC, StrategyId.AAVE) == 0


@pytest.mark.asyncio
async def test_set_strategy_emits_and_guards_noop(stack):
    coordinator = stack.coordinator
    assert coordinator.strategy_for_token(USDC) == StrategyId.AAVE

    await coordinator.set_strategy_for_token(OWNER, USDC, StrategyId.COMPOUND)

    event = coordinator.events.of_type(StrategyUpdated)[-1]
    assert (event.previous_strategy, event.new_strategy) == (1, 2)
    with pytest.raises(StrategyUnchanged):
        await coordinator.set_strategy_for_token(OWNER, USDC, StrategyId.COMPOUND)
    with pytest.raises(UnknownStrategy):
        await coordinator.set_strategy_for_token(OWNER, USDC, 9)


@pytest.mark.asyncio
async def test_switching_strategy_strands_funds(stack, chain, controller_funds):
    coordinator = stack.coordinator
    await coordinator.deposit(OWNER, USDC, 1_000_000)

    await coordinator.set_strategy_for_token(OWNER, USDC, StrategyId.COMPOUND)

    assert coordinator.deployed_balance(USDC, StrategyId.AAVE) == 1_000_000
    assert await stack.aave.balance_of(USDC) == 1_000_000
    assert await coordinator.balance_of(USDC) == 0

    await coordinator.deposit(OWNER, USDC, 500_000)
    assert chain.comet.balance_of(COMPOUND_STRATEGY_ADDRESS) == 500_000
    assert coordinator.deployed_balance(USDC, StrategyId.COMPOUND) == 500_000
    assert coordinator.deployed_balance(USDC, StrategyId.AAVE) == 1_000_000


@pytest.mark.asyncio
async def test_emergency_withdraw_recovers_accrued_balance(stack, chain, controller_funds):
    coordinator = stack.coordinator
    chain.aave_pool.set_liquidity_rate(USDC, RATE_5_PCT)
    await coordinator.deposit(OWNER, USDC, 1_000_000)
    chain.aave_pool.accrue(USDC, YEAR)
    # Reported balance now exceeds the book value.
    assert await coordinator.balance_of(USDC) == 1_050_000

    recovered = await coordinator.emergency_withdraw(OWNER, USDC)

    assert recovered == 1_050_000
    assert chain.bank.balance_of(USDC, OWNER) == 2_050_000
    assert await coordinator.balance_of(USDC) == 0
    assert coordinator.deployed_balance(USDC, StrategyId.AAVE) == 0
    event = coordinator.events.of_type(EmergencyWithdrawal)[-1]
    assert (event.strategy, event.reported, event.recovered) == (1, 1_050_000, 1_050_000)


@pytest.mark.asyncio
async def test_emergency_withdraw_with_illiquid_venue(stack, chain, controller_funds):
    coordinator = stack.coordinator
    await coordinator.set_strategy_for_token(OWNER, USDC, StrategyId.COMPOUND)
    await coordinator.deposit(OWNER, USDC, 1_000_000)
    chain.comet.lend_out(600_000, BORROWER)

    recovered = await coordinator.emergency_withdraw(OWNER, USDC)

    assert recovered == 400_000
    assert chain.bank.balance_of(USDC, OWNER) == 1_400_000
    event = coordinator.events.of_type(EmergencyWithdrawal)[-1]
    assert (event.reported, event.recovered) == (1_000_000, 400_000)


@pytest.mark.asyncio
async def test_emergency_withdraw_from_frozen_venue(stack, chain, controller_funds):
    coordinator = stack.coordinator
    await coordinator.deposit(OWNER, USDC, 1_000_000)
    chain.bank.mint(USDC, AAVE_STRATEGY_ADDRESS, 5)
    chain.aave_pool.set_paused(USDC, True)

    recovered = await coordinator.emergency_withdraw(OWNER, USDC)

    assert recovered == 5
    assert chain.bank.balance_of(USDC, OWNER) == 1_000_005
    assert chain.aave_pool.a_token_balance(USDC, AAVE_STRATEGY_ADDRESS) == 1_000_000
    assert coordinator.deployed_balance(USDC, StrategyId.AAVE) == 0
    event = coordinator.events.of_type(EmergencyWithdrawal)[-1]
    assert (event.reported, event.recovered) == (1_000_000, 5)


@pytest.mark.asyncio
async def test_emergency_withdraw_requires_active_strategy(chain):
    stack = await make_strategy_stack(chain, active=StrategyId.NONE)
    with pytest.raises(UnknownStrategy):
        await stack.coordinator.emergency_withdraw(OWNER, USDC)


@pytest.mark.asyncio
async def test_coordinator_needs_strategy_whitelist(stack, chain, controller_funds):
    await stack.aave.remove_from_whitelist(OWNER, COORDINATOR_ADDRESS)

    with pytest.raises(NotAuthorized):
        await stack.coordinator.deposit(OWNER, USDC, 1_000)

    assert chain.bank.balance_of(USDC, OWNER) == 2_000_000
