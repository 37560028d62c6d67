"""Deposit -> supply -> withdraw round trip against the in-memory chain.

Mirrors the operator flow used to validate a new market integration: fund
a user, deposit into the LiquidityManager, route the deposit into Aave or
Compound, optionally let interest accrue, then unwind everything.
"""

from __future__ import annotations

from typing import Any, Literal

from loguru import logger

from briq_router.adapters.aave_v3_adapter.adapter import AaveV3Adapter
from briq_router.adapters.compound_v3_adapter.adapter import CompoundV3Adapter
from briq_router.chain import AaveV3Pool, CometMarket, TokenBank
from briq_router.core.constants.base import RAY, USDC_DECIMALS, MarketType
from briq_router.core.constants.contracts import (
    ETHEREUM_AAVE_V3_POOL,
    ETHEREUM_COMET_USDC,
    ETHEREUM_USDC,
)
from briq_router.core.ledger.liquidity_manager import LiquidityManager
from briq_router.core.utils.addresses import checksum
from briq_router.core.utils.units import from_erc20_raw, to_erc20_raw

Protocol = Literal["aave", "compound"]

DEPLOYER = checksum("0x00000000000000000000000000000000000d3910")
LIQUIDITY_MANAGER = checksum("0x000000000000000000000000000000000011a401")
USDC_WHALE = checksum("0xad354cfbaa4a8572dd6df021514a3931a8329ef5")
AAVE_A_USDC = checksum("0x98c23e9d8f34fefb1b7bd6a91b7ff122f4e16f5c")


async def run_supply_withdraw(
    protocol: Protocol,
    *,
    amount: str | int | float = "1000",
    apr: float = 0.0,
    accrue_seconds: int = 0,
) -> dict[str, Any]:
    bank = TokenBank()
    usdc = ETHEREUM_USDC
    raw_amount = to_erc20_raw(amount, USDC_DECIMALS)
    bank.mint(usdc, USDC_WHALE, raw_amount)

    lm = LiquidityManager(LIQUIDITY_MANAGER, DEPLOYER, bank)
    if protocol == "compound":
        comet = CometMarket(ETHEREUM_COMET_USDC, bank, usdc)
        comet.set_supply_apr(apr)
        adapter: AaveV3Adapter | CompoundV3Adapter = CompoundV3Adapter(comet=comet, bank=bank)
        market, market_type = comet.address, MarketType.COMPOUND
    elif protocol == "aave":
        pool = AaveV3Pool(ETHEREUM_AAVE_V3_POOL, bank)
        pool.init_reserve(usdc, AAVE_A_USDC, liquidity_rate=int(apr * RAY))
        adapter = AaveV3Adapter(pool=pool, bank=bank)
        market, market_type = pool.address, MarketType.AAVE
    else:
        raise ValueError(f"Unknown protocol: {protocol}")

    await lm.update_token_support(DEPLOYER, usdc, True)
    await lm.register_market(DEPLOYER, adapter)
    await lm.update_market_support(DEPLOYER, market, usdc, True)

    bank.approve(usdc, USDC_WHALE, lm.address, raw_amount)
    shares = await lm.deposit(USDC_WHALE, usdc, raw_amount)
    await lm.supply(DEPLOYER, usdc, market, raw_amount, market_type)
    logger.info(f"{protocol}: supplied {amount} USDC, user holds {shares} shares")

    accrued = 0
    if accrue_seconds > 0:
        if protocol == "compound":
            comet.accrue(accrue_seconds)
        else:
            pool.accrue(usdc, accrue_seconds)
        accrued = await lm.sync_market(DEPLOYER, usdc, market)

    booked = lm.market_liquidity(usdc, market)
    received = await lm.withdraw_from_market(DEPLOYER, usdc, market, booked, market_type)
    returned = await lm.withdraw(USDC_WHALE, usdc, shares)
    lm.check_invariants(usdc)

    return {
        "protocol": protocol,
        "deposited": raw_amount,
        "shares_minted": shares,
        "accrued": accrued,
        "withdrawn_from_market": received,
        "returned_to_user": returned,
        "returned_usdc": from_erc20_raw(returned, USDC_DECIMALS),
        "user_shares_after": lm.user_shares(USDC_WHALE, usdc),
        "total_liquidity_after": lm.total_liquidity(usdc),
        "events": [e["type"] for e in lm.events.dump()],
    }
