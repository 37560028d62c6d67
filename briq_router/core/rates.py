"""Normalise venue supply rates into registry basis points and publish them.

Aave reports ``liquidityRate`` as a ray-scaled APR (1e27 == 100%), the
Messari-schema subgraphs (Morpho, Compound) report a percentage. Both are
stored as integer basis points: 4.24% is 424.
"""

from __future__ import annotations

import asyncio
from decimal import ROUND_HALF_UP, Decimal

from eth_utils import is_address, to_checksum_address
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from briq_router.core.clients.SubgraphClient import SubgraphClient
from briq_router.core.constants.base import BPS_SCALE, RAY
from briq_router.core.errors import ApyUnchanged
from briq_router.core.registry.apy_registry import ApyRegistry

AAVE_SOURCE = "aave_v3_base"
MORPHO_SOURCE = "morpho_base"


class RateQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    pool: str
    apy_bps: int = Field(ge=0)
    raw_rate: str
    market_name: str | None = None

    @property
    def apy_percent(self) -> float:
        return self.apy_bps / 100


class LenderMarketRate(BaseModel):
    model_config = ConfigDict(frozen=True)

    market_id: str
    name: str
    rate_bps: int = Field(ge=0)
    utilization: float | None = None
    # Set for Compound V3 markets, whose id is the comet followed by its base token.
    comet: str | None = None
    base_token: str | None = None


def ray_rate_to_bps(liquidity_rate: int | str) -> int:
    return int(liquidity_rate) * BPS_SCALE // RAY


def percent_to_bps(rate: float | str) -> int:
    bps = (Decimal(str(rate)) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(bps)


def split_compound_market_id(market_id: str) -> tuple[str, str] | None:
    """Split a Compound V3 subgraph market id into ``(comet, base_token)``.

    The id is the comet address followed by the base token address.
    """
    if not market_id or not market_id.startswith("0x") or len(market_id) < 82:
        return None
    comet, token = market_id[:42], "0x" + market_id[-40:]
    if not (is_address(comet.lower()) and is_address(token.lower())):
        return None
    return to_checksum_address(comet), to_checksum_address(token)


async def fetch_quotes(
    client: SubgraphClient, *, asset: str, pools: dict[str, str]
) -> list[RateQuote]:
    """Current Aave and best Morpho lender rate for ``asset``.

    A source that returns nothing is logged and left out.
    """
    aave, morpho = await asyncio.gather(
        client.get_aave_reserve_rate(asset, subgraph=AAVE_SOURCE),
        client.get_best_lender_rate(asset, subgraph=MORPHO_SOURCE),
    )

    quotes: list[RateQuote] = []
    if aave is not None:
        quotes.append(
            RateQuote(
                source=AAVE_SOURCE,
                pool=to_checksum_address(pools[AAVE_SOURCE]),
                apy_bps=ray_rate_to_bps(aave["liquidity_rate"]),
                raw_rate=str(aave["liquidity_rate"]),
                market_name=aave["name"] or None,
            )
        )
    else:
        logger.warning(f"no {AAVE_SOURCE} rate for {asset}")
    if morpho is not None:
        quotes.append(
            RateQuote(
                source=MORPHO_SOURCE,
                pool=to_checksum_address(pools[MORPHO_SOURCE]),
                apy_bps=percent_to_bps(morpho["rate"]),
                raw_rate=str(morpho["rate"]),
                market_name=morpho["market_name"] or None,
            )
        )
    else:
        logger.warning(f"no {MORPHO_SOURCE} rate for {asset}")
    return quotes


async def fetch_lender_markets(
    client: SubgraphClient, *, symbol: str, subgraph: str
) -> list[LenderMarketRate]:
    """Every lender market for ``symbol`` on ``subgraph``, best rate first."""
    markets = await client.get_lender_markets(symbol, subgraph=subgraph)
    rates: list[LenderMarketRate] = []
    for market in markets:
        comet, base_token = split_compound_market_id(market["market_id"]) or (None, None)
        rates.append(
            LenderMarketRate(
                market_id=market["market_id"],
                name=market["name"],
                rate_bps=percent_to_bps(market["rate"]),
                utilization=market.get("utilization"),
                comet=comet,
                base_token=base_token,
            )
        )
    if not rates:
        logger.warning(f"{subgraph}: no lender markets for {symbol}")
    return rates


async def publish_rates(
    registry: ApyRegistry, sender: str, quotes: list[RateQuote]
) -> dict[str, str]:
    """Write each quote to the registry; returns ``{pool: "updated" | "unchanged"}``."""
    results: dict[str, str] = {}
    for quote in quotes:
        try:
            await registry.update_apy(sender, quote.pool, quote.apy_bps)
        except ApyUnchanged:
            logger.info(f"{quote.source} APY is unchanged, skipping update")
            results[quote.pool] = "unchanged"
            continue
        logger.info(f"updated {quote.source} APY: {quote.apy_percent:.2f}%")
        results[quote.pool] = "updated"
    return results
