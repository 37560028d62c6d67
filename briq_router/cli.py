from __future__ import annotations

import asyncio
import json
import sys
from typing import Any

import click
from loguru import logger

from briq_router.core.clients.SubgraphClient import SubgraphClient
from briq_router.core.config import (
    get_log_level,
    get_rate_asset,
    get_registry_pools,
    load_config,
)
from briq_router.core.errors import BriqError
from briq_router.core.rates import fetch_lender_markets, fetch_quotes
from briq_router.simulation import run_supply_withdraw

_LOG_LEVELS = click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False)


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _configure_logging(log_level: str | None) -> None:
    logger.remove()
    logger.add(sys.stderr, level=str(log_level or get_log_level()).upper())


async def _fetch_rates(asset: str) -> list[dict[str, Any]]:
    client = SubgraphClient()
    try:
        quotes = await fetch_quotes(client, asset=asset, pools=get_registry_pools())
    finally:
        await client.close()
    return [{**q.model_dump(), "apy_percent": q.apy_percent} for q in quotes]


async def _fetch_markets(symbol: str, subgraph: str) -> list[dict[str, Any]]:
    client = SubgraphClient()
    try:
        markets = await fetch_lender_markets(client, symbol=symbol, subgraph=subgraph)
    finally:
        await client.close()
    return [m.model_dump() for m in markets]


@click.group(name="briq-router", help="Pooled lending router tooling.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to config.json (defaults to BRIQ_CONFIG_PATH or ./config.json).",
)
@click.option("--log-level", type=_LOG_LEVELS, default=None)
def cli(config_path: str | None, log_level: str | None) -> None:
    if config_path:
        load_config(config_path, require_exists=True)
    _configure_logging(log_level)


@cli.command(name="rates", help="Fetch current lender rates and print them in basis points.")
@click.option("--asset", default=None, help="Underlying token address (defaults to Base USDC).")
def rates_cmd(asset: str | None) -> None:
    try:
        quotes = asyncio.run(_fetch_rates(asset or get_rate_asset()))
    except Exception as exc:  # noqa: BLE001
        _echo_json({"ok": False, "error": "rates_fetch_failed", "details": str(exc)})
        sys.exit(1)
    _echo_json({"ok": True, "result": quotes})


@cli.command(name="markets", help="List lender markets for a token symbol, best rate first.")
@click.option("--symbol", default="USDC", show_default=True)
@click.option(
    "--subgraph",
    default="aave_v3_arbitrum",
    show_default=True,
    help="Subgraph name from the gateway defaults or rates.subgraph_urls.",
)
def markets_cmd(symbol: str, subgraph: str) -> None:
    try:
        markets = asyncio.run(_fetch_markets(symbol, subgraph))
    except Exception as exc:  # noqa: BLE001
        _echo_json({"ok": False, "error": "markets_fetch_failed", "details": str(exc)})
        sys.exit(1)
    _echo_json({"ok": True, "result": markets})


@cli.command(name="simulate", help="Run a deposit/supply/withdraw round trip in memory.")
@click.option(
    "--protocol",
    type=click.Choice(["aave", "compound", "both"], case_sensitive=False),
    default="both",
    show_default=True,
)
@click.option("--amount", default="1000", show_default=True, help="USDC amount to deposit.")
@click.option("--apr", type=float, default=0.0, show_default=True)
@click.option("--accrue-seconds", type=int, default=0, show_default=True)
def simulate_cmd(protocol: str, amount: str, apr: float, accrue_seconds: int) -> None:
    protocols = ["compound", "aave"] if protocol.lower() == "both" else [protocol.lower()]
    results = []
    for name in protocols:
        try:
            results.append(
                asyncio.run(
                    run_supply_withdraw(
                        name, amount=amount, apr=apr, accrue_seconds=accrue_seconds
                    )
                )
            )
        except (BriqError, ValueError) as exc:
            _echo_json(
                {
                    "ok": False,
                    "error": "simulation_failed",
                    "protocol": name,
                    "details": str(exc),
                }
            )
            sys.exit(1)
    _echo_json({"ok": True, "result": results})


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
