from __future__ import annotations

import asyncio
import json
from typing import Any, NotRequired, Required, TypedDict

import httpx
from loguru import logger

from briq_router.core.config import get_subgraph_urls
from briq_router.core.constants.base import DEFAULT_HTTP_TIMEOUT
from briq_router.core.utils.retry import Backoff, retry_async

_RETRYABLE_STATUS = (429, 500, 502, 503, 504)

AAVE_RESERVE_QUERY = """
query Reserve($asset: String!) {
  reserves(where: { underlyingAsset: $asset }, first: 1) {
    id
    name
    symbol
    liquidityRate
  }
}
"""

BEST_LENDER_RATE_QUERY = """
query BestLenderRate($token: String!) {
  interestRates(
    where: { market_: { inputToken: $token }, side: LENDER }
    orderBy: rate
    orderDirection: desc
    first: 1
  ) {
    id
    rate
    market { id name }
  }
}
"""

LENDER_MARKETS_QUERY = """
query LenderMarkets($symbol: String!) {
  markets(where: { inputToken_: { symbol: $symbol } }) {
    id
    name
    totalDepositBalanceUSD
    totalBorrowBalanceUSD
    rates(where: { side: LENDER }) { rate }
  }
}
"""


class AaveReserveRate(TypedDict):
    name: Required[str]
    symbol: Required[str]
    liquidity_rate: Required[int]


class LenderRate(TypedDict):
    market_id: Required[str]
    market_name: Required[str]
    rate: Required[float]


class LenderMarket(TypedDict):
    market_id: Required[str]
    name: Required[str]
    rate: Required[float]
    utilization: NotRequired[float | None]


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _RETRYABLE_STATUS
    return isinstance(exc, (httpx.TransportError, json.JSONDecodeError))


class SubgraphClient:
    """GraphQL reads against The Graph for lender-side supply rates."""

    def __init__(
        self,
        *,
        urls: dict[str, str] | None = None,
        api_key: str | None = None,
        max_retries: int = 3,
    ) -> None:
        self.urls = dict(urls) if urls is not None else get_subgraph_urls(api_key)
        self.max_retries = max_retries
        self._timeout = httpx.Timeout(DEFAULT_HTTP_TIMEOUT)
        self.client = httpx.AsyncClient(timeout=self._timeout)
        self.headers = {"Content-Type": "application/json"}
        self._client_loop: asyncio.AbstractEventLoop | None = None

    def url_for(self, subgraph: str) -> str:
        url = self.urls.get(subgraph)
        if not url:
            raise ValueError(f"Unknown subgraph: {subgraph}")
        return url

    async def close(self) -> None:
        await self.client.aclose()

    async def _reset_client(self) -> None:
        await self.client.aclose()
        self.client = httpx.AsyncClient(timeout=self._timeout)

    async def _ensure_client(self) -> None:
        loop = asyncio.get_running_loop()
        if self._client_loop is None:
            self._client_loop = loop
            return
        if self._client_loop is not loop or self.client.is_closed:
            await self._reset_client()
            self._client_loop = loop

    async def _post(
        self, *, subgraph: str, query: str, variables: dict[str, Any] | None = None
    ) -> Any:
        url = self.url_for(subgraph)

        async def _once() -> Any:
            await self._ensure_client()
            resp = await self.client.post(
                url,
                headers=self.headers,
                json={"query": query, "variables": variables or {}},
            )
            resp.raise_for_status()
            data = resp.json()
            if isinstance(data, dict) and data.get("errors"):
                raise ValueError(f"{subgraph} GraphQL errors: {data['errors']}")
            return data.get("data", data) if isinstance(data, dict) else data

        def _on_retry(attempt: int, exc: Exception, delay_s: float) -> None:
            logger.warning(
                "{} request failed (attempt {}/{}): {}; retrying in {}s",
                subgraph,
                attempt + 1,
                self.max_retries,
                type(exc).__name__,
                delay_s,
            )

        return await retry_async(
            _once,
            backoff=Backoff(attempts=self.max_retries),
            should_retry=_is_retryable,
            on_retry=_on_retry,
        )

    async def get_aave_reserve_rate(
        self, asset: str, *, subgraph: str = "aave_v3_base"
    ) -> AaveReserveRate | None:
        # Aave subgraphs index underlyingAsset in lowercase.
        payload = await self._post(
            subgraph=subgraph,
            query=AAVE_RESERVE_QUERY,
            variables={"asset": asset.lower()},
        )
        reserves = (payload or {}).get("reserves") or []
        if not reserves:
            logger.warning(f"{subgraph}: no reserve for {asset}")
            return None
        reserve = reserves[0]
        return {
            "name": str(reserve.get("name") or ""),
            "symbol": str(reserve.get("symbol") or ""),
            "liquidity_rate": int(reserve["liquidityRate"]),
        }

    async def get_best_lender_rate(
        self, input_token: str, *, subgraph: str = "morpho_base"
    ) -> LenderRate | None:
        payload = await self._post(
            subgraph=subgraph,
            query=BEST_LENDER_RATE_QUERY,
            variables={"token": input_token.lower()},
        )
        rates = (payload or {}).get("interestRates") or []
        if not rates:
            logger.warning(f"{subgraph}: no lender rate for {input_token}")
            return None
        best = rates[0]
        market = best.get("market") or {}
        return {
            "market_id": str(market.get("id") or best.get("id") or ""),
            "market_name": str(market.get("name") or ""),
            "rate": float(best["rate"]),
        }

    async def get_lender_markets(
        self, symbol: str = "USDC", *, subgraph: str
    ) -> list[LenderMarket]:
        """Every market lending ``symbol`` with its top lender rate, best first."""
        payload = await self._post(
            subgraph=subgraph,
            query=LENDER_MARKETS_QUERY,
            variables={"symbol": symbol},
        )
        markets: list[LenderMarket] = []
        for market in (payload or {}).get("markets") or []:
            rates = market.get("rates") or []
            if not rates:
                continue
            try:
                rate = float(rates[0]["rate"])
            except (KeyError, TypeError, ValueError):
                continue
            utilization: float | None = None
            try:
                deposits = float(market.get("totalDepositBalanceUSD") or 0)
                borrows = float(market.get("totalBorrowBalanceUSD") or 0)
                if deposits > 0:
                    utilization = borrows / deposits
            except (TypeError, ValueError):
                pass
            markets.append(
                {
                    "market_id": str(market.get("id")),
                    "name": str(market.get("name") or ""),
                    "rate": rate,
                    "utilization": utilization,
                }
            )
        markets.sort(key=lambda m: m["rate"], reverse=True)
        return markets
