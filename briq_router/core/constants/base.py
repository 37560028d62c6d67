from enum import IntEnum

DEFAULT_HTTP_TIMEOUT = 30.0  # HTTP client timeout

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
MAX_UINT256 = 2**256 - 1

RAY = 10**27
MANTISSA = 10**18
SECONDS_PER_YEAR = 365 * 24 * 60 * 60

# Canonical APY scale stored in the registry: 1 bp = 0.01%, 10_000 bp = 100%.
BPS_SCALE = 10_000

USDC_DECIMALS = 6

ADAPTER_AAVE_V3 = "AAVE_V3"
ADAPTER_COMPOUND_V3 = "COMPOUND_V3"


class MarketType(IntEnum):
    # Matches the marketType argument of the on-chain LiquidityManager.
    AAVE = 0
    COMPOUND = 1


class StrategyId(IntEnum):
    NONE = 0
    AAVE = 1
    COMPOUND = 2

SUBGRAPH_GATEWAY_URL = "https://gateway.thegraph.com/api/{api_key}/subgraphs/id/{subgraph_id}"

# Hosted subgraph ids queried by the rate feed.
SUBGRAPH_IDS = {
    "aave_v3_base": "GQFbb95cE6d8mV989mL5figjaGaKCQB3xqYrr1bRyXqF",
    "morpho_base": "71ZTy1veF9twER9CLMnPWeLQ7GZcwKsjmygejrgKirqs",
    "aave_v3_arbitrum": "4xyasjQeREe7PxnF6wVdobZvCw5mhoHZq3T7guRpuNPf",
    "compound_v3_arbitrum": "5MjRndNWGhqvNX7chUYLQDnvEgc8DaH8eisEkcJt71SR",
}
