from __future__ import annotations

from eth_utils import to_checksum_address

# Ethereum mainnet
ETHEREUM_USDC = to_checksum_address("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48")
ETHEREUM_AAVE_V3_POOL = to_checksum_address(
    "0x87870Bca3F3fD6335C3F4ce8392D69350B4fA4E2"
)
ETHEREUM_COMET_USDC = to_checksum_address(
    "0xc3d688B66703497DAA19211EEdff47f25384cdc3"
)

# Base
BASE_USDC = to_checksum_address("0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913")
BASE_AAVE_V3_POOL = to_checksum_address("0xA238Dd80C259a72e81d7e4664a9801593F98d1c5")
BASE_AAVE_V3_POOL_ADDRESSES_PROVIDER = to_checksum_address(
    "0xe20fCBdBfFC4Dd138cE8b2E6FBb6CB49777ad64D"
)
BASE_MORPHO_USDC_MARKET = to_checksum_address(
    "0x46415998764c29ab2a25cbea6254146d50d22687"
)

# Base Sepolia APYStorage deployment fed by the rate publisher.
BASE_SEPOLIA_APY_STORAGE = to_checksum_address(
    "0xce52BC5c88c7bD76b17e05674e33380AA892D491"
)
