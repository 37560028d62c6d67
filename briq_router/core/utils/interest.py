from __future__ import annotations

from briq_router.core.constants.base import RAY, SECONDS_PER_YEAR


def ray_mul(a: int, b: int) -> int:
    """Ray product rounded half up, as Aave's WadRayMath does."""
    return (a * b + RAY // 2) // RAY


def linear_interest(rate_ray: int, elapsed_s: int) -> int:
    """Ray factor ``1 + rate * dt / year`` used for Aave liquidity indices."""
    return RAY + (int(rate_ray) * int(elapsed_s)) // SECONDS_PER_YEAR
