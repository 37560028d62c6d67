from briq_router.core.constants.base import RAY, SECONDS_PER_YEAR
from briq_router.core.utils.interest import linear_interest, ray_mul


def test_ray_mul_rounds_half_up():
    assert ray_mul(RAY, RAY) == RAY
    assert ray_mul(3, RAY // 2) == 2
    assert ray_mul(1_000, RAY + RAY // 20) == 1_050


def test_linear_interest():
    assert linear_interest(0, SECONDS_PER_YEAR) == RAY
    assert linear_interest(5 * 10**25, SECONDS_PER_YEAR) == RAY + 5 * 10**25
    assert linear_interest(5 * 10**25, SECONDS_PER_YEAR // 2) == RAY + 25 * 10**24
