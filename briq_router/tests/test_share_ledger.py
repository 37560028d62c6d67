import pytest

from briq_router.core.errors import (
    InsufficientLiquidity,
    InsufficientShares,
    InvariantViolation,
)
from briq_router.core.ledger.share_ledger import ShareLedger

TOKEN = "0xToken"
MARKET = "0xMarket"


@pytest.fixture
def ledger():
    return ShareLedger()


def test_bootstrap_is_one_to_one(ledger):
    assert ledger.shares_for_deposit(TOKEN, 1_000) == 1_000
    ledger.mint("alice", TOKEN, 1_000, 1_000)
    assert ledger.book(TOKEN).total_shares == 1_000
    assert ledger.book(TOKEN).total_liquidity == 1_000


def test_share_price_follows_liquidity(ledger):
    ledger.mint("alice", TOKEN, 1_000, 1_000)
    ledger.move_to_market(TOKEN, MARKET, 1_000)
    ledger.mark_market(TOKEN, MARKET, 1_250)

    assert ledger.shares_for_deposit(TOKEN, 500) == 400
    assert ledger.value_of_shares(TOKEN, 1_000) == 1_250
    assert ledger.value_of_shares(TOKEN, 1) == 1


def test_rounding_favours_the_pool(ledger):
    ledger.mint("alice", TOKEN, 3, 3)
    ledger.mark_market(TOKEN, MARKET, 1)  # 3 shares now back 4 units

    assert ledger.shares_for_deposit(TOKEN, 1) == 0
    assert ledger.value_of_shares(TOKEN, 1) == 1


def test_burn_checks_record_and_idle(ledger):
    ledger.mint("alice", TOKEN, 100, 100)
    ledger.move_to_market(TOKEN, MARKET, 60)

    with pytest.raises(InsufficientShares):
        ledger.burn("alice", TOKEN, 101, 101)
    with pytest.raises(InsufficientLiquidity):
        ledger.burn("alice", TOKEN, 50, 50)

    ledger.burn("alice", TOKEN, 40, 40)
    assert ledger.shares_of("alice", TOKEN) == 60
    ledger.check_invariants(TOKEN)


def test_return_from_market_books_difference(ledger):
    ledger.mint("alice", TOKEN, 100, 100)
    ledger.move_to_market(TOKEN, MARKET, 100)

    ledger.return_from_market(TOKEN, MARKET, 100, 97)

    book = ledger.book(TOKEN)
    assert (book.idle, book.total_liquidity, book.supplied) == (97, 97, 0)
    ledger.check_invariants(TOKEN)


def test_record_exists_after_full_exit(ledger):
    ledger.mint("alice", TOKEN, 10, 10)
    ledger.burn("alice", TOKEN, 10, 10)

    assert ledger.has_record("alice", TOKEN)
    assert ledger.shares_of("alice", TOKEN) == 0
    assert not ledger.has_record("bob", TOKEN)


def test_check_invariants_detects_drift(ledger):
    ledger.mint("alice", TOKEN, 10, 10)
    ledger.book(TOKEN).total_shares += 1
    with pytest.raises(InvariantViolation):
        ledger.check_invariants(TOKEN)

    ledger.book(TOKEN).total_shares -= 1
    ledger.book(TOKEN).idle -= 1
    with pytest.raises(InvariantViolation):
        ledger.check_invariants(TOKEN)


def test_check_invariants_on_unknown_token(ledger):
    ledger.check_invariants("0xNothing")
    assert not ledger.has_book("0xNothing")


def test_worthless_shares_mint_nothing(ledger):
    ledger.mint("alice", TOKEN, 1_000, 1_000)
    ledger.move_to_market(TOKEN, MARKET, 1_000)
    ledger.mark_market(TOKEN, MARKET, 0)

    assert ledger.shares_for_deposit(TOKEN, 1_000) == 0
    assert ledger.value_of_shares(TOKEN, 1_000) == 0


def test_view_does_not_create_a_book(ledger):
    assert ledger.view(TOKEN).total_shares == 0
    assert ledger.market_balance(TOKEN, MARKET) == 0
    assert ledger.shares_for_deposit(TOKEN, 7) == 7
    assert not ledger.has_book(TOKEN)
