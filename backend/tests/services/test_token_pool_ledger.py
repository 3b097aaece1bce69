from datetime import datetime, timezone

import pytest

from courtbook.core.exceptions import (
    InsufficientTokensException,
    NotFoundException,
    ValidationException,
)
from courtbook.models.event_outbox import EventOutbox
from courtbook.models.token_pool import TokenPool
from courtbook.services.token_pool_ledger import (
    TokenPoolLedger,
    month_key,
    parse_month_key,
    previous_month_key,
)


def _seed_previous_pool(db, club, **balances) -> TokenPool:
    values = {"allocated": 0, "used": 0, "purchased": 0, "rollover_in": 0, "overdraft_limit": 0}
    values.update(balances)
    pool = TokenPool(
        club_id=club.id,
        month_year="2030-05",
        subscription_tier_id=club.subscription_tier_id,
        expires_at=datetime(2030, 6, 1, tzinfo=timezone.utc),
        **values,
    )
    db.add(pool)
    db.commit()
    return pool


class TestMonthKeys:
    def test_month_key(self):
        assert month_key(datetime(2030, 6, 3, tzinfo=timezone.utc)) == "2030-06"

    def test_previous_month_wraps_year(self):
        assert previous_month_key("2030-01") == "2029-12"
        assert previous_month_key("2030-06") == "2030-05"

    @pytest.mark.parametrize("value", ["2030-13", "30-06", "June", "2030-00"])
    def test_invalid_month(self, value):
        with pytest.raises(ValidationException):
            parse_month_key(value)


class TestEnsurePool:
    def test_opens_with_tier_allocation(self, token_ledger, club):
        pool = token_ledger.ensure_pool(club.id)

        assert pool.month_year == "2030-06"
        assert pool.allocated == 50_000
        assert pool.used == 0
        assert pool.rollover_in == 0
        assert pool.overdraft_limit == 0
        assert pool.available() == 50_000
        assert pool.expires_at.replace(tzinfo=None) == datetime(2030, 7, 1)

    def test_is_idempotent(self, db, token_ledger, club):
        first = token_ledger.ensure_pool(club.id)
        second = token_ledger.ensure_pool(club.id)

        assert first.id == second.id
        assert db.query(TokenPool).filter_by(club_id=club.id).count() == 1

    def test_month_follows_club_timezone(self, make_club, db, clock):
        auckland = make_club(name="Auckland Club", tz="Pacific/Auckland")
        clock.set(datetime(2030, 6, 30, 13, 0, tzinfo=timezone.utc))

        pool = TokenPoolLedger(db, clock=clock).ensure_pool(auckland.id)

        assert pool.month_year == "2030-07"

    def test_unknown_club(self, token_ledger):
        with pytest.raises(NotFoundException):
            token_ledger.ensure_pool("missing")


class TestRollover:
    def test_rollover_carries_unused_balance(self, db, clock, make_club):
        club = make_club(tier="plus")
        _seed_previous_pool(db, club, allocated=150_000, used=100_000)

        pool = TokenPoolLedger(db, clock=clock).ensure_pool(club.id)

        assert pool.rollover_in == 50_000
        assert pool.available() == 200_000

    def test_rollover_is_capped(self, db, clock, make_club):
        club = make_club(tier="plus")
        _seed_previous_pool(db, club, allocated=150_000, purchased=100_000)

        pool = TokenPoolLedger(db, clock=clock).ensure_pool(club.id)

        assert pool.rollover_in == 150_000

    def test_overdrawn_month_rolls_nothing(self, db, clock, make_club):
        club = make_club(tier="pro")
        _seed_previous_pool(
            db, club, allocated=300_000, used=310_000, overdraft_limit=30_000, overdraft_used=10_000
        )

        pool = TokenPoolLedger(db, clock=clock).ensure_pool(club.id)

        assert pool.rollover_in == 0
        assert pool.used == 0

    def test_tier_without_rollover(self, db, token_ledger, club):
        _seed_previous_pool(db, club, allocated=50_000, used=1_000)

        assert token_ledger.ensure_pool(club.id).rollover_in == 0


class TestDebitAndCredit:
    def test_debit_reduces_available(self, token_ledger, club):
        pool = token_ledger.debit(club.id, 1_200, use_transaction=True)

        assert pool.used == 1_200
        assert pool.available() == 48_800
        assert pool.overdraft_used == 0

    def test_debit_beyond_balance_is_rejected(self, token_ledger, club):
        token_ledger.debit(club.id, 49_000, use_transaction=True)

        with pytest.raises(InsufficientTokensException) as exc_info:
            token_ledger.debit(club.id, 1_001, use_transaction=True)

        assert exc_info.value.details["available"] == 1_000
        assert token_ledger.get_token_pool(club.id).used == 49_000

    def test_exact_balance_can_be_spent(self, token_ledger, club):
        pool = token_ledger.debit(club.id, 50_000, use_transaction=True)

        assert pool.available() == 0

    def test_negative_amounts_are_rejected(self, token_ledger, club):
        with pytest.raises(ValidationException):
            token_ledger.debit(club.id, -1)
        with pytest.raises(ValidationException):
            token_ledger.credit(club.id, -1)

    def test_credit_floors_used_at_zero(self, token_ledger, club):
        token_ledger.debit(club.id, 100, use_transaction=True)

        pool = token_ledger.credit(club.id, 500, use_transaction=True)

        assert pool.used == 0
        assert pool.available() == 50_000

    def test_check_availability(self, token_ledger, club):
        assert token_ledger.check_availability(club.id, 50_000)
        assert not token_ledger.check_availability(club.id, 50_001)


class TestOverdraft:
    @pytest.fixture
    def pro_club(self, make_club):
        return make_club(name="Pro Club", tier="pro")

    def test_debit_into_overdraft(self, token_ledger, pro_club):
        pool = token_ledger.debit(pro_club.id, 310_000, use_transaction=True)

        assert pool.available() == -10_000
        assert pool.overdraft_used == 10_000

    def test_overdraft_limit_is_enforced(self, token_ledger, pro_club):
        token_ledger.debit(pro_club.id, 310_000, use_transaction=True)

        with pytest.raises(InsufficientTokensException):
            token_ledger.debit(pro_club.id, 25_000, use_transaction=True)

        pool = token_ledger.debit(pro_club.id, 20_000, use_transaction=True)
        assert pool.available() == -30_000
        assert pool.overdraft_used == 30_000

    def test_credit_repays_overdraft_first(self, token_ledger, pro_club):
        token_ledger.debit(pro_club.id, 310_000, use_transaction=True)

        pool = token_ledger.credit(pro_club.id, 15_000, use_transaction=True)

        assert pool.used == 295_000
        assert pool.overdraft_used == 0

    def test_purchase_repays_overdraft(self, token_ledger, pro_club):
        token_ledger.debit(pro_club.id, 310_000, use_transaction=True)

        pool = token_ledger.purchase(pro_club.id, 4_000)

        assert pool.purchased == 4_000
        assert pool.overdraft_used == 6_000


class TestPurchase:
    def test_purchase_adds_tokens_and_event(self, db, token_ledger, club):
        pool = token_ledger.purchase(club.id, 10_000, reference="inv-1")

        assert pool.purchased == 10_000
        assert pool.available() == 60_000
        event = db.query(EventOutbox).filter_by(event_type="TokensPurchased").one()
        assert event.payload["tokens"] == 10_000
        assert event.payload["reference"] == "inv-1"

    def test_repeated_reference_applies_once(self, db, token_ledger, club):
        token_ledger.purchase(club.id, 10_000, reference="inv-1")
        pool = token_ledger.purchase(club.id, 10_000, reference="inv-1")

        assert pool.purchased == 10_000
        assert db.query(EventOutbox).filter_by(event_type="TokensPurchased").count() == 1

    def test_unreferenced_purchases_all_apply(self, db, token_ledger, club):
        token_ledger.purchase(club.id, 1_000)
        pool = token_ledger.purchase(club.id, 1_000)

        assert pool.purchased == 2_000
        assert db.query(EventOutbox).filter_by(event_type="TokensPurchased").count() == 2

    def test_purchase_must_be_positive(self, token_ledger, club):
        with pytest.raises(ValidationException):
            token_ledger.purchase(club.id, 0)


class TestPoolLookup:
    def test_other_month_without_pool(self, token_ledger, club):
        with pytest.raises(NotFoundException) as exc_info:
            token_ledger.get_token_pool(club.id, "2030-04")

        assert exc_info.value.code == "TOKEN_POOL_NOT_FOUND"

    def test_previous_month_pool_is_readable(self, db, token_ledger, club):
        _seed_previous_pool(db, club, allocated=50_000, used=7)

        assert token_ledger.get_token_pool(club.id, "2030-05").used == 7

    def test_invalid_month(self, token_ledger, club):
        with pytest.raises(ValidationException):
            token_ledger.get_token_pool(club.id, "2030-6x")


def _assert_pool_balanced(pool: TokenPool) -> None:
    total_credit = pool.allocated + pool.rollover_in + pool.purchased + pool.refunded_in
    assert pool.used <= total_credit + pool.overdraft_limit
    assert pool.available() == total_credit - pool.used
    assert pool.overdraft_used == max(0, pool.used - total_credit)


class TestBalanceSequences:
    """Pro tier: 300,000 allocated with a 30,000 overdraft."""

    @pytest.mark.parametrize(
        "steps",
        [
            [("debit", 310_000), ("purchase", 4_000), ("credit", 2_000), ("debit", 26_000)],
            [("debit", 330_000), ("debit", 1), ("credit", 40_000), ("debit", 40_000)],
            [("purchase", 10_000), ("debit", 335_000), ("refund", 7_000), ("debit", 12_000)],
            [
                ("credit", 5_000),
                ("debit", 1),
                ("refund", 1_000),
                ("purchase", 1),
                ("debit", 331_000),
            ],
        ],
        ids=["overdraft-then-topup", "exhaust-then-repay", "refund-in-overdraft", "floors"],
    )
    def test_invariants_hold_after_every_step(self, make_club, token_ledger, steps):
        club = make_club(name="Pro Club", tier="pro")
        pool = token_ledger.ensure_pool(club.id)

        for action, tokens in steps:
            try:
                if action == "debit":
                    pool = token_ledger.debit(club.id, tokens, use_transaction=True)
                elif action == "credit":
                    pool = token_ledger.credit(club.id, tokens, use_transaction=True)
                elif action == "refund":
                    pool = token_ledger.refund(club.id, tokens, source_pool_id=None)
                    token_ledger.db.commit()
                else:
                    pool = token_ledger.purchase(club.id, tokens)
            except InsufficientTokensException:
                pool = token_ledger.get_token_pool(club.id)
            _assert_pool_balanced(pool)

    def test_debit_to_exact_limit_after_mixed_moves(self, make_club, token_ledger):
        club = make_club(name="Pro Club", tier="pro")

        token_ledger.debit(club.id, 310_000, use_transaction=True)
        token_ledger.purchase(club.id, 4_000)
        token_ledger.credit(club.id, 2_000, use_transaction=True)
        pool = token_ledger.debit(club.id, 26_000, use_transaction=True)

        assert pool.available() == -30_000
        assert pool.overdraft_used == 30_000
        with pytest.raises(InsufficientTokensException):
            token_ledger.debit(club.id, 1, use_transaction=True)
        _assert_pool_balanced(token_ledger.get_token_pool(club.id))
