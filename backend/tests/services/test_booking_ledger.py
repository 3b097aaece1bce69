from datetime import date, datetime, time, timezone
from decimal import Decimal

import pytest

from courtbook.core.enums import PaymentMethod, ReservationStatus
from courtbook.core.exceptions import (
    BookingConflictException,
    BusinessRuleException,
    ConflictException,
    InsufficientTokensException,
    InvalidDurationException,
    NotFoundException,
    OutOfHoursException,
    ValidationException,
)
from courtbook.models.reservation import Reservation, ResourceClaim
from courtbook.services.booking_ledger import BookingLedger


class TestCreateBooking:
    def test_creates_pending_booking_with_price(self, booking_ledger, court, booking_date):
        reservation = booking_ledger.create_booking(
            court.id, booking_date, time(10, 0), 90, "member-1"
        )

        assert reservation.status == ReservationStatus.PENDING.value
        assert reservation.kind == "court_booking"
        assert reservation.resource_ids == [court.id]
        assert reservation.end_time == time(11, 30)
        assert reservation.total_cost_tokens == 1500
        assert reservation.total_cost_cash == Decimal("10.50")
        assert reservation.tokens_used == 1500
        assert reservation.cash_amount == Decimal("0.00")

    def test_writes_one_claim_per_half_hour(self, db, booking_ledger, court, booking_date):
        reservation = booking_ledger.create_booking(
            court.id, booking_date, time(10, 0), 90, "member-1"
        )

        units = sorted(
            claim.unit_start
            for claim in db.query(ResourceClaim).filter_by(reservation_id=reservation.id)
        )
        assert units == [600, 630, 660]

    def test_overlapping_booking_is_rejected(self, booking_ledger, court, booking_date):
        booking_ledger.create_booking(court.id, booking_date, time(10, 0), 60, "member-1")

        with pytest.raises(BookingConflictException) as exc_info:
            booking_ledger.create_booking(court.id, booking_date, time(10, 30), 60, "member-2")

        assert exc_info.value.details["conflicts"][0]["resource_id"] == court.id

    def test_contained_booking_is_rejected(self, booking_ledger, court, booking_date):
        booking_ledger.create_booking(court.id, booking_date, time(9, 0), 180, "member-1")

        with pytest.raises(BookingConflictException):
            booking_ledger.create_booking(court.id, booking_date, time(10, 0), 30, "member-2")

    def test_back_to_back_bookings_succeed(self, booking_ledger, court, booking_date):
        first = booking_ledger.create_booking(court.id, booking_date, time(10, 0), 60, "member-1")
        second = booking_ledger.create_booking(court.id, booking_date, time(11, 0), 60, "member-2")

        assert first.end_time == second.start_time

    def test_same_time_on_another_court_succeeds(
        self, booking_ledger, court, court_2, booking_date
    ):
        booking_ledger.create_booking(court.id, booking_date, time(10, 0), 60, "member-1")
        other = booking_ledger.create_booking(court_2.id, booking_date, time(10, 0), 60, "member-2")

        assert other.resource_ids == [court_2.id]

    def test_cancelled_window_can_be_rebooked(self, booking_ledger, court, booking_date):
        first = booking_ledger.create_booking(court.id, booking_date, time(10, 0), 60, "member-1")
        booking_ledger.cancel(first.id, "member-1")

        again = booking_ledger.create_booking(court.id, booking_date, time(10, 0), 60, "member-2")

        assert again.status == ReservationStatus.PENDING.value

    def test_outside_operating_hours(self, booking_ledger, court, booking_date):
        with pytest.raises(OutOfHoursException) as exc_info:
            booking_ledger.create_booking(court.id, booking_date, time(21, 30), 60, "member-1")

        assert exc_info.value.details["closed"] is False
        assert "closes at 22:00 on Tuesdays" in exc_info.value.message

    def test_before_opening(self, booking_ledger, court, booking_date):
        with pytest.raises(OutOfHoursException):
            booking_ledger.create_booking(court.id, booking_date, time(7, 30), 60, "member-1")

    def test_closed_day(self, booking_ledger, court, closed_date):
        with pytest.raises(OutOfHoursException) as exc_info:
            booking_ledger.create_booking(court.id, closed_date, time(10, 0), 60, "member-1")

        assert exc_info.value.details["closed"] is True

    def test_past_midnight(self, booking_ledger, court, booking_date):
        with pytest.raises(OutOfHoursException):
            booking_ledger.create_booking(court.id, booking_date, time(23, 30), 60, "member-1")

    @pytest.mark.parametrize("duration", [0, -30, 45, 61])
    def test_invalid_durations(self, booking_ledger, court, booking_date, duration):
        with pytest.raises(InvalidDurationException):
            booking_ledger.create_booking(court.id, booking_date, time(10, 0), duration, "member-1")

    def test_misaligned_start(self, booking_ledger, court, booking_date):
        with pytest.raises(InvalidDurationException):
            booking_ledger.create_booking(court.id, booking_date, time(10, 15), 60, "member-1")

    def test_start_must_be_in_future(self, booking_ledger, court):
        with pytest.raises(BusinessRuleException) as exc_info:
            booking_ledger.create_booking(court.id, date(2030, 6, 3), time(8, 0), 60, "member-1")

        assert exc_info.value.code == "START_IN_PAST"

    def test_coach_cannot_be_booked_as_court(self, booking_ledger, coach, booking_date):
        with pytest.raises(ValidationException) as exc_info:
            booking_ledger.create_booking(coach.id, booking_date, time(10, 0), 60, "member-1")

        assert exc_info.value.code == "INVALID_RESOURCE_MIX"

    def test_unknown_court(self, booking_ledger, club, booking_date):
        with pytest.raises(NotFoundException) as exc_info:
            booking_ledger.create_booking("missing", booking_date, time(10, 0), 60, "member-1")

        assert exc_info.value.code == "RESOURCE_NOT_FOUND"

    def test_inactive_court(self, booking_ledger, club, make_resource, booking_date):
        closed_court = make_resource(club, name="Court 9", is_active=False)

        with pytest.raises(BusinessRuleException) as exc_info:
            booking_ledger.create_booking(closed_court.id, booking_date, time(10, 0), 60, "m")

        assert exc_info.value.code == "RESOURCE_INACTIVE"

    def test_idempotency_key_returns_original(self, db, booking_ledger, court, booking_date):
        first = booking_ledger.create_booking(
            court.id, booking_date, time(10, 0), 60, "member-1", idempotency_key="req-1"
        )
        repeat = booking_ledger.create_booking(
            court.id, booking_date, time(10, 0), 60, "member-1", idempotency_key="req-1"
        )

        assert repeat.id == first.id
        assert db.query(Reservation).count() == 1


class TestPaymentMethods:
    def test_cash_booking_charges_no_tokens(self, booking_ledger, court, booking_date):
        reservation = booking_ledger.create_booking(
            court.id, booking_date, time(10, 0), 90, "member-1", payment_method=PaymentMethod.CASH
        )

        assert reservation.tokens_used == 0
        assert reservation.cash_amount == Decimal("10.50")

    def test_hybrid_uses_whole_balance(self, make_club, make_resource, clock, db, booking_date):
        small_club = make_club(name="Small Club", tier="community")
        pricey_court = make_resource(small_club, name="Show Court", token_rate=4000, cash_rate="28.00")
        ledger = BookingLedger(db, clock=clock)

        reservation = ledger.create_booking(
            pricey_court.id,
            booking_date,
            time(10, 0),
            120,
            "member-1",
            payment_method=PaymentMethod.HYBRID,
        )

        assert reservation.total_cost_tokens == 8000
        assert reservation.tokens_used == 5000
        assert reservation.cash_amount == Decimal("21.00")

    def test_tokens_beyond_balance_are_rejected(
        self, make_club, make_resource, clock, db, booking_date
    ):
        small_club = make_club(name="Small Club", tier="community")
        pricey_court = make_resource(small_club, name="Show Court", token_rate=4000, cash_rate="28.00")

        with pytest.raises(InsufficientTokensException):
            BookingLedger(db, clock=clock).create_booking(
                pricey_court.id, booking_date, time(10, 0), 120, "member-1"
            )

    def test_hybrid_unavailable_when_balance_covers_price(self, booking_ledger, court, booking_date):
        with pytest.raises(ValidationException) as exc_info:
            booking_ledger.create_booking(
                court.id,
                booking_date,
                time(10, 0),
                60,
                "member-1",
                payment_method=PaymentMethod.HYBRID,
            )

        assert exc_info.value.code == "HYBRID_UNAVAILABLE"


class TestConfirm:
    def test_confirm_debits_pool(self, booking_ledger, token_ledger, court, club, booking_date):
        reservation = booking_ledger.create_booking(
            court.id, booking_date, time(10, 0), 90, "member-1"
        )

        confirmed = booking_ledger.confirm(reservation.id)

        pool = token_ledger.get_token_pool(club.id)
        assert confirmed.status == ReservationStatus.CONFIRMED.value
        assert confirmed.token_pool_id == pool.id
        assert confirmed.confirmed_at is not None
        assert pool.used == 1500

    def test_confirm_twice_debits_once(self, booking_ledger, token_ledger, court, club, booking_date):
        reservation = booking_ledger.create_booking(
            court.id, booking_date, time(10, 0), 60, "member-1"
        )

        booking_ledger.confirm(reservation.id)
        again = booking_ledger.confirm(reservation.id)

        assert again.status == ReservationStatus.CONFIRMED.value
        assert token_ledger.get_token_pool(club.id).used == 1000

    def test_cash_confirm_leaves_pool_untouched(
        self, booking_ledger, token_ledger, court, club, booking_date
    ):
        reservation = booking_ledger.create_booking(
            court.id, booking_date, time(10, 0), 60, "member-1", payment_method=PaymentMethod.CASH
        )

        confirmed = booking_ledger.confirm(reservation.id)

        assert confirmed.token_pool_id is None
        assert token_ledger.get_token_pool(club.id).used == 0

    def test_cannot_confirm_cancelled(self, booking_ledger, court, booking_date):
        reservation = booking_ledger.create_booking(
            court.id, booking_date, time(10, 0), 60, "member-1"
        )
        booking_ledger.cancel(reservation.id, "member-1")

        with pytest.raises(ConflictException) as exc_info:
            booking_ledger.confirm(reservation.id)

        assert exc_info.value.code == "INVALID_STATUS"

    def test_cannot_confirm_after_start(self, booking_ledger, court, clock, booking_date):
        reservation = booking_ledger.create_booking(
            court.id, booking_date, time(10, 0), 60, "member-1"
        )
        clock.set(datetime(2030, 6, 4, 10, 5, tzinfo=timezone.utc))

        with pytest.raises(BusinessRuleException) as exc_info:
            booking_ledger.confirm(reservation.id)

        assert exc_info.value.code == "RESERVATION_STARTED"

    def test_drained_pool_blocks_confirm_and_keeps_pending(
        self, booking_ledger, token_ledger, court, club, booking_date
    ):
        reservation = booking_ledger.create_booking(
            court.id, booking_date, time(10, 0), 90, "member-1"
        )
        token_ledger.debit(club.id, 49_000, use_transaction=True)

        with pytest.raises(InsufficientTokensException):
            booking_ledger.confirm(reservation.id)

        assert booking_ledger.get_reservation(reservation.id).status == "pending"
        assert token_ledger.get_token_pool(club.id).used == 49_000

    def test_unknown_reservation(self, booking_ledger, club):
        with pytest.raises(NotFoundException):
            booking_ledger.confirm("nope")


def test_list_reservations_for_owner(booking_ledger, court, booking_date):
    first = booking_ledger.create_booking(court.id, booking_date, time(9, 0), 60, "member-1")
    second = booking_ledger.create_booking(court.id, booking_date, time(12, 0), 60, "member-1")
    booking_ledger.create_booking(court.id, booking_date, time(14, 0), 60, "member-2")
    booking_ledger.cancel(first.id, "member-1")

    mine = booking_ledger.list_reservations_for_owner("member-1")
    assert [r.id for r in mine] == [second.id, first.id]

    cancelled = booking_ledger.list_reservations_for_owner("member-1", ReservationStatus.CANCELLED)
    assert [r.id for r in cancelled] == [first.id]
