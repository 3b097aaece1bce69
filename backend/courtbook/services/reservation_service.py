# backend/courtbook/services/reservation_service.py
"""
Reservation Service

Shared lifecycle for every booking path:
- create: validate, price, pre-check conflicts, then insert the
  reservation and its resource claims in one transaction
- confirm: pending -> confirmed, debiting the club's token pool
- cancel: refund by notice band, release claims, credit tokens

BookingLedger and SessionScheduler specialise which resources a request
may hold; everything else lives here so both paths share one conflict
detector and one set of rules.
"""

from datetime import date, time
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.config import settings
from ..core.enums import PaymentMethod, ReservationKind, ReservationStatus
from ..core.exceptions import (
    BookingConflictException,
    BusinessRuleException,
    ConflictException,
    InsufficientTokensException,
    InvalidDurationException,
    NotCancellableException,
    NotFoundException,
    OutOfHoursException,
    TooLateToCancelException,
    ValidationException,
)
from ..core.resource_lock import resource_locks
from ..core.timezone_utils import club_now, localize_club_time
from ..constants.refund_bands import MINIMUM_CANCELLATION_HOURS
from ..events.booking_events import (
    ReservationCancelled,
    ReservationConfirmed,
    ReservationCreated,
)
from ..events.publisher import EventPublisher
from ..models.club import Club, OperatingWindow
from ..models.reservation import Reservation, minutes_of_day, time_from_minutes
from ..models.resource import Resource
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.club_repository import ClubRepository
from ..repositories.reservation_repository import ReservationRepository
from .base import BaseService
from .conflict_detector import ConflictDetector, TimeWindow, find_conflicts
from .hybrid_payment_calculator import CENTS, HybridPaymentCalculator
from .refund_policy import RefundAmounts, compute_refund, refund_band
from .time_slot_calendar import generate_slots, validate_booking_time
from .token_pool_ledger import TokenPoolLedger

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def _on_unit_grid(start_time: time) -> bool:
    """Whether a start time sits on the booking-unit grid that create() accepts."""
    if start_time.second or start_time.microsecond:
        return False
    return minutes_of_day(start_time) % settings.booking_unit_minutes == 0


class ReservationService(BaseService):
    """Create, confirm and cancel reservations on one or more resources."""

    kind: ReservationKind = ReservationKind.COURT_BOOKING

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        token_ledger: Optional[TokenPoolLedger] = None,
        conflict_detector: Optional[ConflictDetector] = None,
        repository: Optional[ReservationRepository] = None,
        club_repository: Optional[ClubRepository] = None,
        event_publisher: Optional[EventPublisher] = None,
        payment_calculator: Optional[HybridPaymentCalculator] = None,
    ):
        super().__init__(db, clock)
        self.repository = repository or RepositoryFactory.create_reservation_repository(db)
        self.club_repository = club_repository or RepositoryFactory.create_club_repository(db)
        self.conflict_detector = conflict_detector or ConflictDetector(db)
        self.event_publisher = event_publisher or EventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )
        self.token_ledger = token_ledger or TokenPoolLedger(
            db, clock=self.clock, event_publisher=self.event_publisher
        )
        self.payment_calculator = payment_calculator or HybridPaymentCalculator()

    # Validation helpers

    def _validate_duration(self, start_time: time, duration_minutes: int) -> None:
        unit = settings.booking_unit_minutes
        if duration_minutes <= 0 or duration_minutes % unit != 0:
            raise InvalidDurationException(duration_minutes, unit)
        if not _on_unit_grid(start_time):
            raise InvalidDurationException(
                duration_minutes,
                unit,
                reason=f"Start time must fall on a {unit}-minute boundary",
            )

    def _load_resources(self, resource_ids: Sequence[str]) -> Tuple[Club, List[Resource]]:
        if not resource_ids:
            raise ValidationException("At least one resource is required", code="NO_RESOURCES")
        if len(set(resource_ids)) != len(resource_ids):
            raise ValidationException("Duplicate resources requested", code="DUPLICATE_RESOURCES")

        resources = self.club_repository.get_resources(resource_ids)
        found = {resource.id for resource in resources}
        missing = [rid for rid in resource_ids if rid not in found]
        if missing:
            raise NotFoundException(
                "Resource not found",
                code="RESOURCE_NOT_FOUND",
                details={"resource_ids": missing},
            )

        inactive = [resource.id for resource in resources if not resource.is_active]
        if inactive:
            raise BusinessRuleException(
                "Resource is not available for booking",
                code="RESOURCE_INACTIVE",
                details={"resource_ids": inactive},
            )

        club_ids = {resource.club_id for resource in resources}
        if len(club_ids) != 1:
            raise ValidationException(
                "All resources must belong to the same club", code="MIXED_CLUBS"
            )
        club = self.club_repository.get_by_id(club_ids.pop())
        if club is None:
            raise NotFoundException("Club not found", code="CLUB_NOT_FOUND")

        self._validate_resource_mix(resources)
        return club, resources

    def _validate_resource_mix(self, resources: Sequence[Resource]) -> None:
        """Hook for subclasses restricting which resources one request may hold."""

    def _operating_window(self, club: Club, booking_date: date) -> Optional[OperatingWindow]:
        return self.club_repository.get_operating_window(club.id, booking_date.weekday())

    def _end_time(self, booking_date: date, start_time: time, duration_minutes: int) -> time:
        end_minutes = minutes_of_day(start_time) + duration_minutes
        if end_minutes >= MINUTES_PER_DAY:
            raise OutOfHoursException(
                booking_date.isoformat(), start_time.isoformat(), "24:00"
            )
        return time_from_minutes(end_minutes)

    def _validate_hours(
        self, club: Club, booking_date: date, start_time: time, end_time: time
    ) -> OperatingWindow:
        window = self._operating_window(club, booking_date)
        reason = validate_booking_time(booking_date, window, start_time, end_time)
        if reason is not None:
            raise OutOfHoursException(
                booking_date.isoformat(),
                start_time.isoformat(),
                end_time.isoformat(),
                closed=window is None,
                reason=reason,
            )
        return window

    def _validate_future(self, club: Club, booking_date: date, start_time: time) -> None:
        if localize_club_time(club, booking_date, start_time) <= self.now():
            raise BusinessRuleException(
                "Reservations must start in the future",
                code="START_IN_PAST",
                details={"date": booking_date.isoformat(), "start_time": start_time.isoformat()},
            )

    # Pricing and payment

    @staticmethod
    def price(resources: Sequence[Resource], duration_minutes: int) -> Tuple[int, Decimal]:
        """Hours times the summed hourly rates, in tokens and in cash."""
        hours = Decimal(duration_minutes) / Decimal(60)
        token_rate = sum(Decimal(resource.hourly_token_rate or 0) for resource in resources)
        cash_rate = sum(Decimal(resource.hourly_cash_rate or 0) for resource in resources)
        tokens = int((token_rate * hours).to_integral_value(rounding=ROUND_HALF_UP))
        cash = (cash_rate * hours).quantize(CENTS, rounding=ROUND_HALF_UP)
        return tokens, cash

    def _plan_payment(
        self,
        club: Club,
        cost_tokens: int,
        cost_cash: Decimal,
        payment_method: PaymentMethod,
    ) -> Tuple[int, Decimal]:
        """Tokens and cash to charge at confirmation for the chosen method."""
        if payment_method == PaymentMethod.CASH:
            return 0, cost_cash

        pool = self.token_ledger.ensure_pool(club.id)
        quote = self.payment_calculator.quote(cost_tokens, pool.spendable(), cash_price=cost_cash)
        option = quote.option(payment_method)

        if payment_method == PaymentMethod.TOKENS:
            assert option is not None
            if not option.can_afford:
                raise InsufficientTokensException(
                    cost_tokens, pool.available(), pool.overdraft_limit
                )
            return option.tokens, option.cash

        if option is None:
            raise ValidationException(
                "Hybrid payment needs some, but not enough, tokens for the full price",
                code="HYBRID_UNAVAILABLE",
                details={"cost_tokens": cost_tokens, "available_tokens": quote.available_tokens},
            )
        return option.tokens, option.cash

    # Lifecycle

    @BaseService.measure_operation("create_reservation")
    def create(
        self,
        resource_ids: Sequence[str],
        booking_date: date,
        start_time: time,
        duration_minutes: int,
        owner_id: str,
        payment_method: PaymentMethod = PaymentMethod.TOKENS,
        idempotency_key: Optional[str] = None,
    ) -> Reservation:
        """
        Create a pending reservation holding every requested resource.

        Raises:
            InvalidDurationException: non-positive or misaligned duration/start
            NotFoundException: unknown resource
            OutOfHoursException: window outside operating hours or closed day
            BookingConflictException: any resource already occupied
            InsufficientTokensException: tokens payment the pool cannot cover
            UnavailableException: store still failing after retries
        """
        self.log_operation(
            "create_reservation",
            kind=self.kind.value,
            resource_ids=list(resource_ids),
            date=booking_date.isoformat(),
            start_time=start_time.isoformat(),
            duration_minutes=duration_minutes,
            owner_id=owner_id,
        )

        if idempotency_key:
            existing = self.repository.get_by_idempotency_key(idempotency_key)
            if existing is not None:
                return existing

        payment_method = PaymentMethod(payment_method)
        self._validate_duration(start_time, duration_minutes)
        end_time = self._end_time(booking_date, start_time, duration_minutes)
        club, resources = self._load_resources(resource_ids)
        self._validate_hours(club, booking_date, start_time, end_time)
        self._validate_future(club, booking_date, start_time)

        cost_tokens, cost_cash = self.price(resources, duration_minutes)
        tokens_used, cash_amount = self._plan_payment(club, cost_tokens, cost_cash, payment_method)

        ordered_ids = [resource.id for resource in resources]
        club_id = club.id

        def _attempt() -> Reservation:
            with self.repository.transaction():
                self.conflict_detector.ensure_no_conflicts(
                    ordered_ids, booking_date, start_time, end_time
                )
                reservation = self.repository.create_with_claims(
                    resources,
                    booking_date,
                    start_time,
                    end_time,
                    settings.booking_unit_minutes,
                    club_id=club_id,
                    owner_id=owner_id,
                    kind=self.kind.value,
                    duration_minutes=duration_minutes,
                    status=ReservationStatus.PENDING.value,
                    payment_method=payment_method.value,
                    total_cost_tokens=cost_tokens,
                    total_cost_cash=cost_cash,
                    tokens_used=tokens_used,
                    cash_amount=cash_amount,
                    idempotency_key=idempotency_key,
                    created_at=self.now(),
                )
                self.event_publisher.publish(
                    ReservationCreated(
                        reservation_id=reservation.id,
                        club_id=club_id,
                        owner_id=owner_id,
                        kind=self.kind.value,
                        resource_ids=ordered_ids,
                        booking_date=booking_date.isoformat(),
                        start_time=start_time.isoformat(),
                        end_time=end_time.isoformat(),
                        created_at=self.now(),
                    )
                )
            return reservation

        try:
            with resource_locks(ordered_ids, booking_date):
                reservation = self.run_with_retry(f"create_{self.kind.value}", _attempt)
        except IntegrityError as exc:
            if idempotency_key:
                existing = self.repository.get_by_idempotency_key(idempotency_key)
                if existing is not None:
                    return existing
            prometheus_metrics.inc_booking_conflict("constraint")
            raise BookingConflictException(
                details={
                    "date": booking_date.isoformat(),
                    "start_time": start_time.isoformat(),
                    "end_time": end_time.isoformat(),
                    "resource_ids": ordered_ids,
                }
            ) from exc

        self.logger.info(
            "Reservation created",
            extra={
                "reservation_id": reservation.id,
                "club_id": club_id,
                "kind": self.kind.value,
                "tokens_used": tokens_used,
                "cash_amount": str(cash_amount),
            },
        )
        return reservation

    @BaseService.measure_operation("confirm_reservation")
    def confirm(self, reservation_id: str) -> Reservation:
        """
        Confirm a pending reservation and debit its tokens.

        Confirming an already confirmed reservation returns it unchanged and
        debits nothing.
        """
        reservation = self.get_reservation(reservation_id)
        if reservation.status == ReservationStatus.CONFIRMED.value:
            return reservation
        if reservation.status != ReservationStatus.PENDING.value:
            raise ConflictException(
                "Only pending reservations can be confirmed",
                code="INVALID_STATUS",
                details={"reservation_id": reservation_id, "status": reservation.status},
            )

        club = self._club_for(reservation)
        if localize_club_time(club, reservation.booking_date, reservation.start_time) <= self.now():
            raise BusinessRuleException(
                "Reservation has already started",
                code="RESERVATION_STARTED",
                details={"reservation_id": reservation_id},
            )

        tokens = int(reservation.tokens_used or 0)
        if tokens:
            self.token_ledger.ensure_pool(club.id)

        confirmed_at = self.now()
        resource_ids = reservation.resource_ids

        def _attempt() -> bool:
            with self.repository.transaction():
                pool_id: Optional[str] = None
                if not self.repository.transition_status(
                    reservation_id,
                    ReservationStatus.PENDING.value,
                    ReservationStatus.CONFIRMED.value,
                    confirmed_at=confirmed_at,
                ):
                    return False
                self.conflict_detector.ensure_no_conflicts(
                    resource_ids,
                    reservation.booking_date,
                    reservation.start_time,
                    reservation.end_time,
                    exclude_reservation_id=reservation_id,
                )
                if tokens:
                    pool_id = self.token_ledger.debit(club.id, tokens).id
                    self.repository.update(reservation_id, token_pool_id=pool_id)
                self.event_publisher.publish(
                    ReservationConfirmed(
                        reservation_id=reservation_id,
                        club_id=club.id,
                        tokens_debited=tokens,
                        cash_amount=str(reservation.cash_amount),
                        token_pool_id=pool_id,
                        confirmed_at=confirmed_at,
                    )
                )
            return True

        applied = self.run_with_retry("confirm_reservation", _attempt)
        self.db.refresh(reservation)
        if applied:
            self.log_operation(
                "confirm_reservation", reservation_id=reservation_id, tokens_debited=tokens
            )
        elif reservation.status != ReservationStatus.CONFIRMED.value:
            raise ConflictException(
                "Reservation changed while confirming",
                code="RESERVATION_STATE_CHANGED",
                details={"reservation_id": reservation_id, "status": reservation.status},
            )
        return reservation

    @BaseService.measure_operation("cancel_reservation")
    def cancel(
        self,
        reservation_id: str,
        actor_id: str,
        reason: Optional[str] = None,
    ) -> Reservation:
        """
        Cancel a reservation and apply the refund band.

        Status change, claim release, token credit and the outbox event
        commit together. Pending reservations were never charged and refund
        nothing.

        Raises:
            NotCancellableException: already cancelled or already started
            TooLateToCancelException: inside the no-cancel window
        """
        reservation = self.get_reservation(reservation_id)
        if reservation.status == ReservationStatus.CANCELLED.value:
            raise NotCancellableException(reservation_id, "already cancelled")

        club = self._club_for(reservation)
        now = self.now()
        start_at = localize_club_time(club, reservation.booking_date, reservation.start_time)
        if now >= start_at:
            raise NotCancellableException(reservation_id, "already started")

        band = refund_band(now, start_at)
        if not band.can_cancel:
            raise TooLateToCancelException(
                reservation_id, band.hours_until_start, MINIMUM_CANCELLATION_HOURS
            )

        from_status = reservation.status
        if from_status == ReservationStatus.CONFIRMED.value:
            refund = compute_refund(
                band, int(reservation.tokens_used or 0), Decimal(reservation.cash_amount or 0)
            )
        else:
            refund = RefundAmounts(0, Decimal("0.00"), band.percentage)

        refund_pool_id: Optional[str] = None
        if refund.tokens:
            refund_pool_id = self.token_ledger.ensure_pool(club.id).id

        resource_ids = reservation.resource_ids

        def _attempt() -> bool:
            with self.repository.transaction():
                if not self.repository.transition_status(
                    reservation_id,
                    from_status,
                    ReservationStatus.CANCELLED.value,
                    cancelled_at=now,
                    cancelled_by=actor_id,
                    cancellation_reason=reason,
                    refund_tokens=refund.tokens,
                    refund_cash=refund.cash,
                    refund_percentage=refund.percentage,
                    refund_pool_id=refund_pool_id,
                ):
                    return False
                self.repository.release_claims(reservation_id)
                if refund.tokens:
                    self.token_ledger.refund(club.id, refund.tokens, reservation.token_pool_id)
                self.event_publisher.publish(
                    ReservationCancelled(
                        reservation_id=reservation_id,
                        club_id=club.id,
                        cancelled_by=actor_id,
                        cancelled_at=now,
                        refund_percentage=refund.percentage,
                        refund_tokens=refund.tokens,
                        refund_cash=str(refund.cash),
                        released_resource_ids=resource_ids,
                        refund_token_pool_id=refund_pool_id,
                    )
                )
            return True

        applied = self.run_with_retry("cancel_reservation", _attempt)
        self.db.refresh(reservation)
        if not applied:
            if reservation.status == ReservationStatus.CANCELLED.value:
                raise NotCancellableException(reservation_id, "already cancelled")
            raise ConflictException(
                "Reservation changed while cancelling",
                code="RESERVATION_STATE_CHANGED",
                details={"reservation_id": reservation_id, "status": reservation.status},
            )

        self.log_operation(
            "cancel_reservation",
            reservation_id=reservation_id,
            actor_id=actor_id,
            refund_percentage=refund.percentage,
            refund_tokens=refund.tokens,
            refund_cash=str(refund.cash),
        )
        return reservation

    # Queries

    def get_reservation(self, reservation_id: str) -> Reservation:
        reservation = self.repository.get_by_id(reservation_id)
        if reservation is None:
            raise NotFoundException(
                f"Reservation {reservation_id} not found",
                code="RESERVATION_NOT_FOUND",
                details={"reservation_id": reservation_id},
            )
        return reservation

    def list_reservations_for_owner(
        self, owner_id: str, status: Optional[ReservationStatus] = None
    ) -> List[Reservation]:
        return self.repository.list_for_owner(
            owner_id, ReservationStatus(status).value if status else None
        )

    def _club_for(self, reservation: Reservation) -> Club:
        club = self.club_repository.get_by_id(reservation.club_id)
        if club is None:
            raise NotFoundException("Club not found", code="CLUB_NOT_FOUND")
        return club

    def _resource_and_club(self, resource_id: str) -> Tuple[Resource, Club]:
        resource = self.club_repository.get_resource(resource_id)
        if resource is None:
            raise NotFoundException(
                "Resource not found",
                code="RESOURCE_NOT_FOUND",
                details={"resource_ids": [resource_id]},
            )
        club = self.club_repository.get_by_id(resource.club_id)
        if club is None:
            raise NotFoundException("Club not found", code="CLUB_NOT_FOUND")
        return resource, club

    @BaseService.measure_operation("get_available_slots")
    def get_available_slots(self, resource_id: str, booking_date: date) -> List[time]:
        """
        Start times with a free granularity-long window on the resource.

        Past dates and already-started slots today are left out.
        """
        resource, club = self._resource_and_club(resource_id)
        if not resource.is_active:
            return []

        local_now = club_now(club, self.now())
        if booking_date < local_now.date():
            return []

        granularity = settings.slot_granularity_minutes
        candidates = generate_slots(
            booking_date, self._operating_window(club, booking_date), granularity
        )
        existing = self.conflict_detector.existing_windows(resource_id, booking_date)

        available: List[time] = []
        for start in candidates:
            if booking_date == local_now.date() and start <= local_now.time():
                continue
            end = time_from_minutes(minutes_of_day(start) + granularity)
            if not find_conflicts(TimeWindow(start, end), existing):
                available.append(start)
        return available

    def max_bookable_duration(self, resource_id: str, booking_date: date, start_time: time) -> int:
        """Longest free duration in minutes from start_time, bounded by closing."""
        resource, club = self._resource_and_club(resource_id)
        window = self._operating_window(club, booking_date)
        if window is None or not resource.is_active:
            return 0
        if start_time < window.open_time or start_time >= window.close_time:
            return 0
        if not _on_unit_grid(start_time):
            return 0
        return self.conflict_detector.max_bookable_duration(
            resource_id, booking_date, start_time, window.close_time
        )

