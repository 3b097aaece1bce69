from datetime import datetime, timezone

import pytest

from courtbook.events import EventPublisher, ReservationCancelled
from courtbook.models.event_outbox import EventOutboxStatus
from courtbook.repositories import RepositoryFactory


@pytest.fixture
def repository(db):
    return RepositoryFactory.create_event_outbox_repository(db)


def test_enqueue_is_idempotent_by_key(db, repository):
    first = repository.enqueue("ReservationCreated", "r1", "ReservationCreated:r1", {"a": 1})
    second = repository.enqueue("ReservationCreated", "r1", "ReservationCreated:r1", {"a": 2})
    db.commit()

    assert first.id == second.id
    assert second.payload == {"a": 1}


def test_pending_events_and_delivery_marks(db, repository):
    created = repository.enqueue("ReservationCreated", "r1", "k1", {})
    failed = repository.enqueue("ReservationCreated", "r2", "k2", {})
    db.commit()

    assert {e.id for e in repository.fetch_pending()} == {created.id, failed.id}

    repository.mark_sent(created.id, attempt_count=1)
    repository.mark_failed(failed.id, attempt_count=5, error="x" * 2000)
    db.commit()

    assert repository.fetch_pending() == []
    delivered = repository.get_by_id(created.id)
    assert delivered.status == EventOutboxStatus.SENT.value
    assert delivered.sent_at is not None
    stored_failure = repository.get_by_id(failed.id)
    assert stored_failure.status == EventOutboxStatus.FAILED.value
    assert len(stored_failure.last_error) == 1000


def test_publisher_serializes_event_payload(db, repository):
    publisher = EventPublisher(repository)

    row = publisher.publish(
        ReservationCancelled(
            reservation_id="r1",
            club_id="c1",
            cancelled_by="member-1",
            cancelled_at=datetime(2030, 6, 3, 9, 0, tzinfo=timezone.utc),
            refund_percentage=80,
            refund_tokens=800,
            refund_cash="5.60",
            released_resource_ids=["court-1"],
        )
    )
    db.commit()

    assert row.idempotency_key == "ReservationCancelled:r1"
    assert row.aggregate_id == "r1"
    assert row.payload["cancelled_at"] == "2030-06-03T09:00:00+00:00"
    assert row.payload["released_resource_ids"] == ["court-1"]
