from datetime import time


def test_slots_exclude_booked_hours(client, booking_ledger, court, booking_date):
    booking_ledger.create_booking(court.id, booking_date, time(10, 0), 60, "member-1")

    response = client.get(
        f"/api/v1/resources/{court.id}/slots", params={"date": booking_date.isoformat()}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["granularity_minutes"] == 60
    assert "10:00:00" not in body["slots"]
    assert body["slots"][0] == "08:00:00"
    assert body["slots"][-1] == "21:00:00"


def test_slots_on_closed_day_are_empty(client, court, closed_date):
    response = client.get(
        f"/api/v1/resources/{court.id}/slots", params={"date": closed_date.isoformat()}
    )

    assert response.status_code == 200
    assert response.json()["slots"] == []


def test_slots_for_unknown_resource(client, booking_date):
    response = client.get(
        "/api/v1/resources/missing/slots", params={"date": booking_date.isoformat()}
    )

    assert response.status_code == 404
    assert response.json()["code"] == "RESOURCE_NOT_FOUND"


def test_max_duration_stops_at_next_booking(client, booking_ledger, court, booking_date):
    booking_ledger.create_booking(court.id, booking_date, time(12, 0), 60, "member-1")

    response = client.get(
        f"/api/v1/resources/{court.id}/max-duration",
        params={"date": booking_date.isoformat(), "start": "10:00"},
    )

    assert response.status_code == 200
    assert response.json()["max_duration_minutes"] == 120


def test_max_duration_requires_start(client, court, booking_date):
    response = client.get(
        f"/api/v1/resources/{court.id}/max-duration", params={"date": booking_date.isoformat()}
    )

    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"
