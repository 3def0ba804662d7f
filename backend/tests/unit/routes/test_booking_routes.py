# backend/tests/unit/routes/test_booking_routes.py
"""HTTP surface of the booking engine: status codes and error envelopes."""

from __future__ import annotations

from fastapi.testclient import TestClient
import pytest

from booking_engine.api import dependencies as api_dependencies
from booking_engine.main import create_app
from booking_engine.services.slot_service import SlotGenerator

MISSING_ID = "01HZZZZZZZZZZZZZZZZZZZZZZZ"


@pytest.fixture
def client(unit_db, booking_service, policy, hours_resolver):
    app = create_app()
    app.dependency_overrides[api_dependencies.get_booking_service] = lambda: booking_service
    app.dependency_overrides[api_dependencies.get_slot_generator] = lambda: SlotGenerator(
        unit_db, policy=policy, hours_resolver=hours_resolver
    )
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def payload(customer, service):
    def _payload(scheduled_at: str, **extra) -> dict:
        return {
            "customer_id": customer.id,
            "service_id": service.id,
            "scheduled_at": scheduled_at,
            **extra,
        }

    return _payload


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_metrics_endpoint_exposes_prometheus_text(client: TestClient) -> None:
    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")


def test_create_booking_returns_201(client: TestClient, tenant, payload) -> None:
    response = client.post(f"/tenants/{tenant.id}/bookings", json=payload("2030-01-08T10:00:00Z"))

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["duration_minutes"] == 60
    assert body["total_amount"] == 100000.0
    assert body["scheduled_at"].startswith("2030-01-08T10:00:00")
    assert body["scheduled_end"].startswith("2030-01-08T11:00:00")
    assert body["booking_number"].startswith("BK-")


def test_conflict_returns_409_with_reason(
    client: TestClient, tenant, payload, make_booking, at
) -> None:
    existing = make_booking(at(10))

    response = client.post(f"/tenants/{tenant.id}/bookings", json=payload("2030-01-08T10:45:00Z"))

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["code"] == "BOOKING_CONFLICT"
    assert detail["message"] == "Time conflict with an existing booking"
    assert detail["details"]["reason"] == "time_conflict"
    assert detail["details"]["conflicting_booking_ids"] == [existing.id]


def test_validation_failure_returns_400(client: TestClient, tenant, payload) -> None:
    response = client.post(f"/tenants/{tenant.id}/bookings", json=payload("2029-12-01T10:00:00Z"))

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_BOOKING_TIME"


def test_unknown_fields_are_rejected(client: TestClient, tenant, payload) -> None:
    response = client.post(
        f"/tenants/{tenant.id}/bookings",
        json=payload("2030-01-08T10:00:00Z", total_amount=1),
    )

    assert response.status_code == 422


def test_get_missing_booking_returns_404(client: TestClient, tenant) -> None:
    response = client.get(f"/tenants/{tenant.id}/bookings/{MISSING_ID}")

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "BOOKING_NOT_FOUND"


def test_list_filters_by_status(client: TestClient, tenant, make_booking, at) -> None:
    confirmed = make_booking(at(10), status="confirmed")
    make_booking(at(12), status="pending")

    response = client.get(f"/tenants/{tenant.id}/bookings", params={"status": "confirmed"})

    assert response.status_code == 200
    body = response.json()
    assert [b["id"] for b in body["bookings"]] == [confirmed.id]
    assert body["limit"] == 50
    assert body["offset"] == 0


def test_patch_reschedules(client: TestClient, tenant, make_booking, at) -> None:
    booking = make_booking(at(10))

    response = client.patch(
        f"/tenants/{tenant.id}/bookings/{booking.id}",
        json={"scheduled_at": "2030-01-08T14:00:00Z"},
    )

    assert response.status_code == 200
    assert response.json()["scheduled_at"].startswith("2030-01-08T14:00:00")


def test_status_endpoints(client: TestClient, tenant, make_booking, at) -> None:
    booking = make_booking(at(10), status="pending")
    base = f"/tenants/{tenant.id}/bookings/{booking.id}"

    assert client.post(f"{base}/confirm").json()["status"] == "confirmed"
    assert client.post(f"{base}/complete").json()["status"] == "completed"

    response = client.post(f"{base}/cancel", json={"reason": "Too late"})
    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "INVALID_STATUS_TRANSITION"


def test_cancel_with_reason(client: TestClient, tenant, make_booking, at) -> None:
    booking = make_booking(at(10))

    response = client.post(
        f"/tenants/{tenant.id}/bookings/{booking.id}/cancel", json={"reason": "Sick"}
    )

    assert response.status_code == 200
    assert response.json()["cancellation_reason"] == "Sick"


def test_delete_returns_204(client: TestClient, tenant, make_booking, at) -> None:
    booking = make_booking(at(10))

    response = client.delete(f"/tenants/{tenant.id}/bookings/{booking.id}")

    assert response.status_code == 204
    assert client.get(f"/tenants/{tenant.id}/bookings/{booking.id}").status_code == 404


def test_availability(client: TestClient, tenant, service, make_booking, at) -> None:
    booking = make_booking(at(10), status="confirmed")

    response = client.get(
        f"/tenants/{tenant.id}/availability",
        params={"service_id": service.id, "date": "2030-01-08"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["date"] == "2030-01-08"
    assert body["business_hours"]["is_open"] is True
    assert body["business_hours"]["open_time"] == "09:00"
    assert len(body["slots"]) == 15
    blocked = [slot for slot in body["slots"] if not slot["available"]]
    assert len(blocked) == 3
    assert {slot["conflicting_booking_id"] for slot in blocked} == {booking.id}


def test_availability_on_closed_day(client: TestClient, tenant, service, set_schedule) -> None:
    set_schedule({"monday": {"is_open": False}})

    response = client.get(
        f"/tenants/{tenant.id}/availability",
        params={"service_id": service.id, "date": "2030-01-07"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["slots"] == []
    assert body["business_hours"]["is_open"] is False
