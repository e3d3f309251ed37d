"""Tests for booking requests"""

from datetime import date, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from careconnect.models import Booking


def booking_payload(provider_id, **overrides):
    payload = {
        "provider_id": provider_id,
        "customer_name": "Jordan Lee",
        "customer_email": "Jordan@Example.com",
        "customer_phone": "(612) 555-0199",
        "date": (date.today() + timedelta(days=7)).isoformat(),
        "time": "14:30",
        "notes": "Looking for a weekday tour",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def emails():
    with patch(
        "careconnect.domain.bookings.service.send_new_booking_notification", new_callable=AsyncMock
    ) as to_provider, patch(
        "careconnect.domain.bookings.service.send_booking_request_confirmation", new_callable=AsyncMock
    ) as to_customer:
        yield to_provider, to_customer


def test_create_booking(client, db, make_provider, emails):
    provider = make_provider()

    response = client.post("/bookings", json=booking_payload(provider.id))

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    booking = db.query(Booking).filter(Booking.id == body["id"]).one()
    assert booking.customer_email == "jordan@example.com"
    assert booking.customer_phone == "+16125550199"

    to_provider, to_customer = emails
    to_provider.assert_awaited_once()
    assert to_provider.await_args.args[0] == provider.contact_email
    to_customer.assert_awaited_once()
    assert to_customer.await_args.args[0] == "jordan@example.com"


def test_booking_without_provider_email_still_confirms_customer(client, make_provider, emails):
    provider = make_provider(contact_email=None)

    response = client.post("/bookings", json=booking_payload(provider.id))

    assert response.status_code == 201
    to_provider, to_customer = emails
    to_provider.assert_not_awaited()
    to_customer.assert_awaited_once()


def test_booking_survives_email_outage(client, make_provider):
    provider = make_provider()

    # No email provider configured: notifications fail quietly
    response = client.post("/bookings", json=booking_payload(provider.id))

    assert response.status_code == 201


def test_past_date_is_rejected(client, make_provider, emails):
    provider = make_provider()
    yesterday = (date.today() - timedelta(days=7)).isoformat()

    response = client.post("/bookings", json=booking_payload(provider.id, date=yesterday))

    assert response.status_code == 422
    assert "Booking date cannot be in the past" in response.text


@pytest.mark.parametrize(
    "field,value",
    [("customer_email", ""), ("customer_phone", ""), ("customer_phone", "12345"), ("time", "2pm")],
)
def test_invalid_fields_are_rejected(client, make_provider, emails, field, value):
    provider = make_provider()
    response = client.post("/bookings", json=booking_payload(provider.id, **{field: value}))
    assert response.status_code == 422


def test_unlisted_provider_cannot_be_booked(client, make_provider, emails):
    provider = make_provider(status="pending")

    response = client.post("/bookings", json=booking_payload(provider.id))

    assert response.status_code == 404


def test_booking_rate_limit(client, make_provider, emails):
    provider = make_provider()
    statuses = [
        client.post("/bookings", json=booking_payload(provider.id)).status_code for _ in range(11)
    ]
    assert statuses[:10] == [201] * 10
    assert statuses[10] == 429


def test_customer_lists_bookings_by_email(client, make_provider, emails):
    provider = make_provider(business_name="Lakeside Home")
    client.post("/bookings", json=booking_payload(provider.id))

    response = client.get("/bookings", params={"email": "JORDAN@example.com"})

    assert response.status_code == 200
    body = response.json()
    assert len(body) == 1
    assert body[0]["provider_name"] == "Lakeside Home"
    assert client.get("/bookings", params={"email": "not-an-email"}).json() == []


def test_get_booking_not_found(client):
    assert client.get("/bookings/missing").status_code == 404


def test_provider_updates_own_booking(client, my_provider, make_provider, emails):
    mine = client.post("/bookings", json=booking_payload(my_provider.id)).json()["id"]
    other = client.post("/bookings", json=booking_payload(make_provider().id)).json()["id"]

    response = client.patch(f"/bookings/{mine}/status", json={"status": "confirmed"})
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"

    assert client.patch(f"/bookings/{other}/status", json={"status": "confirmed"}).status_code == 404
    assert client.patch(f"/bookings/{mine}/status", json={"status": "done"}).status_code == 422

    listed = client.get("/bookings/provider", params={"status": "confirmed"}).json()
    assert [b["id"] for b in listed] == [mine]
