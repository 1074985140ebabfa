from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from barbershop.database import get_db
from barbershop.dependencies import get_availability_service, get_booking_store, get_now
from barbershop.main import app
from barbershop.models import Appointment, ShopConfig
from barbershop.repositories import SqlAlchemyBookingStore
from barbershop.services.slots import TimeSlot
from barbershop.services.time_utils import to_utc

from .conftest import CHICAGO, MONDAY, local


def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@pytest.fixture
def clock(now):
    return {"now": now}


@pytest.fixture
def client(seeded_db, session_factory, clock):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_booking_store] = lambda: SqlAlchemyBookingStore(session_factory)
    app.dependency_overrides[get_now] = lambda: clock["now"]
    yield TestClient(app)
    app.dependency_overrides.clear()


def _book(client, start_time, phone="312-555-0101"):
    return client.post("/api/appointments", json={
        "barber_id": 1,
        "service_id": 1,
        "start_time": start_time,
        "client_name": "Luis Garcia",
        "client_phone": phone,
    })


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


# ==================== Availability ====================


def test_slots_for_service(client):
    response = client.get("/api/barbers/1/slots", params={"date": "2026-10-19", "service_id": 1})

    assert response.status_code == 200
    data = response.json()
    assert data["duration_minutes"] == 30
    assert len(data["slots"]) == 27
    assert data["slots"][0]["time"] == "10:00"
    assert _parse(data["slots"][0]["start"]) == local(MONDAY, 10)


def test_slots_for_explicit_duration(client):
    response = client.get("/api/barbers/1/slots", params={"date": "2026-10-19", "duration_minutes": 60})

    assert response.status_code == 200
    assert response.json()["slots"][-1]["time"] == "16:00"


def test_slots_need_a_duration(client):
    assert client.get("/api/barbers/1/slots", params={"date": "2026-10-19"}).status_code == 422
    assert client.get("/api/barbers/1/slots", params={"date": "2026-10-19", "service_id": 99}).status_code == 404


def test_closed_day_has_no_slots(client):
    response = client.get("/api/barbers/1/slots", params={"date": "2026-10-25", "service_id": 1})

    assert response.status_code == 200
    assert response.json()["slots"] == []


def test_available_dates(client):
    response = client.get("/api/barbers/1/dates", params={"service_id": 1})

    assert response.status_code == 200
    dates = response.json()["dates"]
    assert dates[0] == "2026-10-19"
    assert "2026-10-24" not in dates
    assert "2026-10-25" not in dates


def test_book_first_slot_on_last_day_of_window(client, clock):
    clock["now"] = local(MONDAY, 12)

    slots = client.get("/api/barbers/1/slots", params={"date": "2026-11-18", "service_id": 1}).json()["slots"]
    assert [slot["time"] for slot in slots] == ["10:00", "10:15", "10:30", "10:45", "11:00"]

    response = _book(client, slots[0]["start"])

    assert response.status_code == 201
    assert _parse(response.json()["scheduled_start"]) == _parse(slots[0]["start"])


def test_validate_booking_rules(client):
    response = client.post("/api/booking-rules/validate", json={
        "start_time": "2026-10-21T00:37:00",
        "action": "create",
        "barber_id": 1,
    })

    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is False
    assert data["error"]["field"] == "start_time"
    assert "15-minute intervals" in data["error"]["message"]

    response = client.post("/api/booking-rules/validate", json={"start_time": "2026-10-20T10:00:00", "action": "create"})
    assert response.json() == {"valid": True, "error": None}


# ==================== Appointments ====================


def test_create_appointment(client):
    response = _book(client, "2026-10-19T14:00:00")

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "booked"
    assert _parse(data["scheduled_start"]) == local(MONDAY, 14)
    assert _parse(data["scheduled_end"]) == local(MONDAY, 14, 30)

    slots = client.get("/api/barbers/1/slots", params={"date": "2026-10-19", "service_id": 1}).json()["slots"]
    times = [slot["time"] for slot in slots]
    assert "14:00" not in times
    assert "13:30" in times and "14:30" in times


def test_create_appointment_taken_slot(client):
    assert _book(client, "2026-10-19T14:00:00").status_code == 201

    response = _book(client, "2026-10-19T14:15:00", phone="312-555-0102")

    assert response.status_code == 409


def test_create_appointment_breaks_rule(client):
    response = _book(client, "2026-10-19T09:00:00")

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["field"] == "start_time"
    assert detail["message"] == "Appointments must be booked at least 2 hour(s) in advance"
    assert detail["message_es"].startswith("Las citas deben reservarse")


def test_create_appointment_unknown_barber(client):
    response = client.post("/api/appointments", json={
        "barber_id": 42,
        "service_id": 1,
        "start_time": "2026-10-19T14:00:00",
        "client_name": "Luis Garcia",
        "client_phone": "312-555-0101",
    })

    assert response.status_code == 404


def test_cancel_appointment(client):
    appointment_id = _book(client, "2026-10-19T14:00:00").json()["id"]

    response = client.patch(f"/api/appointments/{appointment_id}", json={"action": "cancel", "reason": "Sick"})

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    again = client.patch(f"/api/appointments/{appointment_id}", json={"action": "cancel"})
    assert again.status_code == 400

    # the slot is free again
    assert _book(client, "2026-10-19T14:00:00", phone="312-555-0102").status_code == 201


def test_cancel_keeps_booking_notes(client):
    booked = client.post("/api/appointments", json={
        "barber_id": 1,
        "service_id": 1,
        "start_time": "2026-10-19T14:00:00",
        "client_name": "Luis Garcia",
        "client_phone": "312-555-0101",
        "notes": "Skin fade, keep the beard",
    }).json()
    assert booked["notes"] == "Skin fade, keep the beard"

    response = client.patch(f"/api/appointments/{booked['id']}", json={"action": "cancel", "reason": "Sick"})

    assert response.json()["notes"] == "Skin fade, keep the beard\nCancelled by client: Sick"


def test_cancel_too_late(client, clock):
    appointment_id = _book(client, "2026-10-19T10:30:00").json()["id"]
    clock["now"] = local(MONDAY, 9)

    response = client.patch(f"/api/appointments/{appointment_id}", json={"action": "cancel"})

    assert response.status_code == 400
    assert "Please call the shop." in response.json()["detail"]["message"]


def test_reschedule_appointment(client):
    appointment_id = _book(client, "2026-10-19T14:00:00").json()["id"]

    # overlaps its own current time, which must not block it
    response = client.patch(f"/api/appointments/{appointment_id}", json={
        "action": "reschedule",
        "new_start_time": "2026-10-19T14:15:00",
    })

    assert response.status_code == 200
    data = response.json()
    assert _parse(data["scheduled_start"]) == local(MONDAY, 14, 15)
    assert _parse(data["scheduled_end"]) == local(MONDAY, 14, 45)


def test_reschedule_appends_note(client):
    appointment_id = _book(client, "2026-10-19T14:00:00").json()["id"]
    client.patch(f"/api/appointments/{appointment_id}", json={
        "action": "reschedule",
        "new_start_time": "2026-10-19T15:00:00",
    })

    response = client.patch(f"/api/appointments/{appointment_id}", json={"action": "cancel"})

    assert response.json()["notes"] == "Rescheduled by client self-service\nCancelled by client self-service"


def test_reschedule_into_taken_slot(client):
    first = _book(client, "2026-10-19T14:00:00").json()["id"]
    assert _book(client, "2026-10-19T15:00:00", phone="312-555-0102").status_code == 201

    response = client.patch(f"/api/appointments/{first}", json={
        "action": "reschedule",
        "new_start_time": "2026-10-19T15:15:00",
    })

    assert response.status_code == 409


def test_reschedule_needs_new_time(client):
    appointment_id = _book(client, "2026-10-19T14:00:00").json()["id"]

    response = client.patch(f"/api/appointments/{appointment_id}", json={"action": "reschedule"})

    assert response.status_code == 422


class StaleAvailability:
    """Reports every requested time as free, like a read taken before a concurrent booking committed"""

    async def find_slot(self, barber_id, start, service_duration_minutes, now=None, exclude_appointment_id=None):
        start = start if start.tzinfo else start.replace(tzinfo=CHICAGO)
        return TimeSlot(start=start, end=start + timedelta(minutes=service_duration_minutes))


def test_double_booking_is_rejected_on_write(client, seeded_db):
    assert _book(client, "2026-10-19T14:00:00").status_code == 201
    app.dependency_overrides[get_availability_service] = StaleAvailability

    response = _book(client, "2026-10-19T14:15:00", phone="312-555-0102")

    assert response.status_code == 409
    assert seeded_db.query(Appointment).count() == 1


def test_reschedule_conflict_is_rejected_on_write(client):
    first = _book(client, "2026-10-19T14:00:00").json()["id"]
    assert _book(client, "2026-10-19T15:00:00", phone="312-555-0102").status_code == 201
    app.dependency_overrides[get_availability_service] = StaleAvailability

    response = client.patch(f"/api/appointments/{first}", json={
        "action": "reschedule",
        "new_start_time": "2026-10-19T15:15:00",
    })

    assert response.status_code == 409
    unchanged = client.patch(f"/api/appointments/{first}", json={"action": "cancel"}).json()
    assert _parse(unchanged["scheduled_start"]) == local(MONDAY, 14)


def test_unknown_appointment(client):
    assert client.patch("/api/appointments/999", json={"action": "cancel"}).status_code == 404


# ==================== Payouts ====================

@pytest.fixture
def completed(seeded_db):
    seeded_db.add(Appointment(
        barber_id=1,
        service_id=1,
        scheduled_start=to_utc(local(MONDAY, 10)),
        scheduled_end=to_utc(local(MONDAY, 10, 30)),
        status="completed",
        service_price=Decimal("30.00"),
        tip_amount=Decimal("10.00"),
    ))
    seeded_db.commit()


def _payout(client, amount, **extra):
    body = {
        "barber_id": 1,
        "start_date": "2026-10-19",
        "end_date": "2026-10-25",
        "actual_amount_paid": amount,
        "payment_method": "cash",
    }
    body.update(extra)
    return client.post("/api/payouts", json=body)


def test_calculate_payout(client, completed):
    response = client.get("/api/payouts/calculate", params={
        "barber_id": 1, "start_date": "2026-10-19", "end_date": "2026-10-25",
    })

    assert response.status_code == 200
    data = response.json()
    assert data["calculated_amount"] == 25.0
    assert data["breakdown"]["services"]["count"] == 1
    assert data["breakdown"]["tips"]["commission_amount"] == 10.0


def test_calculate_payout_errors(client):
    params = {"barber_id": 99, "start_date": "2026-10-19", "end_date": "2026-10-25"}
    assert client.get("/api/payouts/calculate", params=params).status_code == 404

    params = {"barber_id": 1, "start_date": "2026-10-25", "end_date": "2026-10-19"}
    assert client.get("/api/payouts/calculate", params=params).status_code == 400


def test_payout_without_shop_config(client, seeded_db):
    seeded_db.query(ShopConfig).delete()
    seeded_db.commit()

    params = {"barber_id": 1, "start_date": "2026-10-19", "end_date": "2026-10-25"}
    assert client.get("/api/payouts/calculate", params=params).status_code == 503
    assert _payout(client, 0).status_code == 503


def test_create_payout(client, completed):
    response = _payout(client, 25)

    assert response.status_code == 201
    data = response.json()
    assert data["calculated_amount"] == 25.0
    assert data["override_flag"] is False

    assert _payout(client, 0).status_code == 409


def test_create_payout_override(client, completed):
    assert _payout(client, 20).status_code == 400

    response = _payout(client, 20, override_note="Owes $5 for product")
    assert response.status_code == 201
    assert response.json()["difference"] == -5.0


def test_create_payout_unknown_barber(client):
    assert _payout(client, 0, barber_id=99).status_code == 404


def test_payout_summary(client, completed):
    response = client.get("/api/payouts/summary")

    assert response.status_code == 200
    [summary] = response.json()
    assert summary["barber_name"] == "Marco"
    assert summary["total_commission_due"] == 25.0
    assert summary["commission_rates"]["service_commission_rate"] == 0.5

    _payout(client, 25)
    [summary] = client.get("/api/payouts/summary").json()
    assert summary["total_commission_due"] == 0
    assert summary["total_paid"] == 25.0
