"""
Tests for the clinic booking backend client, using httpx.MockTransport in place
of the real backend.
"""

import json
from datetime import datetime

import httpx
import pytest

from clinic_agent.services.clinic_client import ClinicService, ClinicServiceError

BASE_URL = "https://clinic.test/api"
GUID = "guid-1"

SLOT_0900 = {
    "appointmentDate": "2024-05-21",
    "startTime": "09:00",
    "endTime": "09:30",
    "place": {"id": 5},
    "weeklyTimeSlot": {"id": 11},
}


class FakeBackend:
    """Routes requests to canned responses and records what was sent."""

    def __init__(self, slots=None, patient=None, fail=None):
        self.slots = [SLOT_0900] if slots is None else slots
        self.patient = {"id": 42, "name": "Jane Doe"} if patient is None else patient
        self.fail = fail
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail is not None:
            return self.fail(request)

        path = request.url.path
        if path == "/api/Categories/getAllByPublicGuid":
            return httpx.Response(
                200, json=[{"id": 1, "name": "Cardiology", "active": True}, {"id": 2, "name": "Dermatology"}]
            )
        if path.startswith("/api/AppointmentsSliderPublicForAgent/getAvailableSlotsForAgent/"):
            return httpx.Response(200, json=self.slots)
        if path == "/api/citizenpersons":
            return httpx.Response(200, json=self.patient)
        if path == "/api/appointmentsslider":
            return httpx.Response(200, json={"id": 7, "status": "booked"})
        return httpx.Response(404, text="not found")

    def sent(self, path):
        return [r for r in self.requests if r.url.path == path]


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def make_service():
    clients = []

    def _make(backend):
        client = httpx.AsyncClient(transport=httpx.MockTransport(backend))
        clients.append(client)
        return ClinicService(base_url=BASE_URL + "/", public_guid=GUID, http_client=client)

    return _make


@pytest.mark.asyncio
async def test_get_categories(backend, make_service):
    service = make_service(backend)
    result = await service.get_categories()

    assert result["categories"] == [
        {"id": 1, "name": "Cardiology"},
        {"id": 2, "name": "Dermatology"},
    ]
    assert result["summary"] == "Found 2 available departments: Cardiology, Dermatology"
    assert backend.requests[0].url.params["guid"] == GUID


@pytest.mark.asyncio
async def test_get_available_slots_path(backend, make_service):
    service = make_service(backend)
    slots = await service.get_available_slots(3.0, "2024-05-20", "2024-05-24")

    assert slots == [SLOT_0900]
    assert backend.requests[0].url.path == (
        "/api/AppointmentsSliderPublicForAgent/getAvailableSlotsForAgent/"
        "guid-1/3/2024-05-20/2024-05-24"
    )


@pytest.mark.asyncio
async def test_create_booking_body(backend, make_service):
    service = make_service(backend)
    patient = {"id": 42, "name": "Jane Doe"}
    await service.create_booking(SLOT_0900, patient, created_at=datetime(2024, 5, 20, 14, 5))

    body = json.loads(backend.sent("/api/appointmentsslider")[0].content)
    assert body == {
        "appointmentdatestring": "2024-05-21",
        "place": {"id": 5},
        "weeklytimeslot": {"id": 11},
        "citizenperson": patient,
        "createddatestring": "2024.05.20 14:05",
        "appointmentstatusId": 1,
        "startTime": "09:00",
        "endTime": "09:30",
    }


@pytest.mark.asyncio
async def test_book_appointment_success(backend, make_service):
    service = make_service(backend)
    result = await service.book_appointment(
        1, "Jane Doe", "1234567890123", "0712345678", "2024-05-21", "09:00"
    )

    assert result["success"] is True
    assert result["message"] == "Appointment confirmed for Jane Doe on 2024-05-21 at 09:00."
    assert result["details"] == {"id": 7, "status": "booked"}

    patient_body = json.loads(backend.sent("/api/citizenpersons")[0].content)
    assert patient_body == {
        "name": "Jane Doe",
        "email": "",
        "phone": "0712345678",
        "address": "",
        "personalIdentificationNumber": "1234567890123",
    }
    slot_request = [r for r in backend.requests if "getAvailableSlotsForAgent" in r.url.path][0]
    assert slot_request.url.path.endswith("/1/2024-05-21/2024-05-21")


@pytest.mark.asyncio
async def test_book_appointment_slot_taken(make_service):
    backend = FakeBackend(slots=[dict(SLOT_0900, startTime="10:00")])
    service = make_service(backend)

    with pytest.raises(ClinicServiceError) as exc_info:
        await service.book_appointment(
            1, "Jane Doe", "1234567890123", "0712345678", "2024-05-21", "09:00"
        )

    assert "09:00" in str(exc_info.value)
    assert "no longer available" in str(exc_info.value)
    assert backend.sent("/api/appointmentsslider") == []


@pytest.mark.asyncio
async def test_book_appointment_patient_without_id(make_service):
    backend = FakeBackend(patient={"name": "Jane Doe"})
    service = make_service(backend)

    with pytest.raises(ClinicServiceError, match="Could not register"):
        await service.book_appointment(1, "Jane Doe", "1", "", "2024-05-21", "09:00")


@pytest.mark.asyncio
async def test_non_success_status_raises(make_service):
    backend = FakeBackend(fail=lambda request: httpx.Response(500, text="boom"))
    service = make_service(backend)

    with pytest.raises(ClinicServiceError) as exc_info:
        await service.get_categories()

    assert exc_info.value.status_code == 500
    assert str(exc_info.value) == "API error: 500 - boom"


@pytest.mark.asyncio
async def test_network_error_raises(make_service):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    service = make_service(FakeBackend(fail=refuse))

    with pytest.raises(ClinicServiceError, match="Network error"):
        await service.get_categories()


@pytest.mark.asyncio
async def test_invalid_json_raises(make_service):
    backend = FakeBackend(fail=lambda request: httpx.Response(200, text="<html>"))
    service = make_service(backend)

    with pytest.raises(ClinicServiceError, match="Invalid JSON"):
        await service.get_categories()


@pytest.mark.asyncio
async def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("CLINIC_API_BASE_URL", "https://env.test/api/")
    monkeypatch.setenv("CLINIC_PUBLIC_GUID", "env-guid")
    service = ClinicService()
    try:
        assert service.base_url == "https://env.test/api"
        assert service.public_guid == "env-guid"
    finally:
        await service.aclose()
    assert service.http_client.is_closed


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_date", ["2024/05/21", "2024-13-01", "21.05.2024", "2024-05-21/../x"])
async def test_invalid_slot_date_rejected_before_request(backend, make_service, bad_date):
    service = make_service(backend)

    with pytest.raises(ClinicServiceError, match="expected YYYY-MM-DD"):
        await service.get_available_slots(1, bad_date, "2024-05-24")

    assert backend.requests == []


@pytest.mark.asyncio
async def test_category_id_escaped_in_path(backend, make_service):
    service = make_service(backend)
    await service.get_available_slots("1/../x", "2024-05-20", "2024-05-24")

    assert b"/guid-1/1%2F..%2Fx/2024-05-20/2024-05-24" in backend.requests[0].url.raw_path


@pytest.mark.asyncio
async def test_book_appointment_bad_date_registers_nobody(backend, make_service):
    service = make_service(backend)

    with pytest.raises(ClinicServiceError, match="Invalid date"):
        await service.book_appointment(1, "Jane Doe", "1", "", "21/05/2024", "09:00")

    assert backend.requests == []
