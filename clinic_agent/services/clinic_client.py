"""
HTTP client for the clinic appointments backend.

The backend exposes categories (departments), free slots per category and date
window, patient ("citizen person") registration and appointment creation. Every
endpoint is keyed by the clinic's public GUID and returns JSON. Non-2xx
responses and network failures are raised as ClinicServiceError carrying the
response body, so callers can turn them into something the caller can hear.
"""

import logging
import os
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import httpx

from clinic_agent.config.constants import (
    APPOINTMENT_STATUS_BOOKED,
    DEFAULT_CLINIC_API_BASE_URL,
    DEFAULT_CLINIC_API_TIMEOUT,
    DEFAULT_CLINIC_PUBLIC_GUID,
    LOGGER_NAME,
)

logger = logging.getLogger(LOGGER_NAME)

CREATED_DATE_FORMAT = "%Y.%m.%d %H:%M"
SLOT_DATE_FORMAT = "%Y-%m-%d"

_SLOT_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")


class ClinicServiceError(Exception):
    """Raised when the booking backend fails or rejects a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _path_id(value: Union[int, float, str]) -> str:
    """Render an identifier for a URL path, e.g. 3.0 -> "3"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return quote(str(value), safe="")


def _path_date(value: Any) -> str:
    """Check a model-supplied date is YYYY-MM-DD before it goes into a URL path."""
    text = str(value).strip()
    if not _SLOT_DATE_PATTERN.fullmatch(text):
        raise ClinicServiceError(f"Invalid date '{value}', expected YYYY-MM-DD.")
    try:
        datetime.strptime(text, SLOT_DATE_FORMAT)
    except ValueError as e:
        raise ClinicServiceError(f"Invalid date '{value}', expected YYYY-MM-DD.") from e
    return text


class ClinicService:
    """
    Async client for the clinic booking backend.

    One instance (and its connection pool) is shared by all calls; httpx's
    AsyncClient is safe for concurrent requests.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        public_guid: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (
            base_url or os.getenv("CLINIC_API_BASE_URL", DEFAULT_CLINIC_API_BASE_URL)
        ).rstrip("/")
        self.public_guid = public_guid or os.getenv(
            "CLINIC_PUBLIC_GUID", DEFAULT_CLINIC_PUBLIC_GUID
        )
        if timeout is None:
            timeout = float(os.getenv("CLINIC_API_TIMEOUT", DEFAULT_CLINIC_API_TIMEOUT))
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}/{path}"
        logger.debug(f"Clinic API {method} {url}")
        try:
            response = await self.http_client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Clinic API request failed: {method} {url}: {e}")
            raise ClinicServiceError(f"Network error contacting clinic API: {e}") from e

        if not response.is_success:
            logger.error(f"Clinic API error: {response.status_code} - {response.text}")
            raise ClinicServiceError(
                f"API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ClinicServiceError(f"Invalid JSON from clinic API: {e}") from e

    async def get_categories(self) -> Dict[str, Any]:
        """
        Fetch the clinic's departments.

        Returns:
            dict: ``categories`` as id/name pairs plus a one-line ``summary``
        """
        data = await self._request(
            "GET", "Categories/getAllByPublicGuid", params={"guid": self.public_guid}
        )
        categories = [{"id": cat["id"], "name": cat["name"]} for cat in data]
        logger.info(f"Fetched {len(categories)} categories")
        names = ", ".join(cat["name"] for cat in categories)
        return {
            "categories": categories,
            "summary": f"Found {len(categories)} available departments: {names}",
        }

    async def get_available_slots(
        self, category_id: Union[int, float, str], start_date: str, end_date: str
    ) -> List[Dict[str, Any]]:
        """Fetch free slots for a category between two YYYY-MM-DD dates (inclusive)."""
        start_date = _path_date(start_date)
        end_date = _path_date(end_date)
        path = (
            "AppointmentsSliderPublicForAgent/getAvailableSlotsForAgent/"
            f"{self.public_guid}/{_path_id(category_id)}/{start_date}/{end_date}"
        )
        slots = await self._request("GET", path)
        logger.info(
            f"Fetched {len(slots)} slots for category {_path_id(category_id)} "
            f"from {start_date} to {end_date}"
        )
        return slots

    async def create_patient(self, name: str, personal_id: str, phone: str = "") -> Dict[str, Any]:
        """Register a patient record and return it (including its ``id``)."""
        body = {
            "name": name,
            "email": "",
            "phone": phone or "",
            "address": "",
            "personalIdentificationNumber": personal_id,
        }
        patient = await self._request(
            "POST", "citizenpersons", params={"guid": self.public_guid}, json=body
        )
        logger.info(f"Created patient record with id: {patient.get('id') if isinstance(patient, dict) else None}")
        return patient

    async def create_booking(
        self,
        slot: Dict[str, Any],
        patient: Dict[str, Any],
        created_at: Optional[datetime] = None,
    ) -> Any:
        """Submit an appointment for a full slot descriptor and a patient record."""
        created_at = created_at or datetime.now()
        body = {
            "appointmentdatestring": slot.get("appointmentDate"),
            "place": slot.get("place"),
            "weeklytimeslot": slot.get("weeklyTimeSlot"),
            "citizenperson": patient,
            "createddatestring": created_at.strftime(CREATED_DATE_FORMAT),
            "appointmentstatusId": APPOINTMENT_STATUS_BOOKED,
            "startTime": slot.get("startTime"),
            "endTime": slot.get("endTime"),
        }
        record = await self._request(
            "POST", "appointmentsslider", params={"guid": self.public_guid}, json=body
        )
        logger.info(f"Appointment booked at {slot.get('startTime')}")
        return record

    async def book_appointment(
        self,
        category_id: Union[int, float, str],
        patient_name: str,
        personal_id: str,
        phone: str,
        appointment_date: str,
        start_time: str,
    ) -> Dict[str, Any]:
        """
        Book an appointment for a new patient record.

        The slot list is fetched again for the requested day because slots can be
        taken between the time they were offered and the caller confirming.

        Raises:
            ClinicServiceError: If registration fails, the slot is gone, or the
                backend rejects the booking
        """
        appointment_date = _path_date(appointment_date)
        patient = await self.create_patient(patient_name, personal_id, phone)
        if not isinstance(patient, dict) or not patient.get("id"):
            raise ClinicServiceError("Could not register the patient's details.")

        slots = await self.get_available_slots(category_id, appointment_date, appointment_date)
        slot = next((s for s in slots if s.get("startTime") == start_time), None)
        if slot is None:
            logger.warning(
                f"Requested slot no longer available: {appointment_date} {start_time}"
            )
            raise ClinicServiceError(
                f"The {start_time} time slot is no longer available. "
                "Please choose another time."
            )

        record = await self.create_booking(slot, patient)
        return {
            "success": True,
            "message": (
                f"Appointment confirmed for {patient_name} on "
                f"{appointment_date} at {start_time}."
            ),
            "details": record,
        }

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this service created it."""
        if self._owns_client:
            await self.http_client.aclose()
