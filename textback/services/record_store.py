"""
Airtable record store
Reads and patches Business and Appointment rows through the Airtable REST API
"""
import logging
from datetime import date
from typing import Iterable, Optional
from urllib.parse import quote as url_quote

import requests

from textback.config import Settings
from textback.models import Appointment, AppointmentStatus, Business, CalendarType, ReminderWindow
from textback.models import fields

logger = logging.getLogger(__name__)

AIRTABLE_API_URL = "https://api.airtable.com/v0"


def quote(value: str) -> str:
    """Quote a value as an Airtable formula string literal"""
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def field_equals(field: str, value: str) -> str:
    return f"{{{field}}} = {quote(value)}"


def due_appointments_formula(window: ReminderWindow, dates: Iterable[str]) -> str:
    date_terms = ", ".join(field_equals(fields.APPOINTMENT_DATE, d) for d in dates)
    return (
        f"AND(OR({date_terms}), "
        f"{field_equals(fields.STATUS, AppointmentStatus.SCHEDULED.value)}, "
        f"{{{window.sent_field}}} = FALSE(), "
        f"NOT({field_equals(fields.CUSTOMER_PHONE, '')}))"
    )


def upcoming_appointment_formula(phone: str, today: date) -> str:
    return (
        f"AND({field_equals(fields.CUSTOMER_PHONE, phone)}, "
        f"OR({field_equals(fields.STATUS, AppointmentStatus.SCHEDULED.value)}, "
        f"{field_equals(fields.STATUS, AppointmentStatus.CONFIRMED.value)}), "
        f"NOT(IS_BEFORE({{{fields.APPOINTMENT_DATE}}}, {quote(today.isoformat())})))"
    )


def sync_businesses_formula(calendar_type: CalendarType) -> str:
    return (
        f"AND({field_equals(fields.CALENDAR_TYPE, calendar_type.value)}, "
        f"{{{fields.CALENDAR_SYNC_ENABLED}}} = TRUE())"
    )


class AirtableClient:
    """Thin client over the Airtable REST API"""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.base_id = settings.airtable_base_id
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {settings.airtable_api_key}"})

    def _url(self, table: str, record_id: Optional[str] = None) -> str:
        url = f"{AIRTABLE_API_URL}/{self.base_id}/{url_quote(table, safe='')}"
        if record_id:
            url = f"{url}/{record_id}"
        return url

    def list_records(
        self,
        table: str,
        formula: Optional[str] = None,
        sort: Optional[list[tuple[str, str]]] = None,
        max_records: Optional[int] = None,
    ) -> list[dict]:
        """
        List records matching a formula, following pagination.

        Returns an empty list when the request fails.
        """
        params = []
        if formula:
            params.append(("filterByFormula", formula))
        for i, (field, direction) in enumerate(sort or []):
            params.append((f"sort[{i}][field]", field))
            params.append((f"sort[{i}][direction]", direction))
        if max_records:
            params.append(("maxRecords", str(max_records)))

        records = []
        offset = None
        try:
            while True:
                page_params = params + ([("offset", offset)] if offset else [])
                response = self.session.get(self._url(table), params=page_params)
                response.raise_for_status()
                data = response.json()
                records.extend(data.get("records", []))
                offset = data.get("offset")
                if not offset:
                    break
        except requests.RequestException as e:
            logger.error("Airtable list on %s failed: %s", table, e)
            return []
        return records

    def get_record(self, table: str, record_id: str) -> Optional[dict]:
        try:
            response = self.session.get(self._url(table, record_id))
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error("Airtable get %s/%s failed: %s", table, record_id, e)
            return None

    def create_record(self, table: str, record_fields: dict) -> Optional[dict]:
        try:
            response = self.session.post(self._url(table), json={"fields": record_fields})
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error("Airtable create on %s failed: %s", table, e)
            return None

    def update_record(self, table: str, record_id: str, record_fields: dict) -> Optional[dict]:
        """PATCH only the given fields"""
        try:
            response = self.session.patch(self._url(table, record_id), json={"fields": record_fields})
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error("Airtable update %s/%s failed: %s", table, record_id, e)
            return None


class RecordStore:
    """Business and appointment queries on top of the Airtable client"""

    def __init__(self, client: AirtableClient, settings: Settings):
        self.client = client
        self.businesses_table = settings.airtable_table_name
        self.appointments_table = settings.airtable_appointments_table

    # Businesses

    def find_business_by_twilio_number(self, twilio_number: str) -> Optional[Business]:
        records = self.client.list_records(
            self.businesses_table,
            formula=field_equals(fields.TWILIO_NUMBER, twilio_number),
            max_records=1,
        )
        return Business.from_record(records[0]) if records else None

    def get_business(self, business_id: str) -> Optional[Business]:
        record = self.client.get_record(self.businesses_table, business_id)
        return Business.from_record(record) if record else None

    def list_sync_businesses(self, calendar_type: CalendarType) -> list[Business]:
        records = self.client.list_records(
            self.businesses_table, formula=sync_businesses_formula(calendar_type)
        )
        return [Business.from_record(r) for r in records]

    def update_business(self, business_id: str, business_fields: dict) -> Optional[dict]:
        return self.client.update_record(self.businesses_table, business_id, business_fields)

    # Appointments

    def find_due_appointments(self, window: ReminderWindow, dates: Iterable[str]) -> list[Appointment]:
        records = self.client.list_records(
            self.appointments_table, formula=due_appointments_formula(window, dates)
        )
        return [Appointment.from_record(r) for r in records]

    def find_upcoming_appointment(self, phone: str, today: date) -> Optional[Appointment]:
        """Soonest Scheduled or Confirmed appointment for a customer phone"""
        records = self.client.list_records(
            self.appointments_table,
            formula=upcoming_appointment_formula(phone, today),
            sort=[(fields.APPOINTMENT_DATE, "asc")],
            max_records=1,
        )
        return Appointment.from_record(records[0]) if records else None

    def find_appointment_by_event_id(self, calendar_type: CalendarType, event_id: str) -> Optional[Appointment]:
        records = self.client.list_records(
            self.appointments_table,
            formula=field_equals(fields.EVENT_ID_FIELDS[calendar_type], event_id),
            max_records=1,
        )
        return Appointment.from_record(records[0]) if records else None

    def create_appointment(self, appointment_fields: dict) -> Optional[dict]:
        return self.client.create_record(self.appointments_table, appointment_fields)

    def update_appointment(self, appointment_id: str, appointment_fields: dict) -> Optional[dict]:
        return self.client.update_record(self.appointments_table, appointment_id, appointment_fields)

    def mark_reminder_sent(self, appointment_id: str, window: ReminderWindow) -> Optional[dict]:
        return self.update_appointment(appointment_id, {window.sent_field: True})

    def update_appointment_status(
        self, appointment_id: str, status: AppointmentStatus, response: str
    ) -> Optional[dict]:
        return self.update_appointment(
            appointment_id, {fields.STATUS: status.value, fields.CUSTOMER_RESPONSE: response}
        )

    def save_customer_response(self, appointment_id: str, response: str) -> Optional[dict]:
        return self.update_appointment(appointment_id, {fields.CUSTOMER_RESPONSE: response})
