"""
Pytest configuration and fixtures
"""
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

import pytest
from fastapi.testclient import TestClient

from textback.api.dependencies import get_calendar_providers, get_record_store, get_sms_service
from textback.config import Settings, get_settings
from textback.main import app
from textback.models import (
    Appointment,
    AppointmentStatus,
    Business,
    CalendarEvent,
    CalendarType,
    ReminderWindow,
    TokenSet,
)
from textback.models import fields
from textback.services.calendar_providers import CalendarProvider, CalendarProviderError, OAuthError
from textback.services.record_store import RecordStore


class InMemoryRecordStore(RecordStore):
    """Record store holding Airtable-shaped records in dicts"""

    def __init__(self, settings: Settings):
        super().__init__(client=None, settings=settings)
        self.businesses: dict[str, dict] = {}
        self.appointments: dict[str, dict] = {}
        self.writes: list[tuple[str, dict]] = []
        self._next_id = 1

    def _new_id(self, prefix: str) -> str:
        record_id = f"{prefix}{self._next_id:04d}"
        self._next_id += 1
        return record_id

    def add_business(self, **record_fields) -> str:
        business_id = self._new_id("rec_biz")
        self.businesses[business_id] = {"id": business_id, "fields": record_fields}
        return business_id

    def add_appointment(self, **record_fields) -> str:
        appointment_id = self._new_id("rec_apt")
        self.appointments[appointment_id] = {"id": appointment_id, "fields": record_fields}
        return appointment_id

    def appointment_fields(self, appointment_id: str) -> dict:
        return self.appointments[appointment_id]["fields"]

    def find_business_by_twilio_number(self, twilio_number: str) -> Optional[Business]:
        for record in self.businesses.values():
            if record["fields"].get(fields.TWILIO_NUMBER) == twilio_number:
                return Business.from_record(record)
        return None

    def get_business(self, business_id: str) -> Optional[Business]:
        record = self.businesses.get(business_id)
        return Business.from_record(record) if record else None

    def list_sync_businesses(self, calendar_type: CalendarType) -> list[Business]:
        return [
            Business.from_record(r)
            for r in self.businesses.values()
            if r["fields"].get(fields.CALENDAR_TYPE) == calendar_type.value
            and r["fields"].get(fields.CALENDAR_SYNC_ENABLED)
        ]

    def update_business(self, business_id: str, business_fields: dict) -> Optional[dict]:
        record = self.businesses.get(business_id)
        if record is None:
            return None
        record["fields"].update(business_fields)
        self.writes.append((business_id, business_fields))
        return record

    def find_due_appointments(self, window: ReminderWindow, dates: Iterable[str]) -> list[Appointment]:
        dates = set(dates)
        return [
            Appointment.from_record(r)
            for r in self.appointments.values()
            if r["fields"].get(fields.APPOINTMENT_DATE) in dates
            and r["fields"].get(fields.STATUS) == AppointmentStatus.SCHEDULED.value
            and not r["fields"].get(window.sent_field)
            and r["fields"].get(fields.CUSTOMER_PHONE)
        ]

    def find_upcoming_appointment(self, phone: str, today: date) -> Optional[Appointment]:
        matches = [
            r
            for r in self.appointments.values()
            if r["fields"].get(fields.CUSTOMER_PHONE) == phone
            and r["fields"].get(fields.STATUS) in (AppointmentStatus.SCHEDULED.value, AppointmentStatus.CONFIRMED.value)
            and r["fields"].get(fields.APPOINTMENT_DATE, "") >= today.isoformat()
        ]
        matches.sort(key=lambda r: r["fields"].get(fields.APPOINTMENT_DATE, ""))
        return Appointment.from_record(matches[0]) if matches else None

    def find_appointment_by_event_id(self, calendar_type: CalendarType, event_id: str) -> Optional[Appointment]:
        field = fields.EVENT_ID_FIELDS[calendar_type]
        for record in self.appointments.values():
            if record["fields"].get(field) == event_id:
                return Appointment.from_record(record)
        return None

    def create_appointment(self, appointment_fields: dict) -> Optional[dict]:
        appointment_id = self.add_appointment(**appointment_fields)
        self.writes.append((appointment_id, appointment_fields))
        return self.appointments[appointment_id]

    def update_appointment(self, appointment_id: str, appointment_fields: dict) -> Optional[dict]:
        record = self.appointments.get(appointment_id)
        if record is None:
            return None
        record["fields"].update(appointment_fields)
        self.writes.append((appointment_id, appointment_fields))
        return record


class RecordingSMS:
    """Stands in for TwilioService and keeps every message"""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    def send_sms(self, to_number: str, message: str, from_number: Optional[str] = None) -> dict:
        self.sent.append({"to": to_number, "message": message, "from": from_number})
        if self.fail:
            return {"status": "error", "message": "Error sending SMS: simulated"}
        return {"status": "success", "to": to_number, "message": message, "sid": f"SM{len(self.sent)}"}

    def messages_to(self, number: str) -> list[str]:
        return [m["message"] for m in self.sent if m["to"] == number]


class FakeCalendarProvider(CalendarProvider):
    """Calendar provider serving canned events"""

    slug = "microsoft"
    calendar_type = CalendarType.MICROSOFT
    display_name = "Microsoft 365"
    authorize_endpoint = "https://login.example.com/authorize"

    def __init__(self, events: Optional[list[CalendarEvent]] = None):
        super().__init__("client-id", "client-secret", "https://example.com/callback")
        self.events = events or []
        self.refreshed = 0
        self.fetch_tokens: list[str] = []
        self.fail_fetch = False

    def exchange_code(self, code: str) -> TokenSet:
        if code == "expired-code":
            raise OAuthError("invalid_grant", "The code has expired.")
        return TokenSet(
            access_token="new-access",
            refresh_token="new-refresh",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )

    def refresh(self, tokens):
        self.refreshed += 1
        return tokens.model_copy(
            update={
                "access_token": f"refreshed-{self.refreshed}",
                "expires_at": datetime.now(timezone.utc) + timedelta(hours=1),
            }
        )

    def fetch_user_email(self, access_token: str) -> str:
        return "owner@example.com"

    def fetch_events(self, access_token, start, end):
        if self.fail_fetch:
            raise CalendarProviderError("calendar unavailable")
        self.fetch_tokens.append(access_token)
        return list(self.events)


@pytest.fixture
def settings():
    """Test settings, never read from the environment file"""
    return Settings(
        _env_file=None,
        airtable_api_key="key_test",
        airtable_base_id="app_test",
        twilio_phone_number="+15550000000",
        timezone="UTC",
        reminder_windows="24h:24,1h:1",
        reminder_match_mode="hour_band",
    )


@pytest.fixture
def store(settings):
    return InMemoryRecordStore(settings)


@pytest.fixture
def sms():
    return RecordingSMS()


@pytest.fixture
def calendar_provider():
    return FakeCalendarProvider()


@pytest.fixture
def business_id(store):
    """A business with an owner phone and Twilio number"""
    return store.add_business(**{
        fields.BUSINESS_NAME: "Bright Smiles Dental",
        fields.OWNER_PHONE: "+15551110000",
        fields.TWILIO_NUMBER: "+15552220000",
        fields.BOOKING_LINK: "https://book.example.com/bright",
    })


@pytest.fixture
def client(settings, store, sms, calendar_provider):
    """Test client with in-memory collaborators"""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_record_store] = lambda: store
    app.dependency_overrides[get_sms_service] = lambda: sms
    app.dependency_overrides[get_calendar_providers] = lambda: {calendar_provider.slug: calendar_provider}
    yield TestClient(app)
    app.dependency_overrides.clear()
