"""
Calendar sync
Copies upcoming events from connected calendars into the Appointments table
"""
import logging
import re
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from textback.config import Settings
from textback.models import AppointmentStatus, Business, CalendarEvent
from textback.models import fields
from textback.services.calendar_providers import CalendarProvider, CalendarProviderError
from textback.services.record_store import RecordStore

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"(\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")
ALL_DAY = "All day"


def extract_phone(text: str) -> str:
    """First phone-looking string in free text, or empty"""
    match = PHONE_PATTERN.search(text or "")
    return match.group(0).strip() if match else ""


def format_time(value: datetime) -> str:
    """12-hour clock, e.g. 3:05 PM"""
    return value.strftime("%I:%M %p").lstrip("0")


class CalendarSyncService:
    """Syncs every business that has a connected calendar with sync enabled"""

    def __init__(self, store: RecordStore, providers: dict[str, CalendarProvider], settings: Settings):
        self.store = store
        self.providers = providers
        self.tz = ZoneInfo(settings.timezone)
        self.window = timedelta(days=settings.sync_window_days)

    def run(self, now: Optional[datetime] = None) -> dict:
        now = now or datetime.now(self.tz)
        logger.info("Starting calendar sync")

        totals = {"businesses": 0, "events": 0, "created": 0, "updated": 0}
        for provider in self.providers.values():
            businesses = self.store.list_sync_businesses(provider.calendar_type)
            logger.info("Found %d %s businesses to sync", len(businesses), provider.display_name)

            for business in businesses:
                totals["businesses"] += 1
                try:
                    events, created, updated = self.sync_business(provider, business, now)
                except CalendarProviderError as e:
                    logger.error("Sync failed for business %s (%s): %s", business.id, business.name, e)
                    continue
                totals["events"] += events
                totals["created"] += created
                totals["updated"] += updated

        return {
            "success": True,
            "message": f"Synced {totals['businesses']} calendars",
            **totals,
            "timestamp": now.isoformat(),
        }

    def sync_business(self, provider: CalendarProvider, business: Business, now: datetime) -> tuple[int, int, int]:
        """Returns (events seen, appointments created, appointments updated)"""
        logger.info("Syncing %s", business.name)
        access_token = self.ensure_access_token(provider, business)
        events = provider.fetch_events(access_token, now, now + self.window)
        logger.info("Found %d events for %s", len(events), business.name)

        created = updated = 0
        for event in events:
            outcome = self.upsert_event(provider, business, event)
            if outcome == "created":
                created += 1
            elif outcome == "updated":
                updated += 1
        return len(events), created, updated

    def ensure_access_token(self, provider: CalendarProvider, business: Business) -> str:
        """Access token for the business, refreshed and stored first if expired"""
        tokens = business.credentials.get(provider.calendar_type)
        if tokens is None:
            raise CalendarProviderError(f"Business {business.id} has no {provider.display_name} credentials")
        if tokens.is_expired():
            logger.info("Token expired for %s, refreshing", business.id)
            tokens = provider.refresh(tokens)
            self.store.update_business(business.id, provider.token_fields(tokens))
            business.credentials[provider.calendar_type] = tokens
        return tokens.access_token

    def appointment_fields(self, provider: CalendarProvider, business: Business, event: CalendarEvent) -> dict:
        if event.all_day:
            start_date, start_time = event.start.date(), ALL_DAY
        else:
            local_start = event.start.astimezone(self.tz)
            start_date, start_time = local_start.date(), format_time(local_start)

        return {
            fields.APPOINTMENT_BUSINESS: [business.id],
            fields.CUSTOMER_NAME: event.attendee_name or event.title or "Unknown",
            fields.CUSTOMER_EMAIL: event.attendee_email,
            fields.CUSTOMER_PHONE: extract_phone(event.description),
            fields.APPOINTMENT_DATE: start_date.isoformat(),
            fields.APPOINTMENT_TIME: start_time,
            fields.SERVICE_TITLE: event.title or "Meeting",
            provider.event_id_field: event.id,
        }

    def upsert_event(self, provider: CalendarProvider, business: Business, event: CalendarEvent) -> Optional[str]:
        """Create or update the appointment for an event, keyed by event id"""
        appointment_fields = self.appointment_fields(provider, business, event)
        existing = self.store.find_appointment_by_event_id(provider.calendar_type, event.id)

        if existing:
            # Keep the customer's status and reminder flags, and any phone entered by hand
            if not appointment_fields[fields.CUSTOMER_PHONE]:
                del appointment_fields[fields.CUSTOMER_PHONE]
            if self.store.update_appointment(existing.id, appointment_fields) is None:
                return None
            logger.info("Updated appointment %s: %s", existing.id, event.title)
            return "updated"

        appointment_fields[fields.STATUS] = AppointmentStatus.SCHEDULED.value
        if self.store.create_appointment(appointment_fields) is None:
            return None
        logger.info("Created appointment: %s", event.title)
        return "created"
