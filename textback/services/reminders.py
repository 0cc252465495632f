"""
Appointment reminders
Finds appointments inside each reminder window and texts the customer once per window
"""
import logging
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from textback.config import Settings
from textback.models import Appointment, ReminderWindow
from textback.services.record_store import RecordStore
from textback.services.sms_service import TwilioService

logger = logging.getLogger(__name__)

MATCH_HOUR_BAND = "hour_band"
MATCH_DAY = "day"

REMINDER_TEMPLATES = {
    "48h": "Hi {name}! Excited to see you {weekday} at {time} for your {service}! 😊",
    "24h": "Reminder: Your {service} is tomorrow at {time}. Reply CONFIRM or text if you need to reschedule.",
    "2h": "See you in 2 hours at {time} for your {service}! Reply if you have any questions.",
    "1h": "See you in 1 hour at {time} for your {service}! Reply if you have any questions.",
}
DEFAULT_TEMPLATE = (
    "Reminder: Your {service} is on {weekday} at {time}. "
    "Reply CONFIRM or text if you need to reschedule."
)


def target_dates(now: datetime, window: ReminderWindow, mode: str = MATCH_HOUR_BAND) -> list[str]:
    """
    Appointment dates (YYYY-MM-DD) a window should match at `now`.

    `day` matches the calendar day of now + hours_ahead. `hour_band` matches
    the days touched by the clock hour containing that instant.
    """
    target = now + timedelta(hours=window.hours_ahead)
    if mode == MATCH_DAY:
        return [target.date().isoformat()]
    if mode != MATCH_HOUR_BAND:
        raise ValueError(f"Unknown reminder match mode: {mode!r}")

    band_start = target.replace(minute=0, second=0, microsecond=0)
    band_end = band_start + timedelta(minutes=59, seconds=59)
    return sorted({band_start.date().isoformat(), band_end.date().isoformat()})


def weekday_name(date_str: str) -> str:
    try:
        return date.fromisoformat(date_str).strftime("%A")
    except ValueError:
        return date_str


def render_reminder(appointment: Appointment, window: ReminderWindow) -> str:
    template = REMINDER_TEMPLATES.get(window.label, DEFAULT_TEMPLATE)
    return template.format(
        name=appointment.customer_name or "there",
        service=appointment.service or "appointment",
        time=appointment.appointment_time,
        weekday=weekday_name(appointment.appointment_date),
    )


class ReminderService:
    """Runs the reminder sweep over every configured window"""

    def __init__(self, store: RecordStore, sms: TwilioService, settings: Settings):
        self.store = store
        self.sms = sms
        self.windows = settings.reminder_window_list()
        self.match_mode = settings.reminder_match_mode
        self.tz = ZoneInfo(settings.timezone)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def run(self, now: Optional[datetime] = None) -> dict:
        """Send every due reminder; returns the sweep summary"""
        now = now or self.now()
        logger.info("Checking for reminders to send")

        summary = {"success": True, "message": "Reminders checked"}
        for window in self.windows:
            summary[f"found{window.label}"] = self.send_window(window, now)
        summary["timestamp"] = now.isoformat()
        return summary

    def send_window(self, window: ReminderWindow, now: datetime) -> int:
        dates = target_dates(now, window, self.match_mode)
        appointments = self.store.find_due_appointments(window, dates)
        logger.info("Found %d appointments needing %s reminder (%s)", len(appointments), window.label, ", ".join(dates))

        for appointment in appointments:
            self._send_reminder(appointment, window)
            # Marked even when the send failed: a reminder is never retried
            self.store.mark_reminder_sent(appointment.id, window)
        return len(appointments)

    def _send_reminder(self, appointment: Appointment, window: ReminderWindow) -> Optional[dict]:
        if not appointment.customer_phone:
            logger.warning("Skipping %s - no phone number", appointment.id)
            return None

        from_number = None
        if appointment.business_id:
            business = self.store.get_business(appointment.business_id)
            if business:
                from_number = business.twilio_number or None

        result = self.sms.send_sms(
            appointment.customer_phone, render_reminder(appointment, window), from_number=from_number
        )
        if result.get("status") == "success":
            logger.info("Sent %s reminder for appointment %s", window.label, appointment.id)
        else:
            logger.error(
                "Failed to send %s reminder for appointment %s: %s",
                window.label, appointment.id, result.get("message"),
            )
        return result

    def debug(self, now: Optional[datetime] = None) -> dict:
        """What each window is looking for right now"""
        now = now or self.now()
        return {
            "currentTime": now.isoformat(),
            "timezone": str(self.tz),
            "matchMode": self.match_mode,
            "lookingFor": {
                window.label: {
                    "targetDateTime": (now + timedelta(hours=window.hours_ahead)).isoformat(),
                    "dates": target_dates(now, window, self.match_mode),
                    "sentField": window.sent_field,
                }
                for window in self.windows
            },
        }
