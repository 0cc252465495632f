"""
Inbound SMS replies
Keyword handling for appointment replies and plain forwarding to the business owner
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

from textback.config import Settings
from textback.models import Appointment, AppointmentStatus, Business
from textback.services.record_store import RecordStore
from textback.services.sms_service import TwilioService

logger = logging.getLogger(__name__)

CONFIRM_KEYWORDS = {"CONFIRM", "YES", "CONFIRMED"}
CANCEL_KEYWORD = "CANCEL"

NOT_FOUND_REPLY = "We couldn't find your upcoming appointment. Please call us directly if you need help."
CONFIRMED_REPLY = "Perfect! Your {service} appointment is confirmed for {date} at {time}. See you then! 🎉"
CANCELLED_REPLY = (
    "No problem! Your appointment has been cancelled. Want to reschedule? "
    "Call us or reply with your preferred time and we'll help you book a new slot."
)
MESSAGE_REPLY = "Thanks for your message! We'll get back to you shortly about your appointment."
FORWARD_REPLY = "Thanks for your message! {business} will respond soon."

OWNER_CONFIRMED = "✅ {name} CONFIRMED their appointment on {date} at {time}"
OWNER_CANCELLED = (
    "❌ {name} CANCELLED their appointment on {date} at {time}. "
    "The slot is free - you can now fill it!"
)
OWNER_APPOINTMENT_MESSAGE = (
    "[APPOINTMENT MESSAGE] {name}\n\n"
    "From: {phone}\n"
    "Re: {service} on {date}\n\n"
    "Message: {message}\n\n"
    "Reply to this thread to respond."
)
OWNER_CUSTOMER_MESSAGE = (
    "[CUSTOMER MESSAGE] {business}\n\n"
    "From: {phone}\n\n"
    "Message: {message}\n\n"
    "Reply to this thread to respond to the customer."
)


class ReplyIntent(str, Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"
    MESSAGE = "message"


def classify_reply(body: str) -> ReplyIntent:
    normalized = (body or "").strip().upper()
    if normalized in CONFIRM_KEYWORDS:
        return ReplyIntent.CONFIRM
    if CANCEL_KEYWORD in normalized:
        return ReplyIntent.CANCEL
    return ReplyIntent.MESSAGE


class ReplyService:
    """Handles texts sent to a business number"""

    def __init__(self, store: RecordStore, sms: TwilioService, settings: Settings):
        self.store = store
        self.sms = sms
        self.tz = ZoneInfo(settings.timezone)

    def handle_appointment_reply(self, from_number: str, to_number: str, body: str) -> str:
        """
        Apply a customer's reply to their next appointment.

        Returns the text to send back to the customer.
        """
        body = (body or "").strip()
        logger.info("Appointment reply from %s: %s", from_number, body)

        appointment = self.store.find_upcoming_appointment(from_number, datetime.now(self.tz).date())
        if not appointment:
            logger.info("No appointment found for %s", from_number)
            return NOT_FOUND_REPLY

        intent = classify_reply(body)
        business = self._business_for(appointment, to_number)

        if intent == ReplyIntent.CONFIRM:
            self.store.update_appointment_status(appointment.id, AppointmentStatus.CONFIRMED, body)
            self._notify_owner(business, to_number, OWNER_CONFIRMED.format(**self._context(appointment)))
            return CONFIRMED_REPLY.format(**self._context(appointment))

        if intent == ReplyIntent.CANCEL:
            self.store.update_appointment_status(appointment.id, AppointmentStatus.CANCELLED, body)
            self._notify_owner(business, to_number, OWNER_CANCELLED.format(**self._context(appointment)))
            return CANCELLED_REPLY

        self.store.save_customer_response(appointment.id, body)
        self._notify_owner(
            business,
            to_number,
            OWNER_APPOINTMENT_MESSAGE.format(phone=from_number, message=body, **self._context(appointment)),
        )
        return MESSAGE_REPLY

    def handle_forwarded_message(self, from_number: str, to_number: str, body: str) -> Optional[str]:
        """
        Forward a free-form text to the owner of the business that was texted.

        Returns None when no business owns the number.
        """
        logger.info("SMS from %s to %s: %s", from_number, to_number, body)
        business = self.store.find_business_by_twilio_number(to_number)
        if not business:
            logger.error("No business found for number %s", to_number)
            return None

        self._notify_owner(
            business,
            to_number,
            OWNER_CUSTOMER_MESSAGE.format(business=business.name, phone=from_number, message=body),
        )
        return FORWARD_REPLY.format(business=business.name)

    def _business_for(self, appointment: Appointment, to_number: str) -> Optional[Business]:
        if appointment.business_id:
            business = self.store.get_business(appointment.business_id)
            if business:
                return business
        return self.store.find_business_by_twilio_number(to_number)

    def _notify_owner(self, business: Optional[Business], to_number: str, message: str) -> None:
        if not business or not business.owner_phone:
            logger.warning("No owner phone to notify for %s", to_number)
            return
        result = self.sms.send_sms(business.owner_phone, message, from_number=business.twilio_number or to_number)
        if result.get("status") != "success":
            logger.error("Failed to notify owner of %s: %s", business.id, result.get("message"))

    @staticmethod
    def _context(appointment: Appointment) -> dict:
        return {
            "name": appointment.customer_name,
            "service": appointment.service,
            "date": appointment.appointment_date,
            "time": appointment.appointment_time,
        }
