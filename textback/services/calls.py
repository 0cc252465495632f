"""
Missed call text-back
"""
import logging

from textback.models import Business
from textback.services.record_store import RecordStore
from textback.services.sms_service import TwilioService, say_response

logger = logging.getLogger(__name__)

BOOKING_LINK_PLACEHOLDER = "{booking_link}"

DEFAULT_CALLER_TEMPLATE = (
    "Hi! Thanks for calling {business}. We can't answer right now, but we can help!\n\n"
    "📅 Book an appointment: {booking_link}\n"
    "💬 Or reply to this text with your question\n\n"
    "We'll respond within 1 hour!"
)
OWNER_ALERT = "📞 Missed call at {business}\n\nCaller: {caller}\n\nThey've been sent your auto-reply text."

NOT_CONFIGURED_SPEECH = "This number is not configured yet."
ACKNOWLEDGEMENT_SPEECH = (
    "Thanks for calling! We've sent you a text message with information "
    "on how to book an appointment or get in touch."
)
ERROR_SPEECH = "An error occurred. Please try again later."


def caller_message(business: Business) -> str:
    """Auto-reply for the caller, from the business template when it has one"""
    if business.sms_template:
        message = business.sms_template
        if business.booking_link:
            message = message.replace(BOOKING_LINK_PLACEHOLDER, business.booking_link)
        return message
    return DEFAULT_CALLER_TEMPLATE.format(business=business.name, booking_link=business.booking_link)


class CallService:
    """Answers inbound calls for a business number"""

    def __init__(self, store: RecordStore, sms: TwilioService):
        self.store = store
        self.sms = sms

    def handle_incoming_call(self, called_number: str, caller_number: str) -> str:
        """Text the caller and the owner, then return voice TwiML"""
        logger.info("Call from %s to %s", caller_number, called_number)

        business = self.store.find_business_by_twilio_number(called_number)
        if not business:
            logger.error("No business found for number %s", called_number)
            return say_response(NOT_CONFIGURED_SPEECH)

        result = self.sms.send_sms(caller_number, caller_message(business), from_number=called_number)
        if result.get("status") != "success":
            logger.error("Auto-reply to %s failed: %s", caller_number, result.get("message"))

        if business.owner_phone:
            alert = OWNER_ALERT.format(business=business.name, caller=caller_number)
            result = self.sms.send_sms(business.owner_phone, alert, from_number=called_number)
            if result.get("status") != "success":
                logger.error("Owner alert for %s failed: %s", business.id, result.get("message"))
        else:
            logger.warning("Business %s has no owner phone", business.id)

        return say_response(ACKNOWLEDGEMENT_SPEECH, hangup=True)
