"""
SMS Service using Twilio
"""
import logging
from typing import Optional

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client
from twilio.twiml.messaging_response import MessagingResponse
from twilio.twiml.voice_response import VoiceResponse

from textback.config import Settings

logger = logging.getLogger(__name__)

VOICE = "alice"


class TwilioService:
    """Service to send SMS using Twilio"""

    def __init__(self, settings: Settings):
        self.account_sid = settings.twilio_account_sid
        self.auth_token = settings.twilio_auth_token
        self.phone_number = settings.twilio_phone_number
        self.client = None
        self._init_client()

    def _init_client(self):
        """Initialize Twilio client"""
        try:
            if self.account_sid and self.auth_token:
                self.client = Client(self.account_sid, self.auth_token)
        except Exception as e:
            logger.warning("Failed to initialize Twilio: %s", e)

    def send_sms(self, to_number: str, message: str, from_number: Optional[str] = None) -> dict:
        """
        Send SMS using Twilio.

        Failures are reported in the returned dict, never raised, so callers
        can treat delivery as best-effort and ignore the result.

        Args:
            to_number: Recipient phone number
            message: Message to send
            from_number: Sender number, defaults to TWILIO_PHONE_NUMBER

        Returns:
            dict with SMS status
        """
        sender = from_number or self.phone_number
        try:
            if not self.client:
                return {
                    "status": "success",
                    "to": to_number,
                    "message": message,
                    "note": "Twilio not configured - running in test mode"
                }

            sms = self.client.messages.create(
                body=message,
                from_=sender,
                to=to_number
            )
            logger.info("SMS %s sent to %s", sms.sid, to_number)

            return {
                "status": "success",
                "to": to_number,
                "message": message,
                "sid": sms.sid
            }

        except TwilioRestException as e:
            logger.error("Twilio rejected SMS to %s (code %s): %s", to_number, e.code, e.msg)
            return {
                "status": "error",
                "code": e.code,
                "message": f"Error sending SMS: {e.msg}"
            }
        except Exception as e:
            logger.error("Error sending SMS to %s: %s", to_number, e)
            return {
                "status": "error",
                "message": f"Error sending SMS: {str(e)}"
            }


def say_response(message: str, hangup: bool = False) -> str:
    """Voice TwiML that speaks a message, optionally hanging up after"""
    response = VoiceResponse()
    response.say(message, voice=VOICE)
    if hangup:
        response.hangup()
    return str(response)


def message_response(message: Optional[str] = None) -> str:
    """Messaging TwiML with an optional reply"""
    response = MessagingResponse()
    if message:
        response.message(message)
    return str(response)
