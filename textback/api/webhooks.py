"""
Twilio webhooks
Twilio retries on anything but a 200, so these always answer 200 with TwiML
"""
import logging

from fastapi import APIRouter, Depends, Form, Response

from textback.api.dependencies import get_call_service, get_reply_service
from textback.services.calls import ERROR_SPEECH, CallService
from textback.services.replies import ReplyService
from textback.services.sms_service import message_response, say_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

TWIML_MEDIA_TYPE = "text/xml"


def twiml(body: str) -> Response:
    return Response(content=body, status_code=200, media_type=TWIML_MEDIA_TYPE)


@router.post("/call-status")
def incoming_call(
    to_number: str = Form("", alias="To"),
    from_number: str = Form("", alias="From"),
    calls: CallService = Depends(get_call_service),
):
    """Missed call: text the caller and the owner, then speak and hang up"""
    try:
        return twiml(calls.handle_incoming_call(to_number, from_number))
    except Exception:
        logger.exception("Error handling call from %s", from_number)
        return twiml(say_response(ERROR_SPEECH))


@router.post("/sms-reply")
def incoming_sms(
    to_number: str = Form("", alias="To"),
    from_number: str = Form("", alias="From"),
    body: str = Form("", alias="Body"),
    replies: ReplyService = Depends(get_reply_service),
):
    """Forward a customer's text to the business owner"""
    try:
        reply = replies.handle_forwarded_message(from_number, to_number, body)
    except Exception:
        logger.exception("Error handling SMS from %s", from_number)
        return Response(content="", status_code=200)
    if reply is None:
        return Response(content="", status_code=200)
    return twiml(message_response(reply))


@router.post("/appointment-reply")
def appointment_reply(
    to_number: str = Form("", alias="To"),
    from_number: str = Form("", alias="From"),
    body: str = Form("", alias="Body"),
    replies: ReplyService = Depends(get_reply_service),
):
    """CONFIRM / CANCEL / free-text replies to appointment reminders"""
    try:
        return twiml(message_response(replies.handle_appointment_reply(from_number, to_number, body)))
    except Exception:
        logger.exception("Error handling appointment reply from %s", from_number)
        return Response(content="", status_code=200)
