import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from textback.api.dependencies import get_calendar_providers, get_record_store, get_sms_service
from textback.config import Settings, get_settings
from textback.services.calendar_providers import CalendarProvider
from textback.services.calendar_sync import CalendarSyncService
from textback.services.record_store import RecordStore
from textback.services.reminders import ReminderService
from textback.services.sms_service import TwilioService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
def read_root(settings: Settings = Depends(get_settings)):
    return {
        "message": f"Welcome to {settings.app_name}",
        "webhooks": ["/api/call-status", "/api/sms-reply", "/api/appointment-reply"],
        "health": "/health",
    }


@router.get("/health")
def health_check(settings: Settings = Depends(get_settings)):
    """Health check endpoint"""
    return {"status": "ok", "app": settings.app_name}


@router.get("/api/appointment-reminders")
def send_appointment_reminders(
    store: RecordStore = Depends(get_record_store),
    sms: TwilioService = Depends(get_sms_service),
    settings: Settings = Depends(get_settings),
):
    """
    Reminder sweep, triggered by cron.

    Texts every appointment that has entered a reminder window and not yet
    had that reminder.
    """
    try:
        return ReminderService(store, sms, settings).run()
    except Exception as e:
        logger.exception("Reminder sweep failed")
        return JSONResponse({"error": "Failed to send reminders", "details": str(e)}, status_code=500)


@router.get("/api/debug-reminders")
def debug_reminders(
    store: RecordStore = Depends(get_record_store),
    sms: TwilioService = Depends(get_sms_service),
    settings: Settings = Depends(get_settings),
):
    """Show the dates each reminder window is currently matching"""
    try:
        return ReminderService(store, sms, settings).debug()
    except Exception as e:
        logger.exception("Reminder debug failed")
        return JSONResponse({"error": "Failed to compute reminder windows", "details": str(e)}, status_code=500)


@router.get("/api/appointment-sync")
def sync_appointments(
    store: RecordStore = Depends(get_record_store),
    providers: dict[str, CalendarProvider] = Depends(get_calendar_providers),
    settings: Settings = Depends(get_settings),
):
    """Pull upcoming events from every connected calendar into Appointments"""
    try:
        return CalendarSyncService(store, providers, settings).run()
    except Exception as e:
        logger.exception("Calendar sync failed")
        return JSONResponse({"error": "Sync failed", "details": str(e)}, status_code=500)
