"""
FastAPI dependencies
Every handler gets its clients from here, built from the process-wide settings
"""
from fastapi import Depends

from textback.config import Settings, get_settings
from textback.services.calendar_providers import CalendarProvider, build_providers
from textback.services.calendar_sync import CalendarSyncService
from textback.services.calls import CallService
from textback.services.record_store import AirtableClient, RecordStore
from textback.services.reminders import ReminderService
from textback.services.replies import ReplyService
from textback.services.sms_service import TwilioService


def build_record_store(settings: Settings) -> RecordStore:
    return RecordStore(AirtableClient(settings), settings)


def build_reminder_service(settings: Settings) -> ReminderService:
    return ReminderService(build_record_store(settings), TwilioService(settings), settings)


def build_sync_service(settings: Settings) -> CalendarSyncService:
    return CalendarSyncService(build_record_store(settings), build_providers(settings), settings)


def get_record_store(settings: Settings = Depends(get_settings)) -> RecordStore:
    return build_record_store(settings)


def get_sms_service(settings: Settings = Depends(get_settings)) -> TwilioService:
    return TwilioService(settings)


def get_calendar_providers(settings: Settings = Depends(get_settings)) -> dict[str, CalendarProvider]:
    return build_providers(settings)


def get_reply_service(
    store: RecordStore = Depends(get_record_store),
    sms: TwilioService = Depends(get_sms_service),
    settings: Settings = Depends(get_settings),
) -> ReplyService:
    return ReplyService(store, sms, settings)


def get_call_service(
    store: RecordStore = Depends(get_record_store),
    sms: TwilioService = Depends(get_sms_service),
) -> CallService:
    return CallService(store, sms)
