import re
from typing import Optional

from pydantic import BaseModel, Field

from textback.models import fields
from textback.models.fields import AppointmentStatus
from textback.models.reminder import ReminderWindow

_REMINDER_FIELD = re.compile(r"^Reminder (.+) Sent$")


class Appointment(BaseModel):
    """Appointment row from the Appointments table"""

    id: str
    business_ids: list[str] = Field(default_factory=list, alias=fields.APPOINTMENT_BUSINESS)
    customer_name: str = Field("", alias=fields.CUSTOMER_NAME)
    customer_phone: str = Field("", alias=fields.CUSTOMER_PHONE)
    customer_email: str = Field("", alias=fields.CUSTOMER_EMAIL)
    appointment_date: str = Field("", alias=fields.APPOINTMENT_DATE)  # YYYY-MM-DD
    appointment_time: str = Field("", alias=fields.APPOINTMENT_TIME)  # e.g. "3:00 PM"
    service: str = Field("", alias=fields.SERVICE_TITLE)
    status: str = Field(AppointmentStatus.SCHEDULED.value, alias=fields.STATUS)
    customer_response: str = Field("", alias=fields.CUSTOMER_RESPONSE)
    google_event_id: Optional[str] = Field(None, alias=fields.GOOGLE_EVENT_ID)
    microsoft_event_id: Optional[str] = Field(None, alias=fields.MICROSOFT_EVENT_ID)
    reminders_sent: dict[str, bool] = Field(default_factory=dict)

    class Config:
        populate_by_name = True

    @classmethod
    def from_record(cls, record: dict) -> "Appointment":
        """Build from an Airtable record ({"id": ..., "fields": {...}})"""
        data = dict(record.get("fields", {}))
        sent = {}
        for name, value in data.items():
            match = _REMINDER_FIELD.match(name)
            if match:
                sent[match.group(1)] = bool(value)
        data["id"] = record["id"]
        data["reminders_sent"] = sent
        return cls.model_validate(data)

    @property
    def business_id(self) -> Optional[str]:
        return self.business_ids[0] if self.business_ids else None

    def reminder_sent(self, window: ReminderWindow) -> bool:
        # Airtable omits unchecked checkboxes, so a missing flag means not sent
        return self.reminders_sent.get(window.label, False)
