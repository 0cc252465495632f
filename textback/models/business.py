from typing import Optional

from pydantic import BaseModel, Field

from textback.models import fields
from textback.models.calendar import TokenSet
from textback.models.fields import CalendarType, TOKEN_FIELDS


class Business(BaseModel):
    """Business row from the business directory table"""

    id: str
    name: str = Field("", alias=fields.BUSINESS_NAME)
    owner_phone: str = Field("", alias=fields.OWNER_PHONE)
    twilio_number: str = Field("", alias=fields.TWILIO_NUMBER)
    booking_link: str = Field("", alias=fields.BOOKING_LINK)
    sms_template: Optional[str] = Field(None, alias=fields.SMS_TEMPLATE)
    calendar_type: Optional[str] = Field(None, alias=fields.CALENDAR_TYPE)
    calendar_email: str = Field("", alias=fields.CALENDAR_EMAIL)
    sync_enabled: bool = Field(False, alias=fields.CALENDAR_SYNC_ENABLED)
    credentials: dict[CalendarType, TokenSet] = Field(default_factory=dict)

    class Config:
        populate_by_name = True

    @classmethod
    def from_record(cls, record: dict) -> "Business":
        data = dict(record.get("fields", {}))
        credentials = {}
        for calendar_type, (access_field, refresh_field, expiry_field) in TOKEN_FIELDS.items():
            if data.get(access_field) or data.get(refresh_field):
                credentials[calendar_type] = TokenSet(
                    access_token=data.get(access_field) or "",
                    refresh_token=data.get(refresh_field) or "",
                    expires_at=data.get(expiry_field) or None,
                )
        data["id"] = record["id"]
        data["credentials"] = credentials
        return cls.model_validate(data)
