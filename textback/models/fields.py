"""
Airtable field names and enumerated values.

These strings are the contract with the Airtable base and must match the
column names exactly.
"""
from enum import Enum

# Businesses table
BUSINESS_NAME = "Business Name"
OWNER_PHONE = "Owner Phone Number"
TWILIO_NUMBER = "Twilio Phone Number"
BOOKING_LINK = "Booking Link"
SMS_TEMPLATE = "SMS Template"
CALENDAR_TYPE = "Calendar Type"
CALENDAR_EMAIL = "Calendar Email"
CALENDAR_SYNC_ENABLED = "Calendar Sync Enabled"
GOOGLE_ACCESS_TOKEN = "Google Access Token"
GOOGLE_REFRESH_TOKEN = "Google Refresh Token"
GOOGLE_TOKEN_EXPIRY = "Google Token Expiry"
MICROSOFT_ACCESS_TOKEN = "Microsoft Access Token"
MICROSOFT_REFRESH_TOKEN = "Microsoft Refresh Token"
MICROSOFT_TOKEN_EXPIRY = "Microsoft Token Expiry"

# Appointments table
APPOINTMENT_BUSINESS = "Business Name"  # linked record, list of business ids
CUSTOMER_NAME = "Customer Name"
CUSTOMER_PHONE = "Customer Phone"
CUSTOMER_EMAIL = "Customer Email"
APPOINTMENT_DATE = "Appointment Date"
APPOINTMENT_TIME = "Appointment Time"
SERVICE_TITLE = "Service/Meeting Title"
STATUS = "Status"
CUSTOMER_RESPONSE = "Customer Response"
GOOGLE_EVENT_ID = "Google Event ID"
MICROSOFT_EVENT_ID = "Microsoft Event ID"

REMINDER_SENT_TEMPLATE = "Reminder {label} Sent"


class AppointmentStatus(str, Enum):
    SCHEDULED = "Scheduled"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"


class CalendarType(str, Enum):
    GOOGLE = "Google Calendar"
    MICROSOFT = "Microsoft 365"


# Where each provider keeps its OAuth tokens on a business record
TOKEN_FIELDS = {
    CalendarType.GOOGLE: (GOOGLE_ACCESS_TOKEN, GOOGLE_REFRESH_TOKEN, GOOGLE_TOKEN_EXPIRY),
    CalendarType.MICROSOFT: (MICROSOFT_ACCESS_TOKEN, MICROSOFT_REFRESH_TOKEN, MICROSOFT_TOKEN_EXPIRY),
}

EVENT_ID_FIELDS = {
    CalendarType.GOOGLE: GOOGLE_EVENT_ID,
    CalendarType.MICROSOFT: MICROSOFT_EVENT_ID,
}
