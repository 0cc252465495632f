from textback.models.reminder import ReminderWindow
from textback.models.appointment import Appointment
from textback.models.business import Business
from textback.models.calendar import CalendarEvent, TokenSet
from textback.models.fields import AppointmentStatus, CalendarType

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "Business",
    "CalendarEvent",
    "CalendarType",
    "ReminderWindow",
    "TokenSet",
]
