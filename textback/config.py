from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

from textback.models.reminder import ReminderWindow

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Application configuration from environment variables"""

    # App
    app_name: str = "Missed Call Text-Back"
    debug: bool = False
    log_level: str = "INFO"
    timezone: str = "UTC"

    # Airtable
    airtable_api_key: str = ""
    airtable_base_id: str = ""
    airtable_table_name: str = "Businesses"
    airtable_appointments_table: str = "Appointments"

    # Twilio
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""

    # Google Calendar
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = ""

    # Microsoft 365
    microsoft_client_id: str = ""
    microsoft_client_secret: str = ""
    microsoft_redirect_uri: str = ""

    # Reminders: comma separated "<label>:<hours ahead>" pairs
    reminder_windows: str = "24h:24,1h:1"
    reminder_match_mode: Literal["hour_band", "day"] = "hour_band"

    # Calendar sync
    sync_window_days: int = 14

    # In-process scheduler
    scheduler_enabled: bool = False
    reminder_interval_minutes: int = 15
    sync_interval_minutes: int = 30

    class Config:
        env_file = ".env"
        case_sensitive = False
        frozen = True

    def reminder_window_list(self) -> list[ReminderWindow]:
        """Parse REMINDER_WINDOWS into ordered reminder windows."""
        windows = []
        for entry in self.reminder_windows.split(","):
            entry = entry.strip()
            if not entry:
                continue
            label, sep, hours = entry.partition(":")
            if not sep or not label.strip():
                raise ValueError(f"Invalid reminder window: {entry!r}")
            windows.append(ReminderWindow(label=label.strip(), hours_ahead=int(hours)))
        return windows


@lru_cache
def get_settings() -> Settings:
    """Build settings once per process"""
    return Settings()
