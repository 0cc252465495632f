from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel


class TokenSet(BaseModel):
    """OAuth access/refresh token pair with the access token's expiry"""

    access_token: str = ""
    refresh_token: str = ""
    expires_at: Optional[datetime] = None

    @classmethod
    def from_token_response(
        cls, payload: dict, now: Optional[datetime] = None, previous_refresh_token: str = ""
    ) -> "TokenSet":
        """
        Build from an OAuth token endpoint response.

        Google omits refresh_token on refresh, so the previous one is kept.
        """
        now = now or datetime.now(timezone.utc)
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or previous_refresh_token,
            expires_at=now + timedelta(seconds=int(payload.get("expires_in", 3600))),
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if not self.access_token or self.expires_at is None:
            return True
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= now

    def expiry_iso(self) -> str:
        if self.expires_at is None:
            return ""
        return self.expires_at.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class CalendarEvent(BaseModel):
    """Provider-neutral view of a calendar event"""

    id: str
    title: str = ""
    attendee_name: str = ""
    attendee_email: str = ""
    description: str = ""
    start: datetime
    all_day: bool = False
