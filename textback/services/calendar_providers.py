"""
Calendar providers
OAuth and event access for Google Calendar and Microsoft 365 behind one interface
"""
import logging
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode

import requests
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from textback.config import Settings
from textback.models import CalendarEvent, CalendarType, TokenSet
from textback.models import fields

logger = logging.getLogger(__name__)

_FRACTION = re.compile(r"\.(\d+)")


class CalendarProviderError(Exception):
    """A calendar provider request failed"""


class OAuthError(CalendarProviderError):
    """The token endpoint answered with an OAuth error"""

    def __init__(self, error: str, description: str = ""):
        self.error = error
        self.description = description or error
        super().__init__(self.description)


def parse_event_datetime(value: str, assume_utc: bool = True) -> datetime:
    """
    Parse provider timestamps.

    Handles a trailing Z and Graph's seven-digit fractional seconds. Naive
    values are taken as UTC.
    """
    value = value.replace("Z", "+00:00")
    value = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None and assume_utc:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _utc_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class CalendarProvider:
    """
    Base class for an OAuth calendar integration.

    Subclasses supply endpoints, scopes and the two API calls that differ
    between providers: looking up the signed-in user's email and listing
    events.
    """

    slug: str = ""
    calendar_type: CalendarType
    display_name: str = ""
    authorize_endpoint: str = ""
    token_endpoint: str = ""
    scopes: tuple[str, ...] = ()
    token_scope: Optional[str] = None
    extra_authorize_params: dict = {}

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        session: Optional[requests.Session] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.session = session or requests.Session()

    @property
    def event_id_field(self) -> str:
        return fields.EVENT_ID_FIELDS[self.calendar_type]

    def authorize_url(self, state: str) -> str:
        """Provider consent URL carrying the business id as state"""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "state": state,
        }
        params.update(self.extra_authorize_params)
        return f"{self.authorize_endpoint}?{urlencode(params)}"

    def _token_request(self, data: dict) -> dict:
        data = {"client_id": self.client_id, "client_secret": self.client_secret, **data}
        if self.token_scope:
            data["scope"] = self.token_scope
        try:
            response = self.session.post(self.token_endpoint, data=data)
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise CalendarProviderError(f"{self.display_name} token request failed: {e}") from e

        if "error" in payload:
            raise OAuthError(payload["error"], payload.get("error_description", ""))
        if not response.ok:
            raise CalendarProviderError(
                f"{self.display_name} token request failed with status {response.status_code}"
            )
        return payload

    def exchange_code(self, code: str) -> TokenSet:
        payload = self._token_request(
            {"code": code, "redirect_uri": self.redirect_uri, "grant_type": "authorization_code"}
        )
        return TokenSet.from_token_response(payload)

    def refresh(self, tokens: TokenSet) -> TokenSet:
        if not tokens.refresh_token:
            raise OAuthError("invalid_grant", "No refresh token stored")
        payload = self._token_request(
            {"refresh_token": tokens.refresh_token, "grant_type": "refresh_token"}
        )
        return TokenSet.from_token_response(payload, previous_refresh_token=tokens.refresh_token)

    def token_fields(self, tokens: TokenSet) -> dict:
        """Business fields holding this provider's tokens"""
        access_field, refresh_field, expiry_field = fields.TOKEN_FIELDS[self.calendar_type]
        return {
            access_field: tokens.access_token,
            refresh_field: tokens.refresh_token,
            expiry_field: tokens.expiry_iso(),
        }

    def connection_fields(self, email: str, tokens: TokenSet) -> dict:
        """Business fields written when a calendar is connected"""
        return {
            fields.CALENDAR_TYPE: self.calendar_type.value,
            fields.CALENDAR_EMAIL: email,
            **self.token_fields(tokens),
            fields.CALENDAR_SYNC_ENABLED: True,
        }

    def _get_json(self, url: str, access_token: str, params=None, headers=None) -> dict:
        request_headers = {"Authorization": f"Bearer {access_token}"}
        request_headers.update(headers or {})
        try:
            response = self.session.get(url, params=params, headers=request_headers)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise CalendarProviderError(f"{self.display_name} request to {url} failed: {e}") from e

    def fetch_user_email(self, access_token: str) -> str:
        raise NotImplementedError

    def fetch_events(self, access_token: str, start: datetime, end: datetime) -> list[CalendarEvent]:
        raise NotImplementedError


class GoogleCalendarProvider(CalendarProvider):
    slug = "google"
    calendar_type = CalendarType.GOOGLE
    display_name = "Google Calendar"
    authorize_endpoint = "https://accounts.google.com/o/oauth2/v2/auth"
    token_endpoint = "https://oauth2.googleapis.com/token"
    userinfo_endpoint = "https://www.googleapis.com/oauth2/v2/userinfo"
    scopes = (
        "https://www.googleapis.com/auth/calendar.readonly",
        "https://www.googleapis.com/auth/userinfo.email",
    )
    # offline access + forced consent so Google always returns a refresh token
    extra_authorize_params = {"access_type": "offline", "prompt": "consent"}

    def fetch_user_email(self, access_token: str) -> str:
        return self._get_json(self.userinfo_endpoint, access_token).get("email", "")

    def _build_service(self, access_token: str):
        credentials = Credentials(token=access_token)
        return build("calendar", "v3", credentials=credentials, cache_discovery=False)

    def fetch_events(self, access_token: str, start: datetime, end: datetime) -> list[CalendarEvent]:
        service = self._build_service(access_token)
        items = []
        page_token = None
        try:
            while True:
                result = service.events().list(
                    calendarId="primary",
                    timeMin=_utc_iso(start),
                    timeMax=_utc_iso(end),
                    singleEvents=True,
                    orderBy="startTime",
                    pageToken=page_token,
                ).execute()
                items.extend(result.get("items", []))
                page_token = result.get("nextPageToken")
                if not page_token:
                    break
        except HttpError as e:
            raise CalendarProviderError(f"Google Calendar events request failed: {e}") from e

        return [self._to_event(item) for item in items if item.get("status") != "cancelled"]

    @staticmethod
    def _to_event(item: dict) -> CalendarEvent:
        attendees = [a for a in item.get("attendees", []) if not a.get("self")]
        attendee = attendees[0] if attendees else {}
        start = item.get("start", {})
        all_day = "dateTime" not in start
        return CalendarEvent(
            id=item["id"],
            title=item.get("summary", ""),
            attendee_name=attendee.get("displayName", ""),
            attendee_email=attendee.get("email", ""),
            description=item.get("description", ""),
            start=parse_event_datetime(start.get("dateTime") or start["date"] + "T00:00:00"),
            all_day=all_day,
        )


class MicrosoftCalendarProvider(CalendarProvider):
    slug = "microsoft"
    calendar_type = CalendarType.MICROSOFT
    display_name = "Microsoft 365"
    authorize_endpoint = "https://login.microsoftonline.com/common/oauth2/v2.0/authorize"
    token_endpoint = "https://login.microsoftonline.com/common/oauth2/v2.0/token"
    graph_endpoint = "https://graph.microsoft.com/v1.0"
    scopes = (
        "https://graph.microsoft.com/Calendars.Read",
        "https://graph.microsoft.com/User.Read",
        "offline_access",
    )
    token_scope = "https://graph.microsoft.com/Calendars.Read offline_access"
    extra_authorize_params = {"response_mode": "query"}

    def fetch_user_email(self, access_token: str) -> str:
        user = self._get_json(f"{self.graph_endpoint}/me", access_token)
        return user.get("mail") or user.get("userPrincipalName", "")

    def fetch_events(self, access_token: str, start: datetime, end: datetime) -> list[CalendarEvent]:
        url = f"{self.graph_endpoint}/me/calendar/events"
        params = {
            "$filter": f"start/dateTime ge '{_utc_iso(start)}' and start/dateTime le '{_utc_iso(end)}'",
            "$orderby": "start/dateTime",
        }
        # Graph returns start times in UTC when asked to
        headers = {"Prefer": 'outlook.timezone="UTC"'}
        items = []
        while url:
            data = self._get_json(url, access_token, params=params, headers=headers)
            items.extend(data.get("value", []))
            url = data.get("@odata.nextLink")
            params = None  # nextLink already carries the query
        return [self._to_event(item) for item in items if not item.get("isCancelled")]

    @staticmethod
    def _to_event(item: dict) -> CalendarEvent:
        attendees = item.get("attendees") or []
        address = attendees[0].get("emailAddress", {}) if attendees else {}
        return CalendarEvent(
            id=item["id"],
            title=item.get("subject", ""),
            attendee_name=address.get("name", ""),
            attendee_email=address.get("address", ""),
            description=(item.get("body") or {}).get("content", ""),
            start=parse_event_datetime(item["start"]["dateTime"]),
            all_day=bool(item.get("isAllDay")),
        )


def build_providers(settings: Settings) -> dict[str, CalendarProvider]:
    """Calendar providers keyed by URL slug"""
    return {
        GoogleCalendarProvider.slug: GoogleCalendarProvider(
            settings.google_client_id, settings.google_client_secret, settings.google_redirect_uri
        ),
        MicrosoftCalendarProvider.slug: MicrosoftCalendarProvider(
            settings.microsoft_client_id, settings.microsoft_client_secret, settings.microsoft_redirect_uri
        ),
    }
