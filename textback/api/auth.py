"""
Calendar OAuth routes
/api/auth/{provider} starts the consent flow, /api/auth/{provider}/callback stores the tokens
"""
import html
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse

from textback.api.dependencies import get_calendar_providers, get_record_store
from textback.services.calendar_providers import CalendarProvider, OAuthError
from textback.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth")

CONNECTED_PAGE = """<html>
  <head>
    <style>
      body {{
        font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
        display: flex;
        align-items: center;
        justify-content: center;
        min-height: 100vh;
        margin: 0;
        background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
      }}
      .container {{
        background: white;
        padding: 3rem;
        border-radius: 12px;
        box-shadow: 0 10px 40px rgba(0,0,0,0.2);
        text-align: center;
        max-width: 400px;
      }}
      h1 {{ color: #2d3748; margin-bottom: 1rem; }}
      p {{ color: #4a5568; margin: 0.5rem 0; }}
      .success {{ font-size: 4rem; margin-bottom: 1rem; }}
      .email {{
        background: #edf2f7;
        padding: 0.5rem 1rem;
        border-radius: 6px;
        margin: 1rem 0;
        font-family: monospace;
      }}
    </style>
  </head>
  <body>
    <div class="container">
      <div class="success">✅</div>
      <h1>Calendar Connected!</h1>
      <p>Your {provider} calendar is now syncing.</p>
      <div class="email">{email}</div>
      <p style="margin-top: 2rem; color: #718096;">You can close this window.</p>
    </div>
  </body>
</html>
"""


def render_connected_page(provider_name: str, email: str) -> str:
    return CONNECTED_PAGE.format(provider=html.escape(provider_name), email=html.escape(email))


def _get_provider(providers: dict[str, CalendarProvider], name: str) -> CalendarProvider:
    provider = providers.get(name)
    if provider is None:
        raise HTTPException(status_code=404, detail=f"Unknown calendar provider: {name}")
    return provider


@router.get("/{provider_name}")
def start_oauth(
    provider_name: str,
    business_id: Optional[str] = Query(None, alias="businessId"),
    providers: dict[str, CalendarProvider] = Depends(get_calendar_providers),
):
    provider = _get_provider(providers, provider_name)
    if not business_id:
        return PlainTextResponse("Business ID is required", status_code=400)

    logger.info("Redirecting to %s OAuth for business %s", provider.display_name, business_id)
    return RedirectResponse(provider.authorize_url(state=business_id))


@router.get("/{provider_name}/callback")
def oauth_callback(
    provider_name: str,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    providers: dict[str, CalendarProvider] = Depends(get_calendar_providers),
    store: RecordStore = Depends(get_record_store),
):
    provider = _get_provider(providers, provider_name)
    if error:
        logger.warning("%s OAuth denied for business %s: %s", provider.display_name, state, error)
        return PlainTextResponse(f"Error: {error_description or error}", status_code=400)
    if not code:
        return PlainTextResponse("Authorization code not found", status_code=400)

    logger.info("Received %s OAuth callback for business %s", provider.display_name, state)
    try:
        tokens = provider.exchange_code(code)
        email = provider.fetch_user_email(tokens.access_token)
    except OAuthError as e:
        logger.error("%s token error: %s", provider.display_name, e.error)
        return PlainTextResponse(f"Error: {e.description}", status_code=400)
    except Exception:
        logger.exception("%s OAuth callback failed", provider.display_name)
        return PlainTextResponse("Authentication failed", status_code=500)

    if state:
        if store.update_business(state, provider.connection_fields(email, tokens)) is None:
            logger.error("Could not store %s credentials for business %s", provider.display_name, state)
            return PlainTextResponse("Authentication failed", status_code=500)
        logger.info("Stored %s credentials for business %s", provider.display_name, state)

    return HTMLResponse(render_connected_page(provider.display_name, email))
