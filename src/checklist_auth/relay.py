"""
iOS Relay Page

Hosted page the backend redirects to during iOS sign-in. It receives the
tokens (hash fragment or query) and forwards them to the app's URL scheme.
"""

from __future__ import annotations

from collections.abc import Mapping
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, FastAPI, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from checklist_auth.config import settings
from checklist_auth.oauth.params import has_tokens, normalize_callback_params

logger = structlog.get_logger()

RELAY_PATH = "/auth/callback-mobile-web"

# Moves the fragment into the query so the server can read it
_RELAY_PAGE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Completing authentication</title></head>
<body>
<h2>Completing authentication...</h2>
<p>You will be redirected back to the app shortly.</p>
<script>
  var fragment = window.location.hash.substring(1);
  var query = fragment || "error=no_tokens&error_description=No%20authentication%20tokens%20received";
  window.location.replace(window.location.pathname + "?" + query);
</script>
</body>
</html>
"""


def build_app_redirect(params: Mapping[str, str], app_callback_url: str) -> str:
    """
    Build the app scheme URL carrying the callback outcome.

    Args:
        params: Flat callback parameters
        app_callback_url: App deep link, e.g. scheme://auth/callback

    Returns:
        Deep link with either tokens or an error
    """
    if params.get("error"):
        query = {
            "error": params["error"],
            "error_description": params.get("error_description", ""),
        }
    elif has_tokens(params):
        query = {
            "access_token": params["access_token"],
            "refresh_token": params.get("refresh_token", ""),
            "token_type": params.get("token_type") or "bearer",
            "expires_in": params.get("expires_in") or "3600",
        }
    else:
        query = {
            "error": "no_tokens",
            "error_description": "No authentication tokens received",
        }

    return f"{app_callback_url}?{urlencode(query)}"


def create_relay_router(app_callback_url: str | None = None) -> APIRouter:
    """
    Create the relay page router.

    Args:
        app_callback_url: App deep link (taken from settings if None)

    Returns:
        Router serving the relay page
    """
    target = app_callback_url or settings.app_callback_url
    router = APIRouter(tags=["auth"])

    @router.get(RELAY_PATH, response_model=None)
    async def relay_callback(request: Request) -> HTMLResponse | RedirectResponse:
        """
        Forward the sign-in outcome to the app.

        The first request usually has the tokens in the fragment, which
        browsers never send; the page then reloads itself with the fragment
        as query string.
        """
        params = normalize_callback_params(query=dict(request.query_params))

        if not params:
            return HTMLResponse(_RELAY_PAGE)

        logger.info(
            "Relaying auth callback to app",
            has_access_token="access_token" in params,
            error=params.get("error"),
        )
        return RedirectResponse(
            url=build_app_redirect(params, target),
            status_code=status.HTTP_302_FOUND,
        )

    return router


def create_relay_app(app_callback_url: str | None = None) -> FastAPI:
    """Create a standalone app serving the relay page."""
    app = FastAPI(title="Checklist auth relay", docs_url=None, redoc_url=None)
    app.include_router(create_relay_router(app_callback_url))
    return app
