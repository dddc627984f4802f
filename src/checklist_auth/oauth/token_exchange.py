"""
Token Exchange Client

Authorization code to token exchange against the identity provider's
token endpoint.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import structlog

from checklist_auth.oauth.models import ExchangedTokens, OAuthErrorKind, Result

logger = structlog.get_logger()


class TokenExchangeClient:
    """
    Exchanges single-use authorization codes for tokens.

    Never raises: every outcome is returned as a Result. Codes are single-use,
    so a failed exchange is never retried.
    """

    GRANT_TYPE = "authorization_code"

    def __init__(
        self,
        token_endpoint: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        development: bool = False,
    ) -> None:
        """
        Initialize token exchange client.

        Args:
            token_endpoint: Identity provider token endpoint URL
            http_client: Shared HTTP client (a short-lived one is used if None)
            timeout: Request timeout in seconds
            development: Running on an emulator/simulator, logged with grant errors
        """
        self.token_endpoint = token_endpoint
        self._http_client = http_client
        self.timeout = timeout
        self.development = development

    async def _post(self, data: dict[str, str]) -> httpx.Response:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/x-www-form-urlencoded",
        }
        if self._http_client is not None:
            return await self._http_client.post(self.token_endpoint, data=data, headers=headers)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.token_endpoint, data=data, headers=headers)

    async def exchange(
        self,
        client_id: str,
        authorization_code: str,
        redirect_uri: str,
    ) -> Result[ExchangedTokens]:
        """
        Exchange an authorization code for tokens.

        Args:
            client_id: OAuth client ID of the current platform
            authorization_code: Single-use code from the authorization step
            redirect_uri: Redirect URI used in the authorization request

        Returns:
            Result holding the tokens, or the provider's error
        """
        missing = [
            name
            for name, value in (
                ("client_id", client_id),
                ("code", authorization_code),
                ("redirect_uri", redirect_uri),
            )
            if not value
        ]
        if missing:
            return Result.failure(
                "invalid_request",
                f"Missing token exchange parameters: {', '.join(missing)}",
            )

        data = {
            "client_id": client_id,
            "code": authorization_code,
            "grant_type": self.GRANT_TYPE,
            "redirect_uri": redirect_uri,
        }

        logger.info("Exchanging authorization code for token", redirect_uri=redirect_uri)

        try:
            response = await self._post(data)
        except httpx.HTTPError as e:
            logger.error("Token exchange request failed", error=str(e))
            return Result.failure(OAuthErrorKind.NETWORK_ERROR, f"Token exchange request failed: {e}")

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not isinstance(payload, dict):
            logger.error("Token endpoint returned non-JSON body", status_code=response.status_code)
            return Result.failure(
                OAuthErrorKind.UNKNOWN,
                "Token endpoint returned an unreadable response",
                details={"status_code": response.status_code},
            )

        if "error" in payload:
            return self._error_result(payload)

        if not payload.get("access_token"):
            return Result.failure(
                OAuthErrorKind.UNKNOWN,
                "Token endpoint response did not include an access token",
                details={"status_code": response.status_code},
            )

        try:
            tokens = self._parse_token_response(payload)
        except ValueError as e:
            logger.error("Token endpoint returned malformed tokens", error=str(e))
            return Result.failure(
                OAuthErrorKind.UNKNOWN,
                "Token endpoint returned malformed tokens",
                details={"status_code": response.status_code},
            )

        return Result.success(tokens)

    def _error_result(self, payload: dict[str, Any]) -> Result[ExchangedTokens]:
        error_code = str(payload["error"])
        message = payload.get("error_description") or "Failed to exchange authorization code"

        if error_code == OAuthErrorKind.INVALID_GRANT.value:
            # Frequent on emulators/simulators because of redirect URI handling
            logger.warning(
                "Authorization code rejected",
                error=error_code,
                development=self.development,
                hint="check redirect URI registration or test on a physical device",
            )
        else:
            logger.error("Token exchange failed", error=error_code, error_description=message)

        return Result.failure(error_code, message, details={"development": self.development})

    def _parse_token_response(self, token_data: dict[str, Any]) -> ExchangedTokens:
        expires_at = None
        expires_in = token_data.get("expires_in")
        if expires_in is not None and str(expires_in).isdigit():
            expires_at = datetime.now(UTC) + timedelta(seconds=int(expires_in))

        return ExchangedTokens(
            access_token=token_data["access_token"],
            refresh_token=token_data.get("refresh_token"),
            expires_at=expires_at,
            token_type=token_data.get("token_type", "bearer"),
            id_token=token_data.get("id_token"),
        )
