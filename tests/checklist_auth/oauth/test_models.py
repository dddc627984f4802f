"""
Tests for OAuth models and error classification.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from checklist_auth.oauth.models import (
    AuthTokens,
    AuthUser,
    OAuthConfig,
    OAuthError,
    OAuthErrorKind,
    OAuthResult,
    PlatformType,
    Result,
    Session,
    Severity,
    classify_error_code,
)


class TestErrorClassification:
    """Test error code to kind mapping."""

    @pytest.mark.parametrize(
        ("code", "kind"),
        [
            ("not_configured", OAuthErrorKind.NOT_CONFIGURED),
            ("configuration_error", OAuthErrorKind.NOT_CONFIGURED),
            ("user_cancelled", OAuthErrorKind.USER_CANCELLED),
            ("access_denied", OAuthErrorKind.USER_CANCELLED),
            ("invalid_grant", OAuthErrorKind.INVALID_GRANT),
            ("session_invalid", OAuthErrorKind.SESSION_ERROR),
            ("no_tokens", OAuthErrorKind.CALLBACK_ERROR),
            ("invalid_state", OAuthErrorKind.CALLBACK_ERROR),
            ("oauth_service_error", OAuthErrorKind.UNKNOWN),
            ("something_new", OAuthErrorKind.CALLBACK_ERROR),
        ],
    )
    def test_classify_error_code(self, code: str, kind: OAuthErrorKind) -> None:
        """Test every code maps onto one kind."""
        assert classify_error_code(code) == kind

    def test_only_not_configured_is_fatal(self) -> None:
        """Test severity classification."""
        for kind in OAuthErrorKind:
            error = OAuthError(code=kind.value, message="x")
            expected = Severity.FATAL if kind == OAuthErrorKind.NOT_CONFIGURED else Severity.RECOVERABLE
            assert error.severity == expected

    def test_result_fail_accepts_kind(self) -> None:
        """Test failed results carry the kind's wire value."""
        result = OAuthResult.fail(OAuthErrorKind.USER_CANCELLED, "cancelled")

        assert result.success is False
        assert result.error.code == "user_cancelled"
        assert result.error.kind == OAuthErrorKind.USER_CANCELLED

    def test_value_result(self) -> None:
        """Test Result success and failure."""
        assert Result[int].success(3).ok is True
        failure = Result[int].failure("invalid_grant", "Bad code")
        assert failure.ok is False
        assert failure.value is None
        assert failure.error.kind == OAuthErrorKind.INVALID_GRANT


class TestOAuthConfig:
    """Test client id configuration."""

    def test_placeholder_is_not_usable(self) -> None:
        """Test placeholder and empty ids are rejected."""
        assert OAuthConfig.is_usable("REPLACE_WITH_WEB_CLIENT_ID") is False
        assert OAuthConfig.is_usable("") is False
        assert OAuthConfig.is_usable(None) is False
        assert OAuthConfig.is_usable("123.apps.googleusercontent.com") is True

    def test_client_id_per_platform(self, oauth_config: OAuthConfig) -> None:
        """Test each platform reads its own id."""
        assert oauth_config.client_id_for(PlatformType.WEB).startswith("web-")
        assert oauth_config.client_id_for(PlatformType.IOS).startswith("ios-")
        assert oauth_config.client_id_for(PlatformType.ANDROID).startswith("android-")

    def test_ios_falls_back_to_web_client(self) -> None:
        """Test iOS uses the web client id when its own is missing."""
        config = OAuthConfig(web_client_id="web-id", ios_client_id="REPLACE_WITH_IOS")

        assert config.client_id_for(PlatformType.IOS) == "web-id"

    def test_android_has_no_fallback(self) -> None:
        """Test Android never borrows the web client id."""
        config = OAuthConfig(web_client_id="web-id")

        assert config.client_id_for(PlatformType.ANDROID) == ""

    def test_config_is_immutable(self, oauth_config: OAuthConfig) -> None:
        """Test client ids cannot be changed after construction."""
        with pytest.raises(ValueError):
            oauth_config.web_client_id = "other"


class TestTokensAndSession:
    """Test token and session models."""

    def test_tokens_from_params(self) -> None:
        """Test expires_in is turned into an absolute expiry."""
        now = datetime(2026, 1, 1, tzinfo=UTC)
        tokens = AuthTokens.from_params(
            {"access_token": "at", "refresh_token": "rt", "expires_in": "3600"},
            now=now,
        )

        assert tokens.access_token == "at"
        assert tokens.refresh_token == "rt"
        assert tokens.expires_at == now + timedelta(hours=1)
        assert tokens.token_type == "bearer"

    def test_user_from_backend(self) -> None:
        """Test backend user record mapping."""
        user = AuthUser.from_backend(
            {
                "id": 7,
                "email": "grace@example.com",
                "user_metadata": {"avatar_url": "https://img.test/g.png"},
                "app_metadata": {"provider": "google"},
            }
        )

        assert user.id == "7"
        assert user.name == "grace"
        assert user.avatar_url == "https://img.test/g.png"
        assert user.provider == "google"

    def test_session_validity_buffer(self) -> None:
        """Test sessions inside the expiry buffer are not valid."""
        now = datetime(2026, 1, 1, tzinfo=UTC)
        user = AuthUser(id="u")
        tokens = AuthTokens(access_token="at")
        buffer = timedelta(minutes=5)

        fresh = Session(user=user, tokens=tokens, expires_at=now + timedelta(minutes=30))
        expiring = Session(user=user, tokens=tokens, expires_at=now + timedelta(minutes=4))
        unbounded = Session(user=user, tokens=tokens)

        assert fresh.is_valid(buffer, now=now) is True
        assert expiring.is_valid(buffer, now=now) is False
        assert unbounded.is_valid(buffer, now=now) is True
