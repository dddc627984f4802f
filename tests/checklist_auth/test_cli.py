"""
Tests for the diagnostics CLI and container wiring.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from unittest.mock import Mock

import pytest
import structlog
from typer.testing import CliRunner

from checklist_auth import __version__
from checklist_auth.cli import app
from checklist_auth.config import AuthSettings
from checklist_auth.container import build_container
from checklist_auth.logging_config import configure_logging
from checklist_auth.oauth.browser import AuthSessionBrowser
from checklist_auth.oauth.listener import AuthStateListener
from checklist_auth.oauth.models import PlatformType
from checklist_auth.oauth.store import MemorySessionStore, RedisSessionStore

runner = CliRunner()


class TestCli:
    """Test CLI commands."""

    @pytest.fixture(autouse=True)
    def container(self, monkeypatch: pytest.MonkeyPatch, app_settings: AuthSettings) -> Iterator[None]:
        """Build CLI containers from test settings."""
        monkeypatch.setattr(
            "checklist_auth.cli.settings",
            app_settings.model_copy(update={"LOG_LEVEL": "ERROR"}),
        )
        monkeypatch.setattr(
            "checklist_auth.cli.build_container",
            lambda: build_container(app_settings),
        )
        yield
        # The CLI bound structlog to the runner's stderr
        structlog.reset_defaults()

    def test_version(self) -> None:
        """Test --version."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_config_json(self) -> None:
        """Test provider configuration as JSON."""
        result = runner.invoke(app, ["config", "--json"])

        assert result.exit_code == 0
        info = json.loads(result.stdout)
        assert info["platform"] == "web"
        assert info["is_configured"] is True
        assert info["redirect_url"] == "https://app.test/auth/callback"

    def test_config_other_platform(self) -> None:
        """Test inspecting another platform's provider."""
        result = runner.invoke(app, ["config", "--platform", "ios", "--json"])

        assert result.exit_code == 0
        info = json.loads(result.stdout)
        assert info["platform"] == "ios"
        assert info["relay_url"] == "https://app.test/auth/callback-mobile-web"

    def test_status_without_session(self) -> None:
        """Test status with nothing stored."""
        result = runner.invoke(app, ["status", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["is_authenticated"] is False


class TestContainer:
    """Test component wiring."""

    def test_build_container(self, app_settings: AuthSettings) -> None:
        """Test one gateway is shared by every component."""
        container = build_container(app_settings)

        assert isinstance(container.store, MemorySessionStore)
        assert isinstance(container.browser, AuthSessionBrowser)
        assert container.factory.gateway is container.gateway
        assert container.service.gateway is container.gateway
        assert container.router.browser is container.browser
        assert container.service.get_platform() == PlatformType.WEB.value

    def test_redis_store_when_configured(self, app_settings: AuthSettings) -> None:
        """Test a Redis URL selects the Redis store."""
        settings = app_settings.model_copy(update={"SESSION_REDIS_URL": "redis://localhost:6379/0"})

        container = build_container(settings)

        assert isinstance(container.store, RedisSessionStore)
        assert container.store.key == settings.SESSION_STORAGE_KEY

    def test_create_listener_and_flow(self, app_settings: AuthSettings) -> None:
        """Test factories for host-facing components."""
        container = build_container(app_settings)

        listener = container.create_listener(set_current_user=Mock(), navigate=Mock())
        flow = container.create_direct_flow()

        assert isinstance(listener, AuthStateListener)
        assert listener.main_route == app_settings.MAIN_ROUTE
        assert flow.redirect_uri == app_settings.app_callback_url
        assert flow.authorization_endpoint == app_settings.GOOGLE_AUTHORIZATION_ENDPOINT


class TestLogging:
    """Test structlog configuration."""

    def test_json_logs_go_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test JSON rendering and the stderr sink."""
        configure_logging("debug", json_output=True)
        try:
            structlog.get_logger().info("Session established", user_id="user-1")
            captured = capsys.readouterr()
        finally:
            structlog.reset_defaults()

        assert captured.out == ""
        event = json.loads(captured.err.strip().splitlines()[-1])
        assert event["event"] == "Session established"
        assert event["user_id"] == "user-1"
        assert event["level"] == "info"

    def test_level_filter(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test events below the level are dropped."""
        configure_logging("warning")
        try:
            structlog.get_logger().info("Sign-in state changed")
            captured = capsys.readouterr()
        finally:
            structlog.reset_defaults()

        assert captured.err == ""
