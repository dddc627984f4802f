"""
Platform OAuth Integration

Google sign-in across web, iOS and Android through a hosted auth backend,
with session management and auth state reconciliation.
"""

from checklist_auth.oauth.deep_link import DeepLinkRouter
from checklist_auth.oauth.factory import ProviderFactory, detect_platform
from checklist_auth.oauth.listener import AuthStateListener, ListenerState
from checklist_auth.oauth.models import (
    AuthChangeEvent,
    AuthStatus,
    AuthTokens,
    AuthUser,
    OAuthConfig,
    OAuthError,
    OAuthErrorKind,
    OAuthResult,
    PlatformType,
    Session,
    Severity,
)
from checklist_auth.oauth.provider import PlatformOAuthProvider
from checklist_auth.oauth.service import OAuthService
from checklist_auth.oauth.session import SessionGateway
from checklist_auth.oauth.token_exchange import TokenExchangeClient

__all__ = [
    "AuthChangeEvent",
    "AuthStateListener",
    "AuthStatus",
    "AuthTokens",
    "AuthUser",
    "DeepLinkRouter",
    "ListenerState",
    "OAuthConfig",
    "OAuthError",
    "OAuthErrorKind",
    "OAuthResult",
    "OAuthService",
    "PlatformOAuthProvider",
    "PlatformType",
    "ProviderFactory",
    "Session",
    "SessionGateway",
    "Severity",
    "TokenExchangeClient",
    "detect_platform",
]
