"""
Platform OAuth Provider Implementations

Concrete sign-in strategies for web, iOS and Android.
"""

from checklist_auth.oauth.providers.android import AndroidOAuthProvider
from checklist_auth.oauth.providers.ios import IOSOAuthProvider
from checklist_auth.oauth.providers.mobile import MobileOAuthProvider
from checklist_auth.oauth.providers.web import WebOAuthProvider

__all__ = [
    "AndroidOAuthProvider",
    "IOSOAuthProvider",
    "MobileOAuthProvider",
    "WebOAuthProvider",
]
