"""
Android OAuth Provider

System browser sign-in redirecting straight to the app's URL scheme.
"""

from __future__ import annotations

from checklist_auth.oauth.models import PlatformType
from checklist_auth.oauth.providers.mobile import MobileOAuthProvider


class AndroidOAuthProvider(MobileOAuthProvider):
    """
    Android OAuth provider.

    The backend redirects to the custom scheme directly. When the browser
    result carries no tokens, the deep link router completes sign-in.
    """

    platform = PlatformType.ANDROID
    completes_by_deep_link = True
