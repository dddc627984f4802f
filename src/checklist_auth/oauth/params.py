"""
Callback Parameter Normalization

Flattens deep link query strings and web hash fragments into one
parameter map shared by every callback path.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from urllib.parse import parse_qsl, urlsplit

CALLBACK_KEYS = (
    "access_token",
    "refresh_token",
    "token_type",
    "expires_in",
    "error",
    "error_description",
)

# Authorization code callbacks of the direct Google flow
AUTHORIZATION_CODE_KEYS = ("code", "state", "error", "error_description")


def _parse_component(component: str | None) -> dict[str, str]:
    if not component:
        return {}
    return dict(parse_qsl(component.lstrip("#?"), keep_blank_values=False))


def normalize_callback_params(
    url: str | None = None,
    fragment: str | None = None,
    query: str | Mapping[str, object] | None = None,
    keys: Iterable[str] = CALLBACK_KEYS,
) -> dict[str, str]:
    """
    Normalize callback parameters into a flat map.

    Sources are merged in order URL query, URL fragment, explicit query,
    explicit fragment; later sources win. Only the requested keys are kept,
    and non-string values (e.g. repeated route params) are dropped.

    Args:
        url: Full callback URL (deep link or browser result URL)
        fragment: Hash fragment, with or without the leading '#'
        query: Query string or already parsed route parameters
        keys: Parameter names to keep, token callback keys by default

    Returns:
        Flat parameter map containing only requested keys that were present
    """
    merged: dict[str, str] = {}

    if url:
        parts = urlsplit(url)
        merged.update(_parse_component(parts.query))
        merged.update(_parse_component(parts.fragment))

    if isinstance(query, Mapping):
        merged.update({key: value for key, value in query.items() if isinstance(value, str)})
    else:
        merged.update(_parse_component(query))

    merged.update(_parse_component(fragment))

    return {key: merged[key] for key in keys if merged.get(key)}


def has_tokens(params: Mapping[str, str]) -> bool:
    """Check whether callback parameters carry an access token."""
    return bool(params.get("access_token"))
