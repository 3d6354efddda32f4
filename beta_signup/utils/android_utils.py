"""Play Store listing helpers."""

import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

from beta_signup.utils.constants import ANDROID_APP_ID_PATTERN, PLAY_STORE_HOST

_APP_ID_RE = re.compile(ANDROID_APP_ID_PATTERN)


def extract_app_id(play_store_url: str) -> Optional[str]:
    """Return the package id (``com.example.app``) of a Play Store URL, or None."""
    try:
        parsed = urlparse(play_store_url.strip())
    except (AttributeError, ValueError):
        return None

    if parsed.scheme not in ("http", "https") or parsed.hostname != PLAY_STORE_HOST:
        return None

    values = parse_qs(parsed.query).get("id")
    if not values:
        return None

    app_id = values[0]
    if _APP_ID_RE.match(app_id):
        return app_id
    return None


def is_valid_play_store_url(play_store_url: str) -> bool:
    return extract_app_id(play_store_url) is not None
