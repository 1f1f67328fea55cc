"""
Purpose: Recover world ids from post links and build target-page URLs.
Constraints: Pure helpers; no network access.
"""

# Imports
import re
from typing import Iterable, Optional
from urllib.parse import quote

from bs4 import Tag

from vrc_world_opener.detection.extractor import strip_surrogates

# Constants
DEFAULT_WEB_BASE = "https://vrchat.com/home"

# wrld_ + lowercase 8-4-4-4-12; a trailing hex digit or hyphen means the token is too long
WORLD_ID = r"wrld_[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}(?![0-9a-f-])"

_PATH_FORM = re.compile(r"(?i:vrchat\.com/home/world/)(" + WORLD_ID + ")")
_QUERY_FORM = re.compile(r"[?&]worldId=(" + WORLD_ID + ")")
_WORLD_ID_ONLY = re.compile(WORLD_ID)

# Characters encodeURIComponent leaves untouched
_URI_COMPONENT_SAFE = "-_.!~*'()"


# Helpers
def is_world_id(value: Optional[str]) -> bool:
    return bool(value) and _WORLD_ID_ONLY.fullmatch(value) is not None


def extract_world_id(value: Optional[str]) -> Optional[str]:
    """Match the path form first, then the ?worldId= query form."""
    if not value:
        return None
    match = _PATH_FORM.search(value) or _QUERY_FORM.search(value)
    return match.group(1) if match else None


def safe_quote(value: Optional[str]) -> str:
    """encodeURIComponent-style quoting that survives broken surrogate pairs."""
    if not value:
        return ""
    try:
        return quote(strip_surrogates(value), safe=_URI_COMPONENT_SAFE)
    except UnicodeEncodeError:
        return quote(value.encode("ascii", "ignore").decode("ascii"), safe=_URI_COMPONENT_SAFE)


def world_url(world_id: str, web_base: str = DEFAULT_WEB_BASE) -> str:
    return f"{web_base.rstrip('/')}/world/{world_id}"


def search_url(world_name: str, web_base: str = DEFAULT_WEB_BASE) -> str:
    return f"{web_base.rstrip('/')}/search/worlds/{safe_quote(world_name)}"


# Public API
def resolve_world_id(anchors: Iterable[Tag]) -> Optional[str]:
    """First world id found across anchors, checking href, text, then title of each."""
    for anchor in anchors:
        for field in (anchor.get("href"), anchor.get_text(), anchor.get("title")):
            world_id = extract_world_id(field)
            if world_id:
                return world_id
    return None
