"""
Purpose: Extract a world name from normalized post text.
Constraints: Pure text processing; returns None on a miss instead of raising.
"""

# Imports
import re
from typing import Iterable, Optional

from vrc_world_opener.detection.patterns import WORLD_PATTERNS, ExtractionPattern

# Constants
_TRAILING_HASHTAG = re.compile(r"\s*#.*\Z", re.DOTALL)
_TRAILING_BRACKETS = re.compile(r"[』」】)）]+\Z")
_PICTOGRAPHS = re.compile("[\U0001F300-\U0001F9FF]")
_SURROGATES = re.compile("[\ud800-\udfff]")


# Helpers
def strip_surrogates(text: str) -> str:
    """Drop unpaired surrogate code units left behind by broken emoji."""
    return _SURROGATES.sub("", text)


def clean_world_name(raw: Optional[str]) -> Optional[str]:
    """Apply capture cleanup; None when nothing survives."""
    if not raw:
        return None
    name = raw.strip()
    name = _TRAILING_HASHTAG.sub("", name).strip()
    # nested bracket forms can leave closing glyphs behind
    name = _TRAILING_BRACKETS.sub("", name).strip()
    name = _PICTOGRAPHS.sub("", name).strip()
    name = strip_surrogates(name).strip()
    return name or None


# Public API
def extract_world_name(
    text: Optional[str],
    patterns: Iterable[ExtractionPattern] = WORLD_PATTERNS,
) -> Optional[str]:
    """Return the first pattern's cleaned capture, or None."""
    if not text or not isinstance(text, str):
        return None
    for pattern in patterns:
        name = clean_world_name(pattern.attempt(text))
        if name:
            return name
    return None
