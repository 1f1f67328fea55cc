"""
Purpose: Ordered world-name matchers for post text.
Constraints: Pattern definitions only; cleanup of captures lives in extractor.py.
"""

# Imports
import re
from dataclasses import dataclass
from typing import Optional, Pattern, Tuple

# Constants
# Terminators shared by the single-line forms: end of text, a hashtag, a newline or markup
_END = r"(?:\s*\Z|\s*#|\n|<)"


# Public API
@dataclass(frozen=True)
class ExtractionPattern:
    """One matcher: a compiled regex and the group holding the world name."""

    name: str
    regex: Pattern[str]
    group: int = 1

    def attempt(self, text: str) -> Optional[str]:
        """Return the raw capture, or None when the pattern does not apply."""
        match = self.regex.search(text)
        if not match:
            return None
        return match.group(self.group) or None


def _pattern(name: str, source: str, flags: int = 0) -> ExtractionPattern:
    return ExtractionPattern(name=name, regex=re.compile(source, flags))


# Earlier entries win; the list is not ranked by match quality.
WORLD_PATTERNS: Tuple[ExtractionPattern, ...] = (
    _pattern("world_colon", r"World\s*[:：]\s*(.+?)" + _END, re.IGNORECASE),
    _pattern("world_bracket", r"World\s*[『「【(（](.+?)[』」】)）]", re.IGNORECASE),
    _pattern("globe_emoji", r"(?:🌐|🌍|🌎|🌏|🗺️)\s*(.+?)(?:\s*\Z|\s*#|\r?\n|\r|<)"),
    _pattern("ja_colon", r"ワールド(?:名)?\s*[:：]\s*(.+?)" + _END),
    _pattern("ja_space", r"ワールド(?:名)?[\s　]+(.+?)" + _END),
    _pattern("world_name_colon", r"World\s*name\s*[:：]\s*(.+?)" + _END, re.IGNORECASE),
    _pattern("line_then_by", r"^(.+?)\n+By\s", re.IGNORECASE | re.MULTILINE),
    _pattern("line_then_author", r"^(.+?)\n+Author\s*[:：]?\s", re.IGNORECASE | re.MULTILINE),
)
