"""
Purpose: Flatten post markup into one logical string and build log previews.
Constraints: Pure helpers only; no side effects.
"""

# Imports
from itertools import chain
from textwrap import shorten
from typing import Optional, Union

from bs4 import NavigableString, Tag
from bs4.element import PreformattedString


# Helpers
def preview_text(text: str, width: int = 80) -> str:
    """Return a single-line preview of text, trimmed to width."""
    if not text:
        return "(no text)"
    sanitized = " ".join(text.split())
    return shorten(sanitized, width=width, placeholder="...")


def text_with_emoji(root: Optional[Union[Tag, NavigableString]]) -> str:
    """
    Concatenate the text nodes under root in document order.

    The host renders many emoji as <img alt="🌍">, so each image's alt text
    stands in for the glyph it draws. Comments, CDATA and doctype nodes are
    not text nodes and are skipped.
    """
    if root is None:
        return ""
    if isinstance(root, NavigableString):
        return "" if isinstance(root, PreformattedString) else str(root)

    parts = []
    for node in chain((root,), root.descendants):
        if isinstance(node, Tag):
            if node.name == "img" and node.get("alt"):
                parts.append(node["alt"])
        elif not isinstance(node, PreformattedString):
            parts.append(str(node))
    return "".join(parts)


def contains_hashtag(text: str, hashtag: str) -> bool:
    """Case-insensitive substring test for the trigger hashtag."""
    if not text or not hashtag:
        return False
    return hashtag.lower() in text.lower()
