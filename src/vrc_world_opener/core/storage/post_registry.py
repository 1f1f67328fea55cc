"""
Purpose: Side table of per-post processing state for one settings epoch.
Constraints: In-memory only; never touches the host document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional

from bs4 import Tag

from vrc_world_opener.core.models import WorldReference


@dataclass
class PostEntry:
    post: Tag
    processed: bool = False
    group: Optional[Any] = None
    references: List[WorldReference] = field(default_factory=list)


class PostRegistry:
    """
    Identity-keyed map from post Tag to its PostEntry.

    The entry holds a strong reference to the post, so an id() key cannot be
    reused by another object while the entry lives.
    """

    def __init__(self):
        self._entries: Dict[int, PostEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PostEntry]:
        return iter(list(self._entries.values()))

    def get(self, post: Tag) -> Optional[PostEntry]:
        return self._entries.get(id(post))

    def is_processed(self, post: Tag) -> bool:
        entry = self.get(post)
        return bool(entry and entry.processed)

    def mark_processed(self, post: Tag) -> PostEntry:
        entry = self._entries.get(id(post))
        if entry is None:
            entry = PostEntry(post=post)
            self._entries[id(post)] = entry
        entry.processed = True
        return entry

    def forget(self, nodes: Iterable[Any]) -> List[PostEntry]:
        """Drop entries for removed nodes and for posts nested inside them."""
        removed_ids = {id(node) for node in nodes if isinstance(node, Tag)}
        if not removed_ids:
            return []
        dropped = []
        for key, entry in list(self._entries.items()):
            if key in removed_ids or any(id(parent) in removed_ids for parent in entry.post.parents):
                dropped.append(self._entries.pop(key))
        return dropped

    def clear(self) -> List[PostEntry]:
        entries = list(self._entries.values())
        self._entries.clear()
        return entries
