"""
Purpose: Evaluate one post and attach its world controls at most once per settings epoch.
Constraints: Reads and annotates the post only; never creates or removes posts.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from bs4 import Tag

from vrc_world_opener.core.config_models import FeedSettings, OpenerSettings
from vrc_world_opener.core.models import KIND_ID, KIND_NAME, WorldReference
from vrc_world_opener.core.storage.post_registry import PostRegistry
from vrc_world_opener.core.text_normalization import contains_hashtag, preview_text, text_with_emoji
from vrc_world_opener.detection.extractor import extract_world_name
from vrc_world_opener.detection.links import resolve_world_id
from vrc_world_opener.feed.controls import BUTTON_CLASS, ActionController, ControlGroup

logger = logging.getLogger(__name__)


class PostProcessor:
    def __init__(self, registry: PostRegistry, controller: ActionController, opener_settings: Optional[OpenerSettings] = None):
        self.registry = registry
        self.controller = controller
        self.opener_settings = opener_settings or OpenerSettings()

    def find_references(self, post: Tag, text: str) -> List[WorldReference]:
        """Id from the post's links first, then a name from its text."""
        references = []
        world_id = resolve_world_id(post.select("a"))
        if world_id:
            references.append(WorldReference(KIND_ID, world_id))
        world_name = extract_world_name(text)
        if world_name:
            references.append(WorldReference(KIND_NAME, world_name))
        return references

    def process(self, post: Optional[Tag], settings: FeedSettings) -> Optional[ControlGroup]:
        """Return the attached group, or None when the post is skipped."""
        if post is None or self.registry.is_processed(post):
            return None
        # Marked before any further work so a re-entrant call is a no-op
        entry = self.registry.mark_processed(post)

        selectors = self.opener_settings.selectors
        text_container = post.select_one(selectors.post_text)
        if text_container is None:
            return None

        text = text_with_emoji(text_container)
        if not text or not contains_hashtag(text, self.opener_settings.trigger_hashtag):
            return None

        entry.references = self.find_references(post, text)
        if not entry.references:
            logger.debug("No world reference in post: %s", preview_text(text))
            return None

        if post.select_one(f".{BUTTON_CLASS}") is not None:
            return None

        world_id = next((r.value for r in entry.references if r.kind == KIND_ID), None)
        world_name = next((r.value for r in entry.references if r.kind == KIND_NAME), None)
        group = self.controller.build_group(
            world_id,
            world_name,
            show_open=settings.show_open_control,
            show_search=settings.show_search_control,
        )
        if group is None:
            return None

        action_bar = post.select_one(selectors.action_bar)
        if action_bar is None or action_bar.parent is None:
            return None
        action_bar.insert_before(group.container)

        self.controller.register(group)
        entry.group = group
        logger.info(
            "Attached %s for %s",
            "+".join(c.kind for c in group.controls),
            world_id or repr(world_name),
        )
        return group
