"""
Purpose: Enumerate the posts of a document and run each through the post processor.
Constraints: Orchestration only; per-post failures are contained and logged.
"""

from __future__ import annotations

from typing import Iterable, Optional

from bs4 import BeautifulSoup, Tag

from vrc_world_opener.core.config_models import FeedSettings, OpenerSettings
from vrc_world_opener.core.logging import UnifiedLogger
from vrc_world_opener.core.metrics import get_metrics
from vrc_world_opener.core.models import ScanReport
from vrc_world_opener.core.storage.post_registry import PostRegistry
from vrc_world_opener.feed.controls import CONTAINER_CLASS, ActionController
from vrc_world_opener.feed.post_processor import PostProcessor


class FeedScanner:
    """Owns the post registry and the current settings epoch."""

    def __init__(
        self,
        controller: ActionController,
        settings: Optional[FeedSettings] = None,
        opener_settings: Optional[OpenerSettings] = None,
    ):
        self.unified_logger = UnifiedLogger(self.__class__.__name__)
        self.logger = self.unified_logger.get_logger()
        self.controller = controller
        self.opener_settings = opener_settings or OpenerSettings()
        self.settings = settings or FeedSettings()
        self.epoch = 0
        self.registry = PostRegistry()
        self.processor = PostProcessor(self.registry, controller, self.opener_settings)

    def scan(self, document: Tag | BeautifulSoup, settings: Optional[FeedSettings] = None) -> ScanReport:
        settings = settings or self.settings
        report = ScanReport()
        with self.unified_logger.time_operation("scan"):
            for post in document.select(self.opener_settings.selectors.post):
                report.seen += 1
                already = self.registry.is_processed(post)
                try:
                    group = self.processor.process(post, settings)
                except Exception as exc:
                    report.failed += 1
                    self.unified_logger.log_error_with_context(exc, {"epoch": self.epoch, "post_index": report.seen - 1})
                    continue
                if not already:
                    report.processed += 1
                if group is not None:
                    report.attached += 1

        metrics = get_metrics()
        metrics.record("scan.runs")
        metrics.record("scan.posts_processed", amount=report.processed)
        metrics.record("scan.controls_attached", amount=report.attached)
        if report.processed or report.failed:
            self.unified_logger.log_activity(
                "scan",
                {"epoch": self.epoch, **vars(report)},
                level="ERROR" if report.failed else "DEBUG",
            )
        return report

    def forget(self, nodes: Iterable[object]) -> int:
        """Drop state for posts that left the document."""
        dropped = self.registry.forget(nodes)
        for entry in dropped:
            if entry.group is not None:
                self.controller.release(entry.group)
        return len(dropped)

    def apply_settings(self, document: Tag | BeautifulSoup, settings: FeedSettings) -> Optional[ScanReport]:
        """Start a new epoch: remove every control group, forget all posts, rescan if enabled."""
        self.settings = settings
        self.epoch += 1
        for entry in self.registry.clear():
            if entry.group is not None:
                entry.group.remove()
        for container in document.select(f".{CONTAINER_CLASS}"):
            container.extract()
        self.controller.reset()
        self.logger.info(f"Settings epoch {self.epoch}: {settings.to_storage()}")
        if settings.enabled:
            return self.scan(document, settings)
        return None
