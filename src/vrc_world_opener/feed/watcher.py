"""
Purpose: Coalesce bursts of DOM mutations into single rescans.
Constraints: Scheduling only; scanning itself is delegated to a callback.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, Optional

from vrc_world_opener.core.config_models import FeedSettings
from vrc_world_opener.core.metrics import get_metrics
from vrc_world_opener.core.models import MutationRecord

logger = logging.getLogger(__name__)

RESCAN = "rescan"
STOP = "stop"


class Debouncer:
    """Single-flight timer: every trigger cancels the pending call and starts a new one."""

    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        self.cancel()
        self._handle = asyncio.get_running_loop().call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self.callback()


class MutationWatcher:
    """
    Receives mutation batches from the host and enqueues debounced rescans.

    ``serve()`` drains the queue; each rescan re-reads the enabled flag so a
    scan never runs on a feed the user switched off.
    """

    def __init__(
        self,
        rescan: Callable[[FeedSettings], object],
        read_settings: Callable[[], FeedSettings],
        delay: float = 0.3,
        forget: Optional[Callable[[Iterable[object]], object]] = None,
    ):
        self.rescan = rescan
        self.read_settings = read_settings
        self.forget = forget
        self.tasks: asyncio.Queue[str] = asyncio.Queue()
        self.debouncer = Debouncer(delay, lambda: self.tasks.put_nowait(RESCAN))
        self.scans = 0

    def notify(self, records: Iterable[MutationRecord]) -> bool:
        """Handle one batch; returns True when a rescan was (re)scheduled."""
        records = list(records)
        removed = [node for record in records for node in record.removed_nodes]
        if removed and self.forget:
            self.forget(removed)
        if not any(record.added_nodes for record in records):
            return False
        get_metrics().record("watcher.batches")
        self.debouncer.trigger()
        return True

    def _current_settings(self) -> FeedSettings:
        try:
            return self.read_settings()
        except Exception as exc:
            logger.warning("Settings read failed, scanning with defaults: %s", exc)
            return FeedSettings()

    def run_rescan(self) -> None:
        settings = self._current_settings()
        if not settings.enabled:
            logger.debug("Rescan skipped: opener disabled")
            return
        self.scans += 1
        try:
            self.rescan(settings)
        except Exception:
            logger.exception("Rescan failed")
            get_metrics().record_error("watcher.rescan")

    async def serve(self) -> None:
        while True:
            task = await self.tasks.get()
            if task == STOP:
                break
            if task == RESCAN:
                self.run_rescan()

    def stop(self) -> None:
        self.debouncer.cancel()
        self.tasks.put_nowait(STOP)
