"""
Purpose: Bridge a live browser feed to the scanner through a mirrored document.
Constraints: Selenium I/O only; detection and control logic live in feed/.

Each rendered post gets a stable ``data-world-opener-key`` in the page and a
parsed copy in ``self.document``. Control groups attached to the copy are
pushed into the page; clicks on them come back through a queue in the page.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from bs4 import BeautifulSoup, Tag
from selenium.common.exceptions import UnexpectedAlertPresentException, WebDriverException

from vrc_world_opener.core.config_models import FeedSettings, OpenerSettings
from vrc_world_opener.core.models import MutationRecord
from vrc_world_opener.core.storage.settings_store import SettingsStore
from vrc_world_opener.feed.controls import ActionController, Control
from vrc_world_opener.feed.scanner import FeedScanner
from vrc_world_opener.feed.watcher import MutationWatcher

logger = logging.getLogger(__name__)

KEY_ATTR = "data-world-opener-key"

INSTALL_JS = """
if (window.__worldOpener) { return false; }
const keyAttr = arguments[0];
const state = window.__worldOpener = {added: [], removed: [], clicks: [], seq: 0, keyAttr: keyAttr};
new MutationObserver((mutations) => {
  for (const m of mutations) {
    for (const n of m.addedNodes) {
      if (state.added.length < 200) { state.added.push(n.nodeName); }
    }
    for (const n of m.removedNodes) {
      if (n.nodeType !== 1) { continue; }
      if (n.hasAttribute(keyAttr)) { state.removed.push(n.getAttribute(keyAttr)); }
      n.querySelectorAll('[' + keyAttr + ']').forEach((e) => state.removed.push(e.getAttribute(keyAttr)));
    }
  }
}).observe(document.body, {childList: true, subtree: true});
document.addEventListener('click', (e) => {
  const btn = e.target.closest && e.target.closest('[data-world-opener-control]');
  if (!btn) { return; }
  e.preventDefault();
  e.stopPropagation();
  if (!btn.disabled) { state.clicks.push(btn.getAttribute('data-world-opener-control')); }
}, true);
return true;
"""

DRAIN_JS = """
const s = window.__worldOpener;
if (!s) { return null; }
// a detached node that was re-inserted (moved) keeps its key and buttons
const gone = [...new Set(s.removed)].filter(
  (k) => !document.querySelector('[' + s.keyAttr + '="' + k + '"]')
);
const out = {added: s.added, removed: gone, clicks: s.clicks};
s.added = []; s.removed = []; s.clicks = [];
return out;
"""

COLLECT_JS = """
const [selector, keyAttr] = arguments;
const s = window.__worldOpener;
const out = [];
document.querySelectorAll(selector).forEach((el) => {
  if (el.hasAttribute(keyAttr)) { return; }
  s.seq += 1;
  el.setAttribute(keyAttr, 'p' + s.seq);
  out.push([el.getAttribute(keyAttr), el.outerHTML]);
});
return out;
"""

INSERT_JS = """
const [keyAttr, key, barSelector, html] = arguments;
const post = document.querySelector('[' + keyAttr + '="' + key + '"]');
if (!post) { return false; }
if (post.querySelector('.vrchat-world-link-container')) { return true; }
const bar = post.querySelector(barSelector);
if (!bar || !bar.parentNode) { return false; }
const tpl = document.createElement('template');
tpl.innerHTML = html;
bar.parentNode.insertBefore(tpl.content.firstElementChild, bar);
return true;
"""

UPDATE_JS = """
const [id, label, disabled] = arguments;
document.querySelectorAll('[data-world-opener-control="' + id + '"]').forEach((b) => {
  b.textContent = label;
  b.disabled = disabled;
});
"""

REMOVE_GROUPS_JS = "document.querySelectorAll('.vrchat-world-link-container').forEach((e) => e.remove());"
OPEN_JS = "window.open(arguments[0], '_blank', 'noopener');"
ALERT_JS = "window.alert(arguments[0]);"


class LiveFeedBridge:
    def __init__(
        self,
        driver,
        store: SettingsStore,
        controller: ActionController,
        opener_settings: Optional[OpenerSettings] = None,
    ):
        self.driver = driver
        self.store = store
        self.controller = controller
        self.opener_settings = opener_settings or OpenerSettings()
        self.scanner = FeedScanner(controller, store.read_settings(), self.opener_settings)
        self.watcher = MutationWatcher(
            rescan=self.rescan,
            read_settings=store.read_settings,
            delay=self.opener_settings.debounce_seconds,
            forget=self.scanner.forget,
        )
        self.document = BeautifulSoup("<html><body></body></html>", "html.parser")
        self.mirror: Dict[str, Tag] = {}
        self.pushed: Set[str] = set()
        self._clicks: Set[asyncio.Task] = set()
        self._stopped = False

        controller.opener = self.open_in_page
        controller.notifier = self.alert_in_page
        controller.add_listener(self.update_control)
        store.subscribe(self.on_settings_changed)

    # -- page I/O --------------------------------------------------------

    def _run(self, script: str, *args: Any) -> Any:
        try:
            return self.driver.execute_script(script, *args)
        except UnexpectedAlertPresentException:
            logger.debug("Alert still open; skipping page call")
        except WebDriverException as exc:
            logger.warning("Page script failed: %s", exc.msg or exc)
        return None

    def open_in_page(self, url: str) -> None:
        self._run(OPEN_JS, url)

    def alert_in_page(self, message: str) -> None:
        logger.warning(message)
        self._run(ALERT_JS, message)

    def update_control(self, control: Control) -> None:
        self._run(UPDATE_JS, control.control_id, control.label, control.disabled)

    def install(self) -> bool:
        """Install the observer and click relay; True when this page was fresh."""
        return bool(self._run(INSTALL_JS, KEY_ATTR))

    # -- mirror ----------------------------------------------------------

    def sync_mirror(self) -> int:
        """Copy posts the page has not shown us yet into the mirror document."""
        rows = self._run(COLLECT_JS, self.opener_settings.selectors.post, KEY_ATTR) or []
        added = 0
        for key, html in rows:
            fragment = BeautifulSoup(html, "html.parser")
            post = fragment.find(True)
            if post is None:
                continue
            self.document.body.append(post.extract())
            self.mirror[key] = post
            added += 1
        return added

    def drop_posts(self, keys: List[str]) -> List[Tag]:
        posts = [self.mirror.pop(key) for key in keys if key in self.mirror]
        for post in posts:
            self.pushed.discard(post.get(KEY_ATTR))
        return posts

    def push_pending(self) -> int:
        """Insert control groups attached in the mirror into the page."""
        pushed = 0
        bar = self.opener_settings.selectors.action_bar
        for entry in self.scanner.registry:
            key = entry.post.get(KEY_ATTR)
            if entry.group is None or not key or key in self.pushed:
                continue
            if self._run(INSERT_JS, KEY_ATTR, key, bar, str(entry.group.container)):
                self.pushed.add(key)
                pushed += 1
        return pushed

    # -- pipeline hooks --------------------------------------------------

    def rescan(self, settings: FeedSettings) -> None:
        self.sync_mirror()
        self.scanner.scan(self.document, settings)
        self.push_pending()

    def on_settings_changed(self, settings: FeedSettings) -> None:
        self._run(REMOVE_GROUPS_JS)
        self.pushed.clear()
        self.sync_mirror()
        self.scanner.apply_settings(self.document, settings)
        self.push_pending()

    def reset_mirror(self) -> None:
        posts = list(self.mirror.values())
        self.scanner.forget(posts)
        for post in posts:
            post.extract()
        self.mirror.clear()
        self.pushed.clear()

    def tick(self) -> None:
        self.store.poll_changes()
        drained = self._run(DRAIN_JS)
        if drained is None:
            # navigation replaced the page: start over on the new one
            if self.install():
                self.reset_mirror()
                self.watcher.notify([MutationRecord(added_nodes=["#document"])])
            return

        removed = self.drop_posts(drained.get("removed") or [])
        record = MutationRecord(added_nodes=drained.get("added") or [], removed_nodes=removed)
        self.watcher.notify([record])
        for post in removed:
            post.extract()

        for control_id in drained.get("clicks") or []:
            task = asyncio.create_task(self.controller.activate(control_id))
            self._clicks.add(task)
            task.add_done_callback(self._clicks.discard)

    async def run(self, start_url: Optional[str] = None) -> None:
        if start_url:
            self.driver.get(start_url)
        self.install()
        serve_task = asyncio.create_task(self.watcher.serve())
        self.store.poll_changes()
        self.watcher.run_rescan()
        try:
            while not self._stopped:
                self.tick()
                await asyncio.sleep(self.opener_settings.poll_interval_seconds)
        finally:
            self.watcher.stop()
            await serve_task

    def stop(self) -> None:
        self._stopped = True
