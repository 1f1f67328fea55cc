"""
Purpose: Open/search controls injected into posts and their click state machine.
Constraints: Owns control lifecycle only; detection decisions happen in post_processor.py.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import webbrowser
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol

from bs4 import BeautifulSoup, Tag

from vrc_world_opener.core.metrics import get_metrics
from vrc_world_opener.core.models import SearchResult
from vrc_world_opener.detection.links import DEFAULT_WEB_BASE, search_url, world_url

logger = logging.getLogger(__name__)

CONTAINER_CLASS = "vrchat-world-link-container"
BUTTON_CLASS = "vrchat-world-link-btn"
SEARCH_BUTTON_CLASS = "search-only-btn"
CONTROL_ID_ATTR = "data-world-opener-control"

AUTH_NOTICE = "VRChatへのログインが必要です。ログインしてから再度お試しください。"


class ControlState(str, Enum):
    IDLE = "idle"
    BUSY = "busy"
    SUCCESS = "success"
    NEEDS_AUTH = "needs_auth"
    NOT_FOUND = "not_found"


LABELS = {
    ControlState.IDLE: "🔗 ワールドを開く",
    ControlState.BUSY: "🔄 取得中...",
    ControlState.SUCCESS: "✅ 開きました",
    ControlState.NEEDS_AUTH: "⚠️ ログインが必要",
    ControlState.NOT_FOUND: "❌ 取得に失敗しました",
}
SEARCH_LABEL = "🔍 ワールド名で検索"

TERMINAL_STATES = (ControlState.SUCCESS, ControlState.NEEDS_AUTH, ControlState.NOT_FOUND)


class WorldSearcher(Protocol):
    def search_world(self, name: str) -> SearchResult: ...


Opener = Callable[[str], object]
Notifier = Callable[[str], None]
ControlListener = Callable[["Control"], None]


def _new_tag(name: str, **attrs) -> Tag:
    return BeautifulSoup("", "html.parser").new_tag(name, attrs=attrs)


class Control:
    """A button bound to one post; mirrors its state into the button Tag."""

    kind = "control"

    def __init__(self, control_id: str, button: Tag, controller: "ActionController"):
        self.control_id = control_id
        self.button = button
        self.controller = controller
        self.state = ControlState.IDLE
        self.disabled = False

    def _render(self, label: str) -> None:
        self.button.string = label
        if self.disabled:
            self.button["disabled"] = ""
        elif self.button.has_attr("disabled"):
            del self.button["disabled"]
        self.controller._notify(self)

    @property
    def label(self) -> str:
        return self.button.get_text()


class OpenControl(Control):
    """
    Opens the world page.

    States: idle -> busy -> {success | needs_auth | not_found} -> idle, or
    idle -> success -> idle when the id was already known from a post link.
    Terminal states revert after the controller's reset delay.
    """

    kind = "open"

    def __init__(self, control_id, button, controller, world_id: Optional[str] = None, world_name: Optional[str] = None):
        super().__init__(control_id, button, controller)
        self.world_id = world_id
        self.world_name = world_name
        self._reset_handle: Optional[asyncio.TimerHandle] = None

    def set_state(self, state: ControlState, disabled: bool = False) -> None:
        previous = self.state
        self.state = state
        self.disabled = disabled
        self._render(LABELS[state])
        if previous != state:
            logger.debug("Control %s: %s -> %s", self.control_id, previous.value, state.value)
        if state in TERMINAL_STATES:
            get_metrics().record(f"control.{state.value}", success=state == ControlState.SUCCESS)
            self._schedule_reset()

    def _schedule_reset(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.cancel()
        loop = asyncio.get_running_loop()
        self._reset_handle = loop.call_later(self.controller.reset_delay, self._revert)

    def _revert(self) -> None:
        self._reset_handle = None
        self.set_state(ControlState.IDLE)

    def cancel_reset(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None

    async def activate(self) -> ControlState:
        if self.disabled:
            return self.state

        if self.world_id:
            self.controller.open(world_url(self.world_id, self.controller.web_base))
            self.set_state(ControlState.SUCCESS)
            return self.state

        self.set_state(ControlState.BUSY, disabled=True)
        try:
            result = await asyncio.to_thread(self.controller.searcher.search_world, self.world_name)
        except Exception as exc:
            logger.warning("World search for %r failed: %s", self.world_name, exc)
            result = SearchResult(success=False, error=str(exc))

        if result and result.success and result.world_id:
            self.controller.open(world_url(result.world_id, self.controller.web_base))
            self.set_state(ControlState.SUCCESS, disabled=True)
        elif result and result.needs_auth:
            self.set_state(ControlState.NEEDS_AUTH, disabled=True)
            self.controller.notify_user(AUTH_NOTICE)
        else:
            self.set_state(ControlState.NOT_FOUND, disabled=True)
        return self.state


class SearchControl(Control):
    """Opens the search page for the name; no network round trip."""

    kind = "search"

    def __init__(self, control_id, button, controller, world_name: str):
        super().__init__(control_id, button, controller)
        self.world_name = world_name

    def activate(self) -> ControlState:
        if not self.disabled:
            self.controller.open(search_url(self.world_name, self.controller.web_base))
        return self.state


@dataclass
class ControlGroup:
    container: Tag
    controls: List[Control] = field(default_factory=list)

    @property
    def open_control(self) -> Optional[OpenControl]:
        return next((c for c in self.controls if isinstance(c, OpenControl)), None)

    @property
    def search_control(self) -> Optional[SearchControl]:
        return next((c for c in self.controls if isinstance(c, SearchControl)), None)

    def remove(self) -> None:
        for control in self.controls:
            if isinstance(control, OpenControl):
                control.cancel_reset()
        self.container.extract()


class ActionController:
    """Creates controls, dispatches clicks by control id, and reports state changes."""

    def __init__(
        self,
        searcher: WorldSearcher,
        opener: Opener = webbrowser.open_new_tab,
        notifier: Optional[Notifier] = None,
        reset_delay: float = 2.0,
        web_base: str = DEFAULT_WEB_BASE,
    ):
        self.searcher = searcher
        self.opener = opener
        self.notifier = notifier
        self.reset_delay = reset_delay
        self.web_base = web_base
        self._controls: Dict[str, Control] = {}
        self._listeners: List[ControlListener] = []
        self._ids = itertools.count(1)

    def add_listener(self, listener: ControlListener) -> None:
        self._listeners.append(listener)

    def _notify(self, control: Control) -> None:
        for listener in list(self._listeners):
            listener(control)

    def open(self, url: str) -> None:
        logger.info("Opening %s", url)
        self.opener(url)

    def notify_user(self, message: str) -> None:
        if self.notifier:
            self.notifier(message)
        else:
            logger.warning(message)

    def get(self, control_id: str) -> Optional[Control]:
        return self._controls.get(control_id)

    @property
    def controls(self) -> List[Control]:
        return list(self._controls.values())

    def _button(self, classes: List[str], label: str, title: str, aria: str) -> tuple[str, Tag]:
        control_id = f"wo-{next(self._ids)}"
        button = _new_tag(
            "button",
            **{"class": classes, "title": title, "aria-label": aria, "type": "button", CONTROL_ID_ATTR: control_id},
        )
        button.string = label
        return control_id, button

    def build_group(
        self,
        world_id: Optional[str],
        world_name: Optional[str],
        show_open: bool,
        show_search: bool,
    ) -> Optional[ControlGroup]:
        """Build the container; None when no control qualifies."""
        group = ControlGroup(container=_new_tag("div", **{"class": [CONTAINER_CLASS]}))

        if show_open and (world_id or world_name):
            if world_id:
                title = "ポスト内のリンクから検出されたワールドを開く"
                aria = "このワールド のワールドページを開く"
            else:
                title = f'"{world_name}" をVRChatで検索'
                aria = f"{world_name} のワールドページを開く"
            control_id, button = self._button([BUTTON_CLASS], LABELS[ControlState.IDLE], title, aria)
            if world_id:
                button["data-world-id"] = world_id
            group.controls.append(OpenControl(control_id, button, self, world_id=world_id, world_name=world_name))

        if show_search and world_name:
            control_id, button = self._button(
                [BUTTON_CLASS, SEARCH_BUTTON_CLASS],
                SEARCH_LABEL,
                f'"{world_name}" をVRChatの検索ページで開く',
                f"{world_name} の検索ページを開く",
            )
            group.controls.append(SearchControl(control_id, button, self, world_name=world_name))

        if not group.controls:
            return None
        for control in group.controls:
            group.container.append(control.button)
        return group

    def register(self, group: ControlGroup) -> None:
        for control in group.controls:
            self._controls[control.control_id] = control

    def release(self, group: ControlGroup) -> None:
        for control in group.controls:
            self._controls.pop(control.control_id, None)
            if isinstance(control, OpenControl):
                control.cancel_reset()

    def reset(self) -> None:
        for control in self._controls.values():
            if isinstance(control, OpenControl):
                control.cancel_reset()
        self._controls.clear()

    async def activate(self, control_id: str) -> Optional[ControlState]:
        control = self.get(control_id)
        if control is None:
            logger.debug("Click on unknown control %s", control_id)
            return None
        if isinstance(control, OpenControl):
            return await control.activate()
        return control.activate()
