from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Protocol

from .config import DEFAULT_MAX_INCLUDE_DEPTH
from .domain_levels import iterate_domain_levels
from .includes import FetchFile, IncludeExpander
from .registry import ScriptRegistry, TabId
from .text import splice_string

_LOGGER = logging.getLogger("cdinjector.injector")

GLOBAL_SCRIPT_NAME = "_global"
SCRIPT = "js"
STYLE = "css"
FILE_TYPES = (SCRIPT, STYLE)

INTERFACE_TITLE = "CD Injector"


class TabMessenger(Protocol):
    async def send_message(self, tab_id: TabId, message: dict[str, Any], options: dict[str, Any]) -> None: ...


class BrowserAction(Protocol):
    async def set_count(self, tab_id: TabId, count: int) -> None: ...

    async def set_title(self, tab_id: TabId, title: str) -> None: ...


@dataclass(frozen=True)
class Sender:
    tab_id: TabId
    frame_id: int = 0
    url: str | None = None

    @classmethod
    def from_message(cls, msg: dict[str, Any]) -> Sender | None:
        """Accept `{tabId, frameId}` or Chrome's `{tab: {id}, frameId}` shape."""
        tab_id = msg.get("tabId")
        tab = msg.get("tab")
        if tab_id is None and isinstance(tab, dict):
            tab_id = tab.get("id")
        if isinstance(tab_id, bool) or not isinstance(tab_id, (int, str)):
            return None
        try:
            frame_id = int(msg.get("frameId") or 0)
        except Exception:
            frame_id = 0
        url = msg.get("url")
        return cls(tab_id=tab_id, frame_id=frame_id, url=url if isinstance(url, str) else None)


def interface_title(names: frozenset[str] | set[str]) -> str:
    if not names:
        return f"{INTERFACE_TITLE} (no active scripts)"
    return "\n".join([INTERFACE_TITLE, *sorted(names)])


class CDInjector:
    """Resolves, expands and delivers the override files for a tab.

    Collaborators are injected:
    - fetch_file(name) -> content or None (absent)
    - messenger.send_message(tab_id, message, options)
    - action.set_count(tab_id, count) / action.set_title(tab_id, title)
    """

    global_script_name = GLOBAL_SCRIPT_NAME

    def __init__(
        self,
        fetch_file: FetchFile,
        messenger: TabMessenger,
        action: BrowserAction,
        *,
        registry: ScriptRegistry | None = None,
        max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH,
    ) -> None:
        self._fetch_file = fetch_file
        self._messenger = messenger
        self._action = action
        self.registry = registry if registry is not None else ScriptRegistry()
        self._max_include_depth = max_include_depth

    @staticmethod
    def iterate_domain_levels(hostname: str) -> Iterator[str]:
        return iterate_domain_levels(hostname)

    @staticmethod
    def splice_string(text: str, start: int, end: int, replacement: str) -> str:
        return splice_string(text, start, end, replacement)

    # ─────────────────────────────────────────────────────────────────────────
    # Registry
    # ─────────────────────────────────────────────────────────────────────────

    def script_names_for_tab(self, tab_id: TabId) -> frozenset[str]:
        return self.registry.script_names_for_tab(tab_id)

    def register_script(self, name: str, tab_id: TabId) -> None:
        self.registry.register_script(name, tab_id)

    # ─────────────────────────────────────────────────────────────────────────
    # Requests
    # ─────────────────────────────────────────────────────────────────────────

    def probe_levels(self, hostname: str) -> Iterator[str]:
        yield self.global_script_name
        yield from iterate_domain_levels(hostname)

    async def query_local_server_for_file(self, name: str) -> str | None:
        try:
            return await self._fetch_file(name)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("fetch_failed name=%s error=%s", name, exc)
            return None

    async def on_navigate(self, hostname: str, sender: Sender) -> None:
        """Fetch, expand and deliver every override file for `hostname`."""
        tab_id = sender.tab_id
        if sender.frame_id == 0:
            self.registry.forget_tab(tab_id)

        expander = IncludeExpander(
            self.query_local_server_for_file,
            max_depth=self._max_include_depth,
            on_include=lambda name: self.register_script(name, tab_id),
        )
        contents = {file_type: "" for file_type in FILE_TYPES}

        for level in self.probe_levels(hostname):
            for file_type in FILE_TYPES:
                name = f"{level}.{file_type}"
                body = await self.query_local_server_for_file(name)
                if body is None:
                    continue
                self.register_script(name, tab_id)
                contents[file_type] += await expander.expand(body, origin=name) or ""

        for file_type in FILE_TYPES:
            if contents[file_type]:
                await self._deliver(sender, file_type, contents[file_type])

        _LOGGER.info(
            "navigate host=%s tab=%s frame=%s active=%d",
            hostname,
            tab_id,
            sender.frame_id,
            len(self.script_names_for_tab(tab_id)),
        )
        await self.update_interface(tab_id)

    async def load_script(self, hostname: str, file_type: str, sender: Sender) -> None:
        """Deliver the single file `<hostname>.<file_type>`, even when it is empty."""
        name = f"{hostname}.{file_type}"
        tab_id = sender.tab_id
        expander = IncludeExpander(
            self.query_local_server_for_file,
            max_depth=self._max_include_depth,
            on_include=lambda included: self.register_script(included, tab_id),
        )
        body = await self.query_local_server_for_file(name)
        if body is not None:
            self.register_script(name, tab_id)
        contents = await expander.expand(body, origin=name)
        await self._deliver(sender, file_type, contents or "")
        if body is not None:
            await self.update_interface(tab_id)

    async def _deliver(self, sender: Sender, file_type: str, contents: str) -> None:
        try:
            await self._messenger.send_message(
                sender.tab_id,
                {"type": file_type, "contents": contents},
                {"frameId": sender.frame_id},
            )
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("deliver_failed tab=%s type=%s error=%s", sender.tab_id, file_type, exc)

    # ─────────────────────────────────────────────────────────────────────────
    # Interface
    # ─────────────────────────────────────────────────────────────────────────

    async def update_interface(self, tab_id: TabId) -> None:
        names = self.script_names_for_tab(tab_id)
        await self.update_icon_with_script_count(tab_id, len(names))
        try:
            await self._action.set_title(tab_id, interface_title(names))
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("set_title_failed tab=%s error=%s", tab_id, exc)

    async def update_icon_with_script_count(self, tab_id: TabId, count: int) -> None:
        try:
            await self._action.set_count(tab_id, count)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("set_count_failed tab=%s error=%s", tab_id, exc)


__all__ = [
    "FILE_TYPES",
    "GLOBAL_SCRIPT_NAME",
    "SCRIPT",
    "STYLE",
    "BrowserAction",
    "CDInjector",
    "Sender",
    "TabMessenger",
    "interface_title",
]
