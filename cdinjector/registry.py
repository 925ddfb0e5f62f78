from __future__ import annotations

import threading
from collections.abc import Hashable

TabId = Hashable


class ScriptRegistry:
    """Names of the override files currently active in each tab.

    Only used for reporting (badge count and title). Entries stay until
    `forget_tab` is called or the process exits.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_tab: dict[TabId, set[str]] = {}

    def script_names_for_tab(self, tab_id: TabId) -> frozenset[str]:
        with self._lock:
            names = self._by_tab.get(tab_id)
            return frozenset(names) if names else frozenset()

    def register_script(self, name: str, tab_id: TabId) -> bool:
        """Add `name` for `tab_id`. Returns False when it was already there."""
        with self._lock:
            names = self._by_tab.setdefault(tab_id, set())
            if name in names:
                return False
            names.add(name)
            return True

    def forget_tab(self, tab_id: TabId) -> None:
        with self._lock:
            self._by_tab.pop(tab_id, None)

    def tab_ids(self) -> list[TabId]:
        with self._lock:
            return list(self._by_tab)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_tab)


__all__ = ["ScriptRegistry", "TabId"]
