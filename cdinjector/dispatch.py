"""Maps extension frames onto injector calls."""

from __future__ import annotations

import logging
from typing import Any

from .injector import FILE_TYPES, CDInjector, Sender

_LOGGER = logging.getLogger("cdinjector.dispatch")


async def dispatch_event(injector: CDInjector, msg: dict[str, Any]) -> str | None:
    """Handle one extension frame. Returns the handled type, or None if ignored."""
    if not isinstance(msg, dict):
        return None
    mtype = str(msg.get("type") or "").strip()

    if mtype == "scriptRequest":
        sender = Sender.from_message(msg)
        hostname = msg.get("hostname")
        if sender is None or not isinstance(hostname, str):
            _LOGGER.debug("ignored scriptRequest without hostname/tabId: %s", msg)
            return None
        await injector.on_navigate(hostname, sender)
        return mtype

    if mtype == "loadScript":
        sender = Sender.from_message(msg)
        hostname = msg.get("hostname")
        script_type = msg.get("scriptType")
        if sender is None or not isinstance(hostname, str) or script_type not in FILE_TYPES:
            _LOGGER.debug("ignored malformed loadScript: %s", msg)
            return None
        await injector.load_script(hostname, script_type, sender)
        return mtype

    if mtype in {"tabActivated", "tabRemoved"}:
        tab_id = msg.get("tabId")
        if tab_id is None:
            _LOGGER.debug("ignored %s without tabId", mtype)
            return None
        if mtype == "tabActivated":
            await injector.update_interface(tab_id)
        else:
            injector.registry.forget_tab(tab_id)
        return mtype

    _LOGGER.debug("ignored unknown frame type=%s", mtype or "<missing>")
    return None


__all__ = ["dispatch_event"]
