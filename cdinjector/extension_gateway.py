from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import re
import threading
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from .registry import TabId

_LOGGER = logging.getLogger("cdinjector.gateway")

EXTENSION_BRIDGE_PROTOCOL_VERSION = "2026-10-01"

EventHandler = Callable[[dict[str, Any]], Awaitable[Any]]

_LOG_LEVELS = {"debug": logging.DEBUG, "info": logging.INFO, "warn": logging.WARNING, "error": logging.ERROR}


def _now_ms() -> int:
    return int(time.time() * 1000)


def _import_websockets():
    try:
        import websockets  # type: ignore[import-not-found]

        return websockets
    except Exception as exc:  # noqa: BLE001
        raise RuntimeError(
            "The extension gateway requires the 'websockets' Python package. Install it (pip install websockets)."
        ) from exc


@dataclass(frozen=True)
class ExtensionClientInfo:
    extension_id: str
    extension_version: str | None = None
    user_agent: str | None = None


class ExtensionGateway:
    """Local WebSocket gateway for the CD Injector Chrome extension.

    The extension connects, says hello, then forwards tab events (navigation,
    activation, removal). Events go to `on_event`; replies (injections, badge
    count, title) are pushed back over the same socket.

    - Sync lifecycle API (start/stop/status), async server in a daemon thread.
    - One extension client at a time; a reconnect replaces the previous one.
    - Sends are dropped when no extension is connected.
    """

    def __init__(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        expected_extension_id: str | None = None,
        on_event: EventHandler | None = None,
    ) -> None:
        self.host = (host or "127.0.0.1").strip() or "127.0.0.1"
        try:
            self.port = int(port if port is not None else 8766)
        except Exception:
            self.port = 8766
        self.expected_extension_id = (expected_extension_id or "").strip() or None
        self.on_event = on_event
        self._server_started_at_ms = _now_ms()

        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()

        self._server: Any | None = None
        self._ws: Any | None = None
        self._bind_error: str | None = None

        self._session_id: str | None = None
        self._client: ExtensionClientInfo | None = None
        self._client_last_seen_ms: int = 0
        self._connected = threading.Event()

        # small gateway log buffer (for diagnostics)
        self._logs: deque[dict[str, Any]] = deque(maxlen=200)

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    def start(self, *, wait_timeout: float = 5.0) -> None:
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop.clear()
        with self._lock:
            self._bind_error = None

        t = threading.Thread(target=self._run_thread, name="cdinjector-gateway", daemon=True)
        self._thread = t
        t.start()

        deadline = time.time() + max(0.05, float(wait_timeout))
        while time.time() < deadline:
            with self._lock:
                server = self._server
                bind_error = self._bind_error
            if server is not None:
                return
            if bind_error or not t.is_alive():
                break
            time.sleep(0.05)

        with self._lock:
            bind_error = self._bind_error
        if bind_error:
            raise RuntimeError(f"Extension gateway bind failed on {self.host}:{self.port}: {bind_error}")
        raise RuntimeError(f"Extension gateway failed to start on {self.host}:{self.port}")

    def stop(self, *, timeout: float = 2.0) -> None:
        self._stop.set()
        t = self._thread
        if t is not None:
            t.join(timeout=timeout)

    def status(self) -> dict[str, Any]:
        with self._lock:
            client = self._client
            return {
                "listening": self._server is not None,
                "host": self.host,
                "port": self.port,
                "connected": self._ws is not None,
                "sessionId": self._session_id,
                **({"bindError": self._bind_error} if self._bind_error else {}),
                "serverStartedAtMs": int(self._server_started_at_ms),
                "client": (
                    {
                        "extensionId": client.extension_id,
                        **({"extensionVersion": client.extension_version} if client.extension_version else {}),
                        **({"userAgent": client.user_agent} if client.user_agent else {}),
                        **({"lastSeenMs": self._client_last_seen_ms} if self._client_last_seen_ms else {}),
                    }
                    if client is not None
                    else None
                ),
                "logs": list(self._logs)[-20:],
            }

    def is_connected(self) -> bool:
        with self._lock:
            return self._ws is not None

    def wait_for_connection(self, *, timeout: float = 5.0) -> bool:
        """Block until an extension client is connected (handshake complete) or timeout."""
        return bool(self._connected.wait(timeout=max(0.0, float(timeout))))

    # ─────────────────────────────────────────────────────────────────────────
    # Outgoing (TabMessenger + BrowserAction)
    # ─────────────────────────────────────────────────────────────────────────

    async def send_message(self, tab_id: TabId, message: dict[str, Any], options: dict[str, Any]) -> None:
        await self._send(
            {
                "type": "inject",
                "tabId": tab_id,
                "frameId": options.get("frameId", 0),
                "scriptType": message.get("type"),
                "scriptContents": message.get("contents"),
            }
        )

    async def set_count(self, tab_id: TabId, count: int) -> None:
        await self._send({"type": "badge", "tabId": tab_id, "count": int(count)})

    async def set_title(self, tab_id: TabId, title: str) -> None:
        await self._send({"type": "title", "tabId": tab_id, "title": title})

    async def _send(self, payload: dict[str, Any]) -> None:
        with self._lock:
            ws = self._ws
        if ws is None:
            self._log("debug", f"dropped {payload.get('type')} (no extension connected)")
            return
        await self._ws_send_json(ws, payload)

    # ─────────────────────────────────────────────────────────────────────────
    # Server
    # ─────────────────────────────────────────────────────────────────────────

    def _log(self, level: str, message: str) -> None:
        _LOGGER.log(_LOG_LEVELS.get(level, logging.INFO), "%s", message)
        with self._lock:
            self._logs.append({"ts": _now_ms(), "level": level, "message": message[:2000]})

    def _run_thread(self) -> None:
        asyncio.run(self._run_async())

    async def _run_async(self) -> None:
        websockets = _import_websockets()

        async def _handler(ws):  # type: ignore[no-untyped-def]
            # Expect hello as first message.
            try:
                raw = await asyncio.wait_for(ws.recv(), timeout=2.5)
            except Exception:
                self._log("warn", "extension hello timeout")
                return

            hello = None
            try:
                hello = json.loads(raw)
            except Exception:
                hello = None

            if not isinstance(hello, dict) or hello.get("type") != "hello":
                with contextlib.suppress(Exception):
                    await ws.close(code=1002, reason="expected hello")
                return

            ext_id = str(hello.get("extensionId") or "").strip()
            if not ext_id:
                with contextlib.suppress(Exception):
                    await ws.close(code=1002, reason="missing extensionId")
                return

            if self.expected_extension_id is not None and ext_id != self.expected_extension_id:
                with contextlib.suppress(Exception):
                    await ws.close(code=1008, reason="unexpected extensionId")
                return

            client = ExtensionClientInfo(
                extension_id=ext_id,
                extension_version=str(hello.get("extensionVersion") or "") or None,
                user_agent=str(hello.get("userAgent") or "") or None,
            )
            session_id = f"ext-{_now_ms()}-{os.getpid()}"

            # Replace active client (MV3 service workers reconnect often).
            with self._lock:
                self._ws = ws
                self._client = client
                self._session_id = session_id
                self._client_last_seen_ms = _now_ms()
                self._connected.clear()

            try:
                await self._ws_send_json(
                    ws,
                    {
                        "type": "helloAck",
                        "protocolVersion": EXTENSION_BRIDGE_PROTOCOL_VERSION,
                        "sessionId": session_id,
                    },
                )
            except Exception:
                self._disconnect(ws)
                return
            self._connected.set()
            self._log("info", f"extension connected id={ext_id}")

            try:
                async for raw_msg in ws:
                    with self._lock:
                        self._client_last_seen_ms = _now_ms()
                    try:
                        msg = json.loads(raw_msg)
                    except Exception:
                        continue
                    await self._on_message(ws, msg)
            except Exception:
                pass
            finally:
                self._disconnect(ws)

        try:
            server = await websockets.serve(
                _handler,
                self.host,
                int(self.port),
                # Some Chrome contexts may omit Origin on localhost WS connects; allow it.
                origins=[None, re.compile(r"^null$"), re.compile(r"^chrome-extension://[a-p]{32}/?$")],
                max_size=8_000_000,
                ping_interval=None,
            )
        except Exception as exc:  # noqa: BLE001
            with self._lock:
                self._bind_error = str(exc) or exc.__class__.__name__
            self._log("error", f"gateway bind failed: {exc}")
            return

        with self._lock:
            self._server = server
            sockets = list(getattr(server, "sockets", None) or [])
            if sockets:
                self.port = int(sockets[0].getsockname()[1])
        self._log("info", f"gateway listening on {self.host}:{self.port}")

        try:
            while not self._stop.is_set():
                await asyncio.sleep(0.05)
        finally:
            await self._shutdown_async()

    async def _shutdown_async(self) -> None:
        with self._lock:
            srv = self._server
            ws = self._ws
            self._server = None
        if ws is not None:
            with contextlib.suppress(Exception):
                await ws.close()
        if srv is not None:
            with contextlib.suppress(Exception):
                srv.close()
                await srv.wait_closed()
        self._disconnect(ws)

    def _disconnect(self, ws: Any) -> None:
        with self._lock:
            if ws is not None and self._ws is not ws:
                # A newer client already replaced this one.
                return
            self._ws = None
            self._client = None
            self._session_id = None
            self._client_last_seen_ms = 0
            self._connected.clear()

    async def _on_message(self, ws: Any, msg: Any) -> None:
        if not isinstance(msg, dict):
            return

        mtype = msg.get("type")

        if mtype == "ping":
            with contextlib.suppress(Exception):
                await self._ws_send_json(ws, {"type": "pong", "ts": _now_ms()})
            return

        if mtype == "log":
            level = str(msg.get("level") or "info")
            self._log(level if level in {"debug", "info", "warn", "error"} else "info", str(msg.get("message") or ""))
            return

        handler = self.on_event
        if handler is None:
            return
        try:
            await handler(msg)
        except Exception as exc:  # noqa: BLE001
            self._log("error", f"event handler failed type={mtype}: {exc}")

    async def _ws_send_json(self, ws, payload: dict[str, Any]) -> None:  # type: ignore[no-untyped-def]
        await ws.send(json.dumps(payload, ensure_ascii=False))


__all__ = ["EXTENSION_BRIDGE_PROTOCOL_VERSION", "ExtensionClientInfo", "ExtensionGateway"]
