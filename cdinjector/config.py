from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_SERVER_URL = "http://127.0.0.1:5743"
DEFAULT_ALLOW_HOSTS: list[str] = ["localhost", "127.0.0.1", "::1"]
DEFAULT_MAX_INCLUDE_DEPTH = 16


def _int_env(name: str, *, default: int, lo: int | None = None, hi: int | None = None) -> int:
    try:
        val = int(os.environ.get(name) or default)
    except Exception:
        val = default
    if lo is not None:
        val = max(lo, val)
    if hi is not None:
        val = min(hi, val)
    return val


def _float_env(name: str, *, default: float) -> float:
    try:
        return float(os.environ.get(name) or default)
    except Exception:
        return default


@dataclass
class InjectorConfig:
    server_url: str = DEFAULT_SERVER_URL
    allow_hosts: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOW_HOSTS))
    http_timeout: float = 5.0
    http_max_bytes: int = 2_000_000
    max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH
    gateway_host: str = "127.0.0.1"
    gateway_port: int = 8766
    extension_id: str | None = None

    @classmethod
    def from_env(cls) -> InjectorConfig:
        server_url = (os.environ.get("CDINJECTOR_SERVER_URL") or "").strip() or DEFAULT_SERVER_URL
        allow_raw = os.environ.get("CDINJECTOR_ALLOW_HOSTS")
        if allow_raw is None:
            allow_hosts = list(DEFAULT_ALLOW_HOSTS)
        else:
            allow_hosts = [host.strip().lower() for host in allow_raw.split(",") if host.strip() and host.strip() != "*"]
        return cls(
            server_url=server_url.rstrip("/"),
            allow_hosts=allow_hosts,
            http_timeout=_float_env("CDINJECTOR_HTTP_TIMEOUT", default=5.0),
            http_max_bytes=_int_env("CDINJECTOR_HTTP_MAX_BYTES", default=2_000_000, lo=1),
            max_include_depth=_int_env("CDINJECTOR_INCLUDE_DEPTH", default=DEFAULT_MAX_INCLUDE_DEPTH, lo=1, hi=64),
            gateway_host=(os.environ.get("CDINJECTOR_GATEWAY_HOST") or "").strip() or "127.0.0.1",
            gateway_port=_int_env("CDINJECTOR_GATEWAY_PORT", default=8766, lo=0, hi=65535),
            extension_id=(os.environ.get("CDINJECTOR_EXTENSION_ID") or "").strip() or None,
        )

    def is_host_allowed(self, host: str) -> bool:
        host = (host or "").strip().lower().rstrip(".")
        if not self.allow_hosts:
            return True
        for raw_allowed in self.allow_hosts:
            allowed = (raw_allowed or "").strip().lower().lstrip(".").rstrip(".")
            if not allowed:
                continue
            if host == allowed:
                return True
            if host.endswith("." + allowed):
                return True
        return False
