from __future__ import annotations

import asyncio
import http.client
import logging
import urllib.parse
from urllib.error import HTTPError, URLError
from urllib.request import HTTPRedirectHandler, Request, build_opener

from .config import InjectorConfig

_LOGGER = logging.getLogger("cdinjector.http")


class HttpClientError(Exception):
    pass


class _SafeRedirectHandler(HTTPRedirectHandler):
    def __init__(self, config: InjectorConfig) -> None:
        super().__init__()
        self._config = config

    def redirect_request(self, req, fp, code, msg, headers, newurl):  # noqa: ANN001
        # urllib may pass relative URLs here; normalize against the previous URL.
        absolute = urllib.parse.urljoin(req.full_url, str(newurl))
        parsed = urllib.parse.urlparse(absolute)
        if parsed.scheme not in ("http", "https"):
            raise HttpClientError("Only http/https are supported (redirect)")
        if not self._config.is_host_allowed(parsed.hostname or ""):
            raise HttpClientError(f"Host {parsed.hostname} is not in allowlist (redirect)")
        return super().redirect_request(req, fp, code, msg, headers, absolute)


def _content_length(headers: dict[str, str]) -> int | None:
    for key, value in headers.items():
        if key.lower() == "content-length":
            try:
                return int(value)
            except (TypeError, ValueError):
                return None
    return None


def http_get(url: str, config: InjectorConfig) -> dict[str, object]:
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise HttpClientError("Only http/https are supported")
    if not config.is_host_allowed(parsed.hostname or ""):
        raise HttpClientError(f"Host {parsed.hostname} is not in allowlist")
    req = Request(url, headers={"User-Agent": "cdinjector/1.0", "Cache-Control": "no-cache"})
    try:
        opener = build_opener(_SafeRedirectHandler(config))
        with opener.open(req, timeout=config.http_timeout) as resp:
            body = resp.read(config.http_max_bytes + 1)
            status = resp.status
            headers = dict(resp.headers)
    except HTTPError as exc:
        # Non-2xx responses are answers, not transport failures.
        return {"status": exc.code, "headers": dict(exc.headers or {}), "body": "", "truncated": False}
    except (TimeoutError, URLError, OSError, http.client.HTTPException, ValueError) as exc:
        # http.client parse errors and bad URLs are not wrapped by urllib.
        raise HttpClientError(str(exc) or exc.__class__.__name__) from exc
    truncated = len(body) > config.http_max_bytes
    if truncated:
        body = body[: config.http_max_bytes]
    else:
        expected = _content_length(headers)
        if expected is not None and len(body) < expected:
            raise HttpClientError(f"incomplete body: got {len(body)} of {expected} bytes")
    return {
        "status": status,
        "headers": headers,
        "body": body.decode(errors="replace"),
        "truncated": truncated,
    }


class LocalServerClient:
    """Fetches override files from the local development server.

    Every failure is reported as None (file absent).
    """

    def __init__(self, config: InjectorConfig) -> None:
        self._config = config

    def url_for(self, name: str) -> str:
        return f"{self._config.server_url.rstrip('/')}/{urllib.parse.quote(name, safe='/')}"

    async def fetch(self, name: str) -> str | None:
        url = self.url_for(name)
        try:
            res = await asyncio.to_thread(http_get, url, self._config)
        except HttpClientError as exc:
            _LOGGER.debug("fetch_error url=%s error=%s", url, exc)
            return None
        status = res.get("status")
        if status != 200:
            _LOGGER.debug("fetch_miss url=%s status=%s", url, status)
            return None
        if res.get("truncated"):
            _LOGGER.warning("fetch_truncated url=%s max_bytes=%d", url, self._config.http_max_bytes)
        body = res.get("body")
        return body if isinstance(body, str) else None


__all__ = ["HttpClientError", "LocalServerClient", "http_get"]
