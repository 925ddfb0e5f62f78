"""Include directive expansion for override files.

A directive occupies a whole line:

    // @include common/helpers.js
    /* @include theme.css */

and is replaced by the (recursively expanded) content of the named file.
Missing files expand to nothing; repeated names on the current include chain
are dropped so mutually including files terminate.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable

from .config import DEFAULT_MAX_INCLUDE_DEPTH
from .text import splice_string

_LOGGER = logging.getLogger("cdinjector.includes")

FetchFile = Callable[[str], Awaitable[str | None]]

INCLUDE_RE = re.compile(
    r"^[ \t]*(?://[ \t]*@include[ \t]+(\"[^\"\n]+\"|'[^'\n]+'|\S+)"
    r"|/\*[ \t]*@include[ \t]+(\"[^\"\n]+\"|'[^'\n]+'|[^\s*]+)[ \t]*\*/)[ \t]*(?=\r?$)",
    re.MULTILINE,
)


def include_name(match: re.Match[str]) -> str:
    name = match.group(1) or match.group(2) or ""
    if len(name) >= 2 and name[0] == name[-1] and name[0] in {"'", '"'}:
        name = name[1:-1]
    return name.strip()


class IncludeExpander:
    def __init__(
        self,
        fetch: FetchFile,
        *,
        max_depth: int = DEFAULT_MAX_INCLUDE_DEPTH,
        on_include: Callable[[str], None] | None = None,
    ) -> None:
        self._fetch = fetch
        self._max_depth = max(1, int(max_depth))
        self._on_include = on_include

    async def expand(self, body: str | None, *, origin: str | None = None) -> str | None:
        """Return `body` with every include directive replaced, or None for None.

        `origin` is the name `body` was fetched as; it seeds the cycle check.
        """
        if body is None:
            return None
        chain = (origin,) if origin else ()
        return await self._expand(body, chain)

    async def _expand(self, body: str, chain: tuple[str, ...]) -> str:
        pos = 0
        while True:
            match = INCLUDE_RE.search(body, pos)
            if match is None:
                return body
            content = await self._resolve(include_name(match), chain)
            body = splice_string(body, match.start(), match.end(), content)
            pos = match.start() + len(content)

    async def _resolve(self, name: str, chain: tuple[str, ...]) -> str:
        if name in chain:
            _LOGGER.warning("include cycle dropped name=%s chain=%s", name, " -> ".join(chain))
            return ""
        if len(chain) >= self._max_depth:
            _LOGGER.warning("include depth limit %d reached, dropped name=%s", self._max_depth, name)
            return ""

        content = await self._fetch(name)
        if content is None:
            _LOGGER.debug("include not found name=%s", name)
            return ""
        if self._on_include is not None:
            self._on_include(name)
        return await self._expand(content, (*chain, name))


async def expand_includes(
    body: str | None,
    fetch: FetchFile,
    *,
    origin: str | None = None,
    max_depth: int = DEFAULT_MAX_INCLUDE_DEPTH,
) -> str | None:
    return await IncludeExpander(fetch, max_depth=max_depth).expand(body, origin=origin)


__all__ = ["INCLUDE_RE", "FetchFile", "IncludeExpander", "expand_includes", "include_name"]
