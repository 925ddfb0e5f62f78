"""Hostname hierarchy used to pick override files.

A hostname is probed from its most general level to its most specific one,
so files for `google.com` are applied after files for `com`.
"""

from __future__ import annotations

from collections.abc import Iterator


def iterate_domain_levels(hostname: str) -> Iterator[str]:
    """Yield `com`, `google.com`, `www.google.com` for `www.google.com`.

    An empty hostname yields a single empty level.
    """
    labels = (hostname or "").split(".")
    level = labels[-1]
    yield level
    for label in reversed(labels[:-1]):
        level = f"{label}.{level}"
        yield level


class DomainLevels:
    """Restartable view over `iterate_domain_levels`."""

    __slots__ = ("hostname",)

    def __init__(self, hostname: str) -> None:
        self.hostname = hostname or ""

    def __iter__(self) -> Iterator[str]:
        return iterate_domain_levels(self.hostname)

    def __repr__(self) -> str:
        return f"DomainLevels({self.hostname!r})"


__all__ = ["DomainLevels", "iterate_domain_levels"]
