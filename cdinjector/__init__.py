"""Local override injection for the CD Injector Chrome extension."""

from __future__ import annotations

from .config import InjectorConfig
from .domain_levels import DomainLevels, iterate_domain_levels
from .includes import IncludeExpander, expand_includes
from .injector import FILE_TYPES, GLOBAL_SCRIPT_NAME, CDInjector, Sender
from .registry import ScriptRegistry
from .text import splice_string

__all__ = [
    "FILE_TYPES",
    "GLOBAL_SCRIPT_NAME",
    "CDInjector",
    "DomainLevels",
    "IncludeExpander",
    "InjectorConfig",
    "ScriptRegistry",
    "Sender",
    "expand_includes",
    "iterate_domain_levels",
    "splice_string",
]
