"""Shared execution context injected into every compiled unit."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, MutableMapping

from hotapi.kernel.logging import EventLogger, MemoryLogger


@dataclass
class Sandbox:
    """Live namespace plus the globals units see.

    `api` is the dispatch-facing mapping (interface -> method -> callable or
    value) that the registry writes through to. `context` holds shared state
    every unit can read as a global.
    """

    api: MutableMapping[str, Any] = field(default_factory=dict)
    context: dict[str, Any] = field(default_factory=dict)
    logger: EventLogger = field(default_factory=MemoryLogger)

    def globals_for(self, unit_name: str) -> dict[str, Any]:
        scope: dict[str, Any] = dict(self.context)
        scope["api"] = self.api
        scope["context"] = self.context
        scope["logger"] = self.logger
        scope["__name__"] = unit_name
        scope["__file__"] = unit_name
        return scope
