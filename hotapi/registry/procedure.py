"""Procedure: the compiled, publishable form of one API method."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Callable

from .compiler import CompiledUnit


@dataclass(frozen=True)
class Procedure:
    name: str
    method: Callable[..., Any] | None = None
    exports: Any = None
    unit: CompiledUnit | None = None

    @classmethod
    def from_unit(cls, unit: CompiledUnit, key: str) -> "Procedure":
        exports = unit.exports
        if key not in exports:
            return cls(name=key, exports=exports, unit=unit)
        return cls.from_value(key, exports[key], unit=unit)

    @classmethod
    def from_value(cls, name: str, value: Any, *, unit: CompiledUnit | None = None) -> "Procedure":
        if inspect.isroutine(value):
            return cls(name=name, method=value, unit=unit)
        return cls(name=name, exports=value, unit=unit)

    @property
    def published(self) -> Any:
        if self.method is not None:
            return self.method
        return self.exports
