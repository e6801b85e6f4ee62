"""Source -> executable unit compilation bound to the shared sandbox."""

from __future__ import annotations

import hashlib
import inspect
import traceback
from dataclasses import dataclass
from pathlib import Path
from types import CodeType, MappingProxyType, ModuleType
from typing import Any, Mapping

from hotapi.kernel.errors import CompileError
from hotapi.kernel.logging import EventLogger

from .sandbox import Sandbox


@dataclass(frozen=True)
class CompiledUnit:
    name: str
    sha256: str
    exports: Mapping[str, Any]


def _is_foreign(value: Any, unit_name: str) -> bool:
    if isinstance(value, ModuleType):
        return True
    if inspect.isroutine(value) or inspect.isclass(value):
        return getattr(value, "__module__", unit_name) != unit_name
    return False


def _collect_exports(scope: dict[str, Any], initial: dict[str, Any], unit_name: str) -> dict[str, Any]:
    declared = scope.get("__all__")
    if declared is not None:
        return {str(name): scope[name] for name in declared if name in scope}
    exports: dict[str, Any] = {}
    for name, value in scope.items():
        if name.startswith("_"):
            continue
        if name in initial and initial[name] is value:
            continue
        if _is_foreign(value, unit_name):
            continue
        exports[name] = value
    return exports


def _evaluate(name: str, code: CodeType, sandbox: Sandbox) -> Mapping[str, Any]:
    scope = sandbox.globals_for(name)
    initial = dict(scope)
    try:
        exec(code, scope)
    except (Exception, SystemExit) as exc:
        raise CompileError(f"failed to evaluate {name}: {exc}") from exc
    return MappingProxyType(_collect_exports(scope, initial, name))


def compile_unit(name: str, source: str, sandbox: Sandbox) -> CompiledUnit:
    """Compile `source` and evaluate it once inside `sandbox`.

    Raises CompileError for syntax errors and for exceptions raised by the
    unit body; the original exception is chained.
    """
    try:
        code = compile(source, name, "exec")
    except (SyntaxError, ValueError) as exc:
        raise CompileError(f"failed to compile {name}: {exc}") from exc
    exports = _evaluate(name, code, sandbox)
    digest = hashlib.sha256(source.encode("utf-8")).hexdigest()
    return CompiledUnit(name=name, sha256=digest, exports=exports)


def format_failure(exc: BaseException) -> str:
    cause = exc.__cause__ or exc
    return "".join(traceback.format_exception(type(cause), cause, cause.__traceback__))


class UnitCompiler:
    """File-level compile boundary; never raises for a bad or missing file."""

    def __init__(self, sandbox: Sandbox, *, logger: EventLogger | None = None) -> None:
        self.sandbox = sandbox
        self.logger = logger or sandbox.logger

    def compile(self, file_name: str | Path) -> CompiledUnit | None:
        path = Path(file_name)
        try:
            source = path.read_text(encoding="utf-8")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return None
        except (OSError, UnicodeDecodeError) as exc:
            self._failed(path, exc)
            return None
        if not source.strip():
            return None
        try:
            return compile_unit(str(path), source, self.sandbox)
        except CompileError as exc:
            self._failed(path, exc)
            return None

    def _failed(self, path: Path, exc: BaseException) -> None:
        self.logger.event(
            event="interfaces.compile_failed",
            level="error",
            path=str(path),
            error=str(exc),
            trace=format_failure(exc),
        )
