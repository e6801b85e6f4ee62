"""Interface registry: versioned method tables mirrored into the live namespace.

Layout under the tracked root:

    <root>/<name>.<version>/<method>.py   one method per file
    <root>/<name>.<version>.py            interface-default file: several
                                          exported members, or a
                                          `plugin = "<library>/<name>"` line

`change` and `delete` are the watcher entry points. Neither raises for a
missing, empty, broken or misnamed file; problems are logged and skipped.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, MutableMapping

from hotapi.kernel.errors import InterfaceNameError, RegistryError
from hotapi.kernel.logging import EventLogger, JsonlLogger

from .cache import PathCache
from .compiler import CompiledUnit, UnitCompiler
from .naming import InterfaceName, method_name, parse_interface_name
from .plugins import PluginResolver
from .procedure import Procedure
from .sandbox import Sandbox
from .signature import extract_signature


PLUGIN_KEY = "plugin"


@dataclass
class Interface:
    name: str
    default_version: int
    versions: dict[int, dict[str, Procedure]] = field(default_factory=dict)


class InterfaceRegistry(PathCache):
    def __init__(
        self,
        root: str | Path,
        sandbox: Sandbox,
        *,
        extension: str = ".py",
        compiler: UnitCompiler | None = None,
        resolver: PluginResolver | None = None,
        logger: EventLogger | None = None,
    ) -> None:
        if sandbox is None or not isinstance(sandbox.api, MutableMapping):
            raise RegistryError("sandbox must provide a mutable api namespace")
        super().__init__(root, extension=extension)
        self.sandbox = sandbox
        self.logger = logger or sandbox.logger
        self.compiler = compiler or UnitCompiler(sandbox, logger=self.logger)
        self.resolver = resolver or PluginResolver(sandbox, logger=self.logger)
        self.collection: dict[str, Interface] = {}
        self._signatures: dict[str, dict[str, tuple[str, ...]]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        *,
        sandbox: Sandbox | None = None,
        framework_libraries: Mapping[str, Any] | None = None,
        third_party_libraries: Mapping[str, Any] | None = None,
        logger: EventLogger | None = None,
    ) -> "InterfaceRegistry":
        interfaces_cfg = config["interfaces"]
        logger = logger or JsonlLogger.from_config(config)
        if sandbox is None:
            sandbox = Sandbox(logger=logger)
        resolver = PluginResolver(
            sandbox,
            framework_libraries=framework_libraries,
            third_party_libraries=third_party_libraries,
            logger=logger,
        )
        registry = cls(
            interfaces_cfg["root"],
            sandbox,
            extension=interfaces_cfg["extension"],
            resolver=resolver,
            logger=logger,
        )
        if interfaces_cfg.get("autoload", True):
            registry.load()
        return registry

    # Watcher entry points

    def load(self) -> None:
        """Register every tracked file currently under the root."""
        count = 0
        for path in self.iter_files():
            self.change(path)
            count += 1
        self.logger.event(
            event="interfaces.loaded",
            root=str(self.path),
            files=count,
            interfaces=sorted(self.collection),
        )

    def change(self, file_path: str | Path) -> None:
        if not self.tracks(file_path):
            return
        parts = self.relative(file_path)
        if not parts or len(parts) > 2:
            return
        name = self._parse(parts[0], file_path)
        if name is None:
            return
        with self._lock_for(name.base):
            unit = self.compiler.compile(file_path)
            if unit is None:
                return
            if len(parts) == 2:
                method = method_name(parts[1], self.extension)
                self._register(name, method, Procedure.from_unit(unit, "method"))
            else:
                self._register_default(name, unit)
        self.logger.event(event="interfaces.changed", level="debug", interface=str(name), path=str(file_path))

    def delete(self, file_path: str | Path) -> None:
        parts = self.relative(file_path)
        if len(parts) != 2:
            return
        if not parts[1].endswith(self.extension):
            return
        name = self._parse(parts[0], file_path)
        if name is None:
            return
        method = method_name(parts[1], self.extension)
        with self._lock_for(name.base):
            iface = self.collection.get(name.base)
            if iface is None:
                return
            methods = iface.versions.get(name.version)
            if methods is not None:
                methods.pop(method, None)
            self._refresh(iface, method)
        self.logger.event(event="interfaces.deleted", level="debug", interface=str(name), method=method)

    # Mutation

    def _register_default(self, name: InterfaceName, unit: CompiledUnit) -> None:
        exports = unit.exports
        plugin_ref = exports.get(PLUGIN_KEY)
        if plugin_ref:
            for method, proc in self.resolver.resolve(plugin_ref, exports).items():
                self._register(name, method, proc)
            return
        for key in exports:
            self._register(name, key, Procedure.from_unit(unit, key))

    def _register(self, name: InterfaceName, method: str, proc: Procedure) -> None:
        iface = self.collection.get(name.base)
        if iface is None:
            iface = Interface(name=name.base, default_version=name.version)
            self.collection[name.base] = iface
        if name.version > iface.default_version:
            iface.default_version = name.version
        methods = iface.versions.setdefault(name.version, {})
        methods[method] = proc
        self._publish(name.base, method, proc)

    def _publish(self, base: str, method: str, proc: Procedure) -> None:
        self.sandbox.api.setdefault(base, {})[method] = proc.published
        if proc.method is not None:
            self._signatures.setdefault(base, {})[method] = tuple(extract_signature(proc.method))
        else:
            cached = self._signatures.get(base)
            if cached is not None:
                cached.pop(method, None)

    def _refresh(self, iface: Interface, method: str) -> None:
        # Another version may still hold the method; keep the highest one live.
        for version in sorted(iface.versions, reverse=True):
            proc = iface.versions[version].get(method)
            if proc is not None:
                self._publish(iface.name, method, proc)
                return
        namespace = self.sandbox.api.get(iface.name)
        if namespace is not None:
            namespace.pop(method, None)
        cached = self._signatures.get(iface.name)
        if cached is not None:
            cached.pop(method, None)

    def _parse(self, segment: str, file_path: str | Path) -> InterfaceName | None:
        try:
            return parse_interface_name(segment, extension=self.extension)
        except InterfaceNameError as exc:
            self.logger.event(
                event="interfaces.invalid_name",
                level="warning",
                path=str(file_path),
                error=str(exc),
            )
            return None

    def _lock_for(self, base: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(base)
            if lock is None:
                lock = self._locks[base] = threading.Lock()
            return lock

    # Read accessors

    def interface(self, name: str) -> Interface | None:
        return self.collection.get(name)

    def default_version(self, name: str) -> int | None:
        iface = self.collection.get(name)
        return iface.default_version if iface is not None else None

    def versions(self, name: str) -> list[int]:
        iface = self.collection.get(name)
        if iface is None:
            return []
        return sorted(iface.versions)

    def get_method(self, name: str, method: str, version: int | None = None) -> Procedure | None:
        iface = self.collection.get(name)
        if iface is None:
            return None
        methods = iface.versions.get(iface.default_version if version is None else version)
        if methods is None:
            return None
        return methods.get(method)

    def signature(self, name: str, method: str) -> list[str] | None:
        cached = self._signatures.get(name, {}).get(method)
        return list(cached) if cached is not None else None

    @property
    def signatures(self) -> dict[str, dict[str, list[str]]]:
        return {
            name: {method: list(params) for method, params in list(methods.items())}
            for name, methods in list(self._signatures.items())
        }

    def snapshot(self) -> dict[str, Any]:
        interfaces: dict[str, Any] = {}
        for name, iface in sorted(self.collection.items()):
            interfaces[name] = {
                "default": iface.default_version,
                "versions": {str(version): sorted(methods) for version, methods in sorted(iface.versions.items())},
            }
        return {"root": str(self.path), "interfaces": interfaces, "signatures": self.signatures}
