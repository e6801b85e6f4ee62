"""Plugin delegation: expand `plugin = "<library>/<name>"` into methods."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from hotapi.kernel.errors import CompileError, PluginError
from hotapi.kernel.logging import EventLogger

from .compiler import compile_unit, format_failure
from .procedure import Procedure
from .sandbox import Sandbox


PLUGIN_FACTORY = "create_plugin"


@dataclass(frozen=True)
class Library:
    name: str
    plugins: Mapping[str, str] = field(default_factory=dict)


def _plugins_of(library: Any) -> Mapping[str, str] | None:
    if isinstance(library, Mapping):
        plugins = library.get("plugins")
    else:
        plugins = getattr(library, "plugins", None)
    if isinstance(plugins, Mapping):
        return plugins
    return None


def split_plugin_ref(ref: Any) -> tuple[str, str] | None:
    if not isinstance(ref, str):
        return None
    library, sep, name = ref.partition("/")
    if not library or not sep or not name:
        return None
    return library, name


class PluginResolver:
    """Resolves plugin references against framework then third-party libraries."""

    def __init__(
        self,
        sandbox: Sandbox,
        *,
        framework_libraries: Mapping[str, Any] | None = None,
        third_party_libraries: Mapping[str, Any] | None = None,
        logger: EventLogger | None = None,
    ) -> None:
        self.sandbox = sandbox
        self.framework_libraries: Mapping[str, Any] = framework_libraries or {}
        self.third_party_libraries: Mapping[str, Any] = third_party_libraries or {}
        self.logger = logger or sandbox.logger

    def find_source(self, ref: Any) -> tuple[str, str] | None:
        parsed = split_plugin_ref(ref)
        if parsed is None:
            return None
        library_name, plugin_name = parsed
        library = self.framework_libraries.get(library_name)
        if library is None:
            library = self.third_party_libraries.get(library_name)
        if library is None:
            return None
        plugins = _plugins_of(library)
        if plugins is None:
            return None
        source = plugins.get(plugin_name)
        if not source:
            return None
        return plugin_name, source

    def resolve(self, ref: Any, interface: Mapping[str, Any]) -> dict[str, Procedure]:
        """Return the generated procedures, or `{}` when the plugin is unavailable."""
        found = self.find_source(ref)
        if found is None:
            self.logger.event(event="interfaces.plugin_missing", level="debug", plugin=str(ref))
            return {}
        plugin_name, source = found
        try:
            generated = self._generate(plugin_name, source, interface)
        except (CompileError, PluginError) as exc:
            self.logger.event(
                event="interfaces.plugin_failed",
                level="error",
                plugin=str(ref),
                error=str(exc),
                trace=format_failure(exc),
            )
            return {}
        return {name: Procedure.from_value(name, value) for name, value in generated.items()}

    def _generate(self, plugin_name: str, source: str, interface: Mapping[str, Any]) -> Mapping[str, Any]:
        unit = compile_unit(plugin_name, source, self.sandbox)
        factory = unit.exports.get(PLUGIN_FACTORY)
        if not callable(factory):
            raise PluginError(f"plugin {plugin_name} does not define {PLUGIN_FACTORY}()")
        try:
            generated = factory(interface)
        except (Exception, SystemExit) as exc:
            raise PluginError(f"plugin {plugin_name} factory failed: {exc}") from exc
        if not isinstance(generated, Mapping):
            raise PluginError(f"plugin {plugin_name} returned {type(generated).__name__}, expected a mapping")
        return {str(name): value for name, value in generated.items()}
