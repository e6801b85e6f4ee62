"""Versioned interface registry: compile, bind and hot-swap API methods."""

from .compiler import CompiledUnit, UnitCompiler, compile_unit
from .interfaces import Interface, InterfaceRegistry
from .plugins import Library, PluginResolver
from .procedure import Procedure
from .sandbox import Sandbox
from .signature import extract_signature

__all__ = [
    "CompiledUnit",
    "Interface",
    "InterfaceRegistry",
    "Library",
    "PluginResolver",
    "Procedure",
    "Sandbox",
    "UnitCompiler",
    "compile_unit",
    "extract_signature",
]
