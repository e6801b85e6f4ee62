"""Kernel error types."""


class HotApiError(Exception):
    """Base error for hotapi."""


class ConfigError(HotApiError):
    """Raised when configuration validation or loading fails."""


class RegistryError(HotApiError):
    """Raised when the interface registry is misconfigured or misused."""


class CompileError(HotApiError):
    """Raised when a source unit cannot be compiled or evaluated."""


class InterfaceNameError(RegistryError):
    """Raised when an interface directory name is not `<name>.<version>`."""


class PluginError(RegistryError):
    """Raised when a plugin factory is missing or misbehaves."""
