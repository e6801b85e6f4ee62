"""Interface directory name parsing (`<name>.<version>`)."""

from __future__ import annotations

from dataclasses import dataclass

from hotapi.kernel.errors import InterfaceNameError


@dataclass(frozen=True)
class InterfaceName:
    base: str
    version: int

    def __str__(self) -> str:
        return f"{self.base}.{self.version}"


def parse_interface_name(raw: str, *, extension: str | None = None) -> InterfaceName:
    """Split `users.2` (or `users.2.py` for default files) into base and version.

    Names without a version suffix, or whose suffix is not a non-negative
    integer, are rejected rather than registered under an invalid version.
    """
    name = str(raw)
    if extension and name.endswith(extension):
        name = name[: -len(extension)]
    base, sep, version = name.partition(".")
    if not base or not sep:
        raise InterfaceNameError(f"missing version suffix: {raw!r}")
    if not version.isascii() or not version.isdigit():
        raise InterfaceNameError(f"non-numeric version: {raw!r}")
    return InterfaceName(base=base, version=int(version, 10))


def method_name(file_name: str, extension: str) -> str:
    if file_name.endswith(extension):
        return file_name[: -len(extension)]
    return file_name
