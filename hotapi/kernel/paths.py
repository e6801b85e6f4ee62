"""Path resolution helpers that avoid CWD dependence."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from platformdirs import PlatformDirs


_DATA_ENV = "HOTAPI_DATA_DIR"
_APP_NAME = "hotapi"


def resolve_dir(value: str | Path, *, base: Path | None = None) -> Path:
    path = Path(value).expanduser()
    if path.is_absolute():
        return path
    return (base or Path.cwd()) / path


def default_data_dir() -> Path:
    override = os.getenv(_DATA_ENV)
    if override:
        return resolve_dir(override)
    return Path(PlatformDirs(_APP_NAME, appauthor=False).user_data_dir)


def load_json(path: str | Path) -> dict[str, Any]:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"expected a JSON object in {path}")
    return payload
