"""Structured JSONL logging for registry events.

Every event is one JSON object per line with stable key ordering. Rotation is
archive-only: a full log is renamed into logs/archive/, never deleted.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol



def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _safe_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return int(default)


def _build_payload(event: str, level: str, ts_utc: str | None, fields: dict[str, Any]) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "ts_utc": str(ts_utc or _utc_now_iso()),
        "level": str(level or "info"),
        "event": str(event or "event"),
        "run_id": str(fields.pop("run_id", "") or ""),
        "interface": str(fields.pop("interface", "") or ""),
    }
    for k, v in fields.items():
        if k in payload:
            continue
        payload[str(k)] = v
    return payload


class EventLogger(Protocol):
    def event(self, *, event: str, level: str = "info", ts_utc: str | None = None, **fields: Any) -> None:
        ...


@dataclass(frozen=True)
class JsonlLoggerConfig:
    path: Path
    rotate_max_bytes: int


class JsonlLogger:
    def __init__(self, cfg: JsonlLoggerConfig) -> None:
        self._cfg = cfg
        self._lock = threading.Lock()
        self._cfg.path.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_config(cls, config: dict[str, Any], *, name: str | None = None) -> "JsonlLogger":
        storage = config.get("storage", {}) if isinstance(config, dict) else {}
        logging_cfg = config.get("logging", {}) if isinstance(config, dict) else {}
        data_dir = Path(str(storage.get("data_dir") or "data"))
        logs_dir = data_dir / "logs"
        logs_dir.mkdir(parents=True, exist_ok=True)
        log_name = name or str(logging_cfg.get("name") or "interfaces")
        path = logs_dir / f"{log_name}.jsonl"
        rotate_max_bytes = _safe_int(storage.get("log_rotate_max_bytes", 5_000_000), 5_000_000)
        return cls(JsonlLoggerConfig(path=path, rotate_max_bytes=max(1024, rotate_max_bytes)))

    @property
    def path(self) -> str:
        return str(self._cfg.path)

    def _rotate_if_needed(self) -> None:
        try:
            if not self._cfg.path.exists():
                return
            if self._cfg.path.stat().st_size < self._cfg.rotate_max_bytes:
                return
            archive_dir = self._cfg.path.parent / "archive"
            archive_dir.mkdir(parents=True, exist_ok=True)
            ts = _utc_now_iso().replace(":", "").replace("-", "").replace(".", "")
            archived = archive_dir / f"{self._cfg.path.stem}.{ts}{self._cfg.path.suffix}"
            if not archived.exists():
                self._cfg.path.replace(archived)
        except OSError:
            return

    def event(self, *, event: str, level: str = "info", ts_utc: str | None = None, **fields: Any) -> None:
        payload = _build_payload(event, level, ts_utc, fields)
        line = json.dumps(payload, sort_keys=True, default=str)
        with self._lock:
            self._rotate_if_needed()
            try:
                with self._cfg.path.open("a", encoding="utf-8") as handle:
                    handle.write(line + "\n")
            except OSError:
                return


class MemoryLogger:
    """In-process event sink; keeps the most recent events."""

    def __init__(self, *, max_events: int = 10000) -> None:
        self._lock = threading.Lock()
        self._events: list[dict[str, Any]] = []
        self._max_events = max(100, int(max_events))

    def event(self, *, event: str, level: str = "info", ts_utc: str | None = None, **fields: Any) -> None:
        payload = _build_payload(event, level, ts_utc, fields)
        with self._lock:
            self._events.append(payload)
            if len(self._events) > self._max_events:
                self._events = self._events[-self._max_events :]

    @property
    def events(self) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._events)

    def named(self, event: str) -> list[dict[str, Any]]:
        return [item for item in self.events if item["event"] == event]
