"""Operational utilities: structured event logging and health reporting."""

from __future__ import annotations

import json
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import Deque, Optional


class StructuredLogger:
    """Write JSON lines log entries for admin inspection."""

    def __init__(self, *, path: Path | None = None, keep: int = 500) -> None:
        self.path = path
        self._entries: Deque[dict] = deque(maxlen=keep)

    def log(self, event_type: str, **fields: object) -> dict:
        entry = {"timestamp": datetime.utcnow().isoformat(), "event": event_type, **fields}
        self._entries.append(entry)
        if self.path:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(entry, default=str) + "\n")
        return entry

    def tail(self, limit: int = 50) -> tuple[dict, ...]:
        if limit <= 0:
            return ()
        return tuple(self._entries)[-limit:]

    def events(self, event_type: str) -> tuple[dict, ...]:
        return tuple(entry for entry in self._entries if entry["event"] == event_type)


class HealthMonitor:
    """Aggregate runtime health information for the status endpoint."""

    def __init__(self) -> None:
        self.database_online = True
        self.migrations: list[str] = []
        self.last_latency_ms: Optional[int] = None
        self.last_checked: Optional[datetime] = None

    def add_migration(self, name: str) -> None:
        if name not in self.migrations:
            self.migrations.append(name)

    def record_check(self, *, online: bool, latency_ms: Optional[int] = None) -> None:
        self.database_online = online
        self.last_latency_ms = latency_ms
        self.last_checked = datetime.utcnow()

    def status(self) -> dict:
        return {
            "database": "ok" if self.database_online else "down",
            "latency_ms": self.last_latency_ms,
            "checked_at": self.last_checked.isoformat() if self.last_checked else None,
            "migrations": list(self.migrations),
        }


__all__ = ["HealthMonitor", "StructuredLogger"]
