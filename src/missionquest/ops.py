"""Operational utilities for Mission Quest."""

from __future__ import annotations

import json
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import Deque, Optional


class StructuredLogger:
    """Write JSON lines log entries for parents to inspect.

    Entries are always kept in a bounded in-memory buffer; when ``path`` is
    set they are appended to that file as well.
    """

    def __init__(self, *, path: Path | None = None, capacity: int = 500) -> None:
        self.path = path
        self._entries: Deque[dict] = deque(maxlen=capacity)

    def log(self, event_type: str, *, level: str = "info", **fields: object) -> dict:
        entry = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": level,
            "event": event_type,
            **fields,
        }
        self._entries.append(entry)
        if self.path:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(entry, default=str) + "\n")
        return entry

    def error(self, event_type: str, **fields: object) -> dict:
        return self.log(event_type, level="error", **fields)

    def tail(self, limit: int = 50, *, event: Optional[str] = None) -> tuple[dict, ...]:
        entries = [entry for entry in self._entries if event is None or entry["event"] == event]
        return tuple(entries[-limit:])


__all__ = ["StructuredLogger"]
