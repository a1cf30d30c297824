"""
Health file writer for the heat-pump logger.

Writes a JSON health file at a configurable path with four fields:
- state: Current session state (disconnected/connected/subscribed).
- last_message_ts: ISO timestamp of the most recent received message.
- last_save_ts: ISO timestamp of the most recent successful snapshot save.
- total_categories_saved: Category rows written since startup.

The file is rewritten on every state change, providing a simple liveness
signal that a Docker HEALTHCHECK or monitoring can inspect.

CHANGELOG:
- 2026-10-16: Track session state and saved category totals
- 2026-10-10: Initial creation (STORY-012)

TODO:
- None
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path


class HealthWriter:
    """Writes logger health status to a JSON file.

    Each mutating method updates the in-memory state and immediately
    rewrites the health file so it always reflects the latest status.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._state: str = "disconnected"
        self._last_message_ts: str | None = None
        self._last_save_ts: str | None = None
        self._total_categories_saved: int = 0

    def set_state(self, state: str) -> None:
        """Record a session state change and write health file."""
        self._state = state
        self._write()

    def record_message(self) -> None:
        """Record a received message and write health file."""
        self._last_message_ts = datetime.now(tz=UTC).isoformat()
        self._write()

    def record_save(self, categories: int) -> None:
        """Record a successful save of *categories* rows and write health file."""
        self._last_save_ts = datetime.now(tz=UTC).isoformat()
        self._total_categories_saved += categories
        self._write()

    def _write(self) -> None:
        """Write the health JSON file with current state."""
        data = {
            "state": self._state,
            "last_message_ts": self._last_message_ts,
            "last_save_ts": self._last_save_ts,
            "total_categories_saved": self._total_categories_saved,
        }
        self.path.write_text(json.dumps(data))
