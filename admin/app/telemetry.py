# admin/app/telemetry.py
from __future__ import annotations

import json
import logging
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from admin.app.config import settings

log = logging.getLogger(__name__)

# catalog activity tracked for /status
COUNTERS = (
    "items_added",
    "items_updated",
    "items_deleted",
    "images_ingested",
    "ingest_failed",
    "batch_refresh_total",
    "batch_refresh_failed",
)
LOG_NAME = "admin.jsonl"
KEEP_ROTATED = 2


class Telemetry:
    """
    Counters for catalog activity plus an append-only JSONL event log.

    Events land in {LOG_DIR}/admin.jsonl, rotated to admin.jsonl.1 / .2 once
    the file passes MAX_LOG_MB. Every method swallows its own failures: a full
    disk must not turn a successful add/update into an error.
    """

    def __init__(self, log_dir: Optional[str | Path] = None, max_log_mb: Optional[int] = None):
        self._lock = threading.Lock()
        self._started = time.time()
        self._counts: Dict[str, int] = dict.fromkeys(COUNTERS, 0)
        self._last_error: Optional[str] = None

        self._log_dir = Path(log_dir or settings.LOG_DIR)
        self._log_file = self._log_dir / LOG_NAME
        self._max_log_bytes = int(max_log_mb or settings.MAX_LOG_MB) * 1024 * 1024

    @property
    def log_file(self) -> Path:
        return self._log_file

    def increment(self, counter_name: str, amount: int = 1) -> None:
        """Bump a known counter; unknown names are ignored."""
        with self._lock:
            if counter_name in self._counts:
                self._counts[counter_name] += amount

    def set_error(self, error: str) -> None:
        with self._lock:
            self._last_error = str(error)

    def log_json(self, event: str, level: str = "info", **fields: Any) -> None:
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "subsystem": "admin",
            "event": event,
            **fields,
        }
        try:
            line = json.dumps(entry, ensure_ascii=False, default=str)
            with self._lock:
                self._rotate_if_full()
                self._log_dir.mkdir(parents=True, exist_ok=True)
                with self._log_file.open("a", encoding="utf-8") as f:
                    f.write(line + "\n")
        except (OSError, TypeError, ValueError) as e:
            log.debug("[telemetry] dropped %s event: %s", event, e)

    def _rotated(self, n: int) -> Path:
        return self._log_file.with_name(f"{LOG_NAME}.{n}")

    def _rotate_if_full(self) -> None:
        try:
            if not self._log_file.exists() or self._log_file.stat().st_size <= self._max_log_bytes:
                return
            # shift .1 -> .2, drop the oldest, then the live file becomes .1
            self._rotated(KEEP_ROTATED).unlink(missing_ok=True)
            for n in range(KEEP_ROTATED - 1, 0, -1):
                if self._rotated(n).exists():
                    self._rotated(n).rename(self._rotated(n + 1))
            self._log_file.rename(self._rotated(1))
        except OSError as e:
            log.warning("[telemetry] log rotation failed: %s", e)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "uptime_s": int(time.time() - self._started),
                **self._counts,
                "last_error": self._last_error,
            }


# Singleton instance
telemetry = Telemetry()
