"""
Generation attempt log.

Each attempt is appended as one JSON line to ``<log_dir>/generation.log``.
The file is rotated to ``generation-<timestamp>.log`` once it grows past the
size limit, and the most recent entries stay in memory for quick export.
"""

import json
import logging
import os
import threading
import time
from collections import deque
from datetime import date, datetime, time as dtime
from typing import Any, Dict, List, Optional, Union

from .models import ValidationReport

logger = logging.getLogger(__name__)

LOG_FILENAME = "generation.log"
HISTORY_SIZE = 20
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

DateLike = Union[str, date, datetime, None]


def _parse_bound(value: DateLike, end_of_day: bool = False) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, dtime.max if end_of_day else dtime.min)
    text = str(value).strip()
    try:
        return datetime.strptime(text, TIME_FORMAT)
    except ValueError:
        day = datetime.strptime(text, "%Y-%m-%d").date()
        return datetime.combine(day, dtime.max if end_of_day else dtime.min)


class GenerationLog:
    """Append-only audit sink for generation attempts. Never raises."""

    def __init__(self, log_dir: str = "logs", enabled: bool = True, max_bytes: int = 2 * 1024 * 1024):
        self.log_dir = log_dir
        self.enabled = enabled
        self.max_bytes = max_bytes
        self._lock = threading.Lock()
        self._history = deque(maxlen=HISTORY_SIZE)
        if enabled:
            self._load_recent()

    @property
    def log_file(self) -> str:
        return os.path.join(self.log_dir, LOG_FILENAME)

    def _load_recent(self):
        """Seed the in-memory history from the tail of the current log file."""
        if not os.path.exists(self.log_file):
            return
        try:
            with open(self.log_file, "r", encoding="utf-8") as f:
                lines = deque(f, maxlen=HISTORY_SIZE)
        except OSError as e:
            logger.warning(f"Could not read generation log {self.log_file}: {e}")
            return
        for line in lines:
            try:
                self._history.appendleft(json.loads(line))
            except ValueError:
                continue

    def _rotate_if_needed(self):
        if os.path.exists(self.log_file) and os.path.getsize(self.log_file) > self.max_bytes:
            rotated = os.path.join(self.log_dir, f"generation-{int(time.time())}.log")
            os.replace(self.log_file, rotated)
            logger.info(f"Rotated generation log to {rotated}")

    def record_attempt(self, post_id: Optional[int], report: Union[ValidationReport, Dict[str, Any], None],
                       context: Optional[Dict[str, Any]] = None) -> bool:
        """Append one attempt. Returns False when disabled or when writing failed."""
        if not self.enabled:
            return False
        try:
            if isinstance(report, ValidationReport):
                report = report.model_dump()
            context = dict(context or {})
            entry = {
                "time": datetime.now().strftime(TIME_FORMAT),
                "post_id": int(post_id or 0),
                "report": report or {},
                "context": context,
                "level": context.get("level", "info"),
            }
            line = json.dumps(entry, ensure_ascii=False, default=str) + "\n"
            with self._lock:
                os.makedirs(self.log_dir, exist_ok=True)
                self._rotate_if_needed()
                with open(self.log_file, "a", encoding="utf-8") as f:
                    f.write(line)
                self._history.appendleft(entry)
            return True
        except Exception as e:
            logger.warning(f"Failed to record generation attempt: {e}")
            return False

    def recent(self) -> List[Dict[str, Any]]:
        """Most recent entries, newest first."""
        with self._lock:
            return list(self._history)

    def export(self, provider: Optional[str] = None, level: Optional[str] = None,
               since: DateLike = None, until: DateLike = None) -> List[Dict[str, Any]]:
        """Filter recent entries by provider, level and an inclusive date range."""
        start = _parse_bound(since)
        end = _parse_bound(until, end_of_day=True)

        out = []
        for entry in self.recent():
            report = entry.get("report") or {}
            if provider and report.get("provider") not in (None, provider):
                continue
            if level and entry.get("level") not in (None, level):
                continue
            try:
                stamp = datetime.strptime(entry.get("time", ""), TIME_FORMAT)
            except ValueError:
                stamp = datetime.min
            if start and stamp < start:
                continue
            if end and stamp > end:
                continue
            out.append(entry)
        return out
