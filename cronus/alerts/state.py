"""On-disk "threshold alert already sent today" flag."""
from __future__ import annotations

import asyncio
import contextlib
import json
import os
from datetime import date
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

from cronus.util.date_utils import day_string, local_now
from cronus.util.logging_utils import get_logger

_STATE_KEY = "lastAlertDate"


class AlertStateTracker:
    """Persists ``{"lastAlertDate": "YYYY-MM-DD"}``; unreadable state means not sent."""

    def __init__(self, path: Path | str, *, today: Optional[Callable[[], date]] = None) -> None:
        self._path = Path(path)
        self._today = today or (lambda: local_now().date())
        self._lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    @property
    def path(self) -> Path:
        return self._path

    @contextlib.asynccontextmanager
    async def guard(self) -> AsyncIterator["AlertStateTracker"]:
        """Hold exclusive access for one check-then-record cycle."""

        async with self._lock:
            yield self

    def has_sent_today(self) -> bool:
        if not self._path.exists():
            return False
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                state = json.load(handle)
        except (OSError, ValueError) as exc:
            self._logger.error("Error reading alert state from %s: %s", self._path, exc)
            return False
        if not isinstance(state, dict):
            self._logger.error("Ignoring malformed alert state in %s", self._path)
            return False
        return state.get(_STATE_KEY) == day_string(self._today())

    def record_sent_today(self) -> None:
        state = {_STATE_KEY: day_string(self._today())}
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(state, handle)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            self._logger.error("Error writing alert state to %s: %s", self._path, exc)
            return
        self._logger.info("Recorded alert sent for %s", state[_STATE_KEY])


__all__ = ["AlertStateTracker"]
