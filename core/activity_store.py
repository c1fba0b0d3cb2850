"""
Durable JSON store for the activity ledger.

Persistence is best-effort: load never blocks startup and save never raises,
so the worst case after a failure is losing one auto-save interval of
activity updates.
"""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .io_utils import read_json, write_json_atomic
from .utils import now_ms

logger = logging.getLogger("gridiron.store")

SnapshotSource = Callable[[], Dict[str, Any]]


def empty_snapshot(timestamp: Optional[int] = None) -> Dict[str, Any]:
    return {"userActivity": {}, "lastSave": now_ms() if timestamp is None else timestamp}


class ActivityStore:
    """Loads and saves the activity snapshot and owns the auto-save task."""

    def __init__(self, path: Path, clock: Callable[[], int] = now_ms) -> None:
        self.path = path
        self._clock = clock
        self._auto_save_task: Optional[asyncio.Task] = None
        self._save_lock = asyncio.Lock()

    @property
    def auto_save_running(self) -> bool:
        return self._auto_save_task is not None and not self._auto_save_task.done()

    async def load(self) -> Dict[str, Any]:
        try:
            data = await read_json(self.path, default=None)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error("Activity data at %s is malformed, starting fresh: %s", self.path, e)
            return empty_snapshot(self._clock())
        except OSError as e:
            logger.error("Error loading activity data from %s: %s", self.path, e)
            return empty_snapshot(self._clock())

        if data is None:
            logger.info("No existing activity data at %s, starting fresh", self.path)
            return empty_snapshot(self._clock())
        if not isinstance(data, dict) or not isinstance(data.get("userActivity", {}), dict):
            logger.error("Activity data at %s has an unexpected shape, starting fresh", self.path)
            return empty_snapshot(self._clock())

        data.setdefault("userActivity", {})
        logger.info("Loaded activity data from %s", self.path)
        return data

    async def save(self, snapshot: Dict[str, Any]) -> bool:
        """Stamp ``lastSave`` and atomically overwrite the file. Never raises."""
        async with self._save_lock:
            try:
                snapshot["lastSave"] = self._clock()
                await write_json_atomic(self.path, snapshot)
            except Exception as e:
                logger.error("Error saving activity data to %s: %s", self.path, e)
                return False
        logger.debug("Activity data saved to %s", self.path)
        return True

    def start_auto_save(
        self,
        interval_seconds: float,
        snapshot_source: SnapshotSource,
        on_saved: Optional[Callable[[int], None]] = None,
    ) -> None:
        if self.auto_save_running:
            return
        self._auto_save_task = asyncio.create_task(
            self._auto_save_loop(interval_seconds, snapshot_source, on_saved)
        )
        logger.info("Auto-save started (every %ss)", int(interval_seconds))

    async def stop_auto_save(self) -> None:
        task = self._auto_save_task
        self._auto_save_task = None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.info("Auto-save stopped")

    async def _auto_save_loop(
        self,
        interval_seconds: float,
        snapshot_source: SnapshotSource,
        on_saved: Optional[Callable[[int], None]],
    ) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                snapshot = snapshot_source()
                if await self.save(snapshot) and on_saved is not None:
                    on_saved(snapshot["lastSave"])
            except Exception as e:
                logger.error("Error in periodic activity save: %s", e, exc_info=True)
