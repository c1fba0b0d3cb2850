"""
In-memory activity ledger.

Maps ``(guild_id, user_id)`` to the member's most recent qualifying
activity. The ledger is mutated synchronously from the event loop only, so a
snapshot taken between awaits always reflects a consistent state.
"""
from __future__ import annotations

import logging
import random
from typing import Any, Callable, Dict, Optional

from .types import ActivityRecord, ledger_key
from .utils import now_ms

logger = logging.getLogger("gridiron.ledger")


class ActivityLedger:
    def __init__(
        self,
        sample_rate: float = 0.01,
        clock: Callable[[], int] = now_ms,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self._records: Dict[tuple[str, str], ActivityRecord] = {}
        self.last_persisted_at: Optional[int] = None
        self.sample_rate = sample_rate
        self._clock = clock
        self._rng = rng

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def record_activity(self, user_id: Any, guild_id: Any, timestamp: Optional[int] = None) -> None:
        """Upsert the record for this member. Never raises."""
        try:
            ts = self._clock() if timestamp is None else int(timestamp)
            record = ActivityRecord.at(user_id, guild_id, ts)
            self._records[record.key] = record
            if self.sample_rate > 0 and self._rng() < self.sample_rate:
                logger.debug("Activity tracking sample: user %s in guild %s at %s", user_id, guild_id, ts)
        except Exception as e:
            logger.error("Error recording activity for user %s in guild %s: %s", user_id, guild_id, e)

    def get(self, user_id: Any, guild_id: Any) -> Optional[ActivityRecord]:
        return self._records.get((str(guild_id), str(user_id)))

    def remove(self, user_id: Any, guild_id: Any) -> bool:
        return self._records.pop((str(guild_id), str(user_id)), None) is not None

    def prune(self, older_than: int) -> int:
        """Delete every record whose last activity is strictly before ``older_than``."""
        stale = [key for key, record in self._records.items() if record.last_activity < older_than]
        for key in stale:
            del self._records[key]
        return len(stale)

    def records(self) -> list[ActivityRecord]:
        return list(self._records.values())

    def snapshot(self) -> Dict[str, Any]:
        """Detached copy in the persisted layout."""
        return {
            "userActivity": {
                ledger_key(record.guild_id, record.user_id): record.to_dict()
                for record in self._records.values()
            },
            "lastSave": self.last_persisted_at,
        }

    def load_snapshot(self, data: Dict[str, Any], merge: bool = False) -> int:
        """Load a persisted snapshot into the ledger.

        By default the current contents are replaced. With ``merge`` the
        snapshot is folded into the live records and the newer
        ``last_activity`` wins per key, so activity recorded while the file
        was being read survives. Returns the number of records held
        afterwards; unusable entries are skipped.
        """
        records: Dict[tuple[str, str], ActivityRecord] = dict(self._records) if merge else {}
        entries = data.get("userActivity") if isinstance(data, dict) else None
        if not isinstance(entries, dict):
            entries = {}
        skipped = 0
        for entry in entries.values():
            record = ActivityRecord.from_dict(entry)
            if record is None:
                skipped += 1
                continue
            existing = records.get(record.key)
            if existing is None or existing.last_activity < record.last_activity:
                records[record.key] = record
        if skipped:
            logger.warning("Skipped %s malformed activity entries while loading", skipped)
        self._records = records
        last_save = data.get("lastSave") if isinstance(data, dict) else None
        self.last_persisted_at = last_save if isinstance(last_save, int) else None
        return len(records)
