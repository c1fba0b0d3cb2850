"""
Type definitions and dataclasses for the bot.

Records that are persisted know how to convert themselves to and from the
on-disk JSON layout, so the layout lives in one place.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .utils import ms_to_iso, safe_int


def ledger_key(guild_id: str, user_id: str) -> str:
    """Composite key used in the persisted ``userActivity`` map."""
    return f"{guild_id}-{user_id}"


@dataclass(frozen=True)
class ActivityRecord:
    """Last qualifying activity of one user in one guild."""
    user_id: str
    guild_id: str
    last_activity: int
    last_updated: str

    @property
    def key(self) -> tuple[str, str]:
        return (self.guild_id, self.user_id)

    @classmethod
    def at(cls, user_id: Any, guild_id: Any, timestamp_ms: int) -> ActivityRecord:
        return cls(
            user_id=str(user_id),
            guild_id=str(guild_id),
            last_activity=int(timestamp_ms),
            last_updated=ms_to_iso(int(timestamp_ms)),
        )

    def elapsed_ms(self, now_ms: int) -> int:
        return now_ms - self.last_activity

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "guildId": self.guild_id,
            "lastActivity": self.last_activity,
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Optional[ActivityRecord]:
        """Parse a persisted entry; returns None when required fields are unusable."""
        if not isinstance(data, dict):
            return None
        user_id = data.get("userId")
        guild_id = data.get("guildId")
        last_activity = data.get("lastActivity")
        if isinstance(last_activity, float) and last_activity.is_integer():
            last_activity = int(last_activity)
        last_activity = safe_int(last_activity)
        if user_id in (None, "") or guild_id in (None, "") or last_activity is None:
            return None
        last_updated = data.get("lastUpdated")
        if not isinstance(last_updated, str) or not last_updated:
            last_updated = ms_to_iso(last_activity)
        return cls(
            user_id=str(user_id),
            guild_id=str(guild_id),
            last_activity=last_activity,
            last_updated=last_updated,
        )


@dataclass
class CycleReport:
    """Outcome of one reconciliation pass over a guild."""
    guild_id: int
    scanned: int = 0
    changes: int = 0
    failures: int = 0
    notified: int = 0
    skipped: bool = False
    transitions: list[tuple[int, str, str]] = field(default_factory=list)

    def record_transition(self, member_id: int, before: str, after: str) -> None:
        self.transitions.append((member_id, before, after))
        self.changes += 1
