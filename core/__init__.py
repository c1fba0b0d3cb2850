"""
Core utilities and infrastructure for the league bot.

This package contains:
- activity_store: Durable JSON store for the activity ledger
- config: Configuration loading and validation
- constants: Configuration keys and enums
- io_utils: File I/O helpers
- ledger: In-memory activity ledger
- paths: Path resolution
- types: Dataclasses and type definitions
- utils: General utilities
"""
from .constants import ConfigKey, FeedKey, K, RoleState
from .types import ActivityRecord, CycleReport

__all__ = [
    # Constants
    "ConfigKey",
    "FeedKey",
    "K",
    "RoleState",
    # Types
    "ActivityRecord",
    "CycleReport",
]
