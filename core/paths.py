"""
Path resolution utilities.

Relative paths in configuration are resolved against the repository root,
so the bot behaves the same no matter which directory it is launched from.
"""
from __future__ import annotations

from pathlib import Path
from typing import Union

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_DATA_FILE = "data/botData.json"


def resolve_repo_path(path: Union[str, Path]) -> Path:
    candidate = Path(path).expanduser()
    if candidate.is_absolute() or candidate.drive:
        return candidate
    return BASE_DIR / candidate
