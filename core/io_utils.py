from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any


async def read_json(path: Path, default: Any = None) -> Any:
    """Read a JSON file off the event loop; a missing file yields ``default``.

    Malformed content raises ``json.JSONDecodeError`` so callers can decide
    how to degrade.
    """
    def _read() -> Any:
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except FileNotFoundError:
            return default

    return await asyncio.to_thread(_read)


async def write_json_atomic(path: Path, data: Any, indent: int = 2) -> None:
    """Serialize ``data`` to a temp file next to ``path`` and swap it in."""
    def _write() -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=True, indent=indent)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)

    await asyncio.to_thread(_write)
