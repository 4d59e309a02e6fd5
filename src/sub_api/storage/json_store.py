# src/sub_api/storage/json_store.py

"""
JSON files for chat-scoped data (results metadata, transcript).

Writes are atomic: each write goes to its own temp file next to the target, then
os.replace. Concurrent writers of the same path never share a temp file.
Reads are best-effort: a missing or corrupt file yields an empty value and a log line,
never an exception.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from ..core.transcript import Transcript

logger = logging.getLogger(__name__)


def write_json_atomic(path: str | Path, data: Any) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    # mkstemp-backed: unique name, created with mode 0600.
    with tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    ) as f:
        tmp = Path(f.name)
        try:
            json.dump(data, f, ensure_ascii=False, indent=2)
        except Exception:
            f.close()
            tmp.unlink(missing_ok=True)
            raise

    try:
        os.replace(tmp, path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise
    with contextlib.suppress(Exception):
        # Best-effort: chat content may be sensitive, keep the file private on disk.
        os.chmod(path, 0o600)


def read_json(path: str | Path, default: Any) -> Any:
    path = Path(path)
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text("utf-8"))
    except Exception:
        logger.exception("Failed to read JSON from %s", path)
        return default


class JsonResultPersister:
    """
    ResultPersister writing {"<turn>": {"<task>": {...}}} to one file per chat.

    save() may be called from worker threads; calls are serialised per instance.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def save(self, snapshot: dict[str, dict[str, dict[str, Any]]]) -> None:
        with self._lock:
            write_json_atomic(self.path, snapshot)
        logger.debug("Saved results for %d turns to %s", len(snapshot), self.path)

    def load(self) -> dict[str, Any]:
        data = read_json(self.path, {})
        return data if isinstance(data, dict) else {}


def load_transcript(path: str | Path) -> Transcript:
    transcript = Transcript.from_list(read_json(path, []))
    logger.info("Loaded transcript: %d turns from %s", len(transcript), path)
    return transcript


def save_transcript(transcript: Transcript, path: str | Path) -> None:
    try:
        write_json_atomic(path, transcript.to_list())
    except Exception:
        logger.exception("Failed to save transcript to %s", path)
