# src/sub_api/core/models.py

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"

    @classmethod
    def parse(cls, raw: Any) -> Role:
        s = str(raw or "").strip().lower()
        if s in ("char", "character", "bot"):
            return cls.ASSISTANT
        try:
            return cls(s)
        except Exception:
            return cls.USER


@dataclass(slots=True)
class Turn:
    """One message of the transcript. Only `text` is ever mutated by the core."""

    index: int
    role: Role
    text: str


class ResultStatus(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class TaskResult:
    """Outcome of one task on one turn: either `text` or `error_message` is set."""

    status: ResultStatus
    timestamp: int
    text: str | None = None
    error_message: str | None = None

    @classmethod
    def success(cls, text: str, timestamp: int | None = None) -> TaskResult:
        return cls(ResultStatus.SUCCESS, now_ms() if timestamp is None else timestamp, text=text)

    @classmethod
    def failure(cls, error_message: str, timestamp: int | None = None) -> TaskResult:
        return cls(
            ResultStatus.FAILURE,
            now_ms() if timestamp is None else timestamp,
            error_message=error_message,
        )

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"result": self.text or "", "timestamp": self.timestamp}
        return {"error": self.error_message or "", "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> TaskResult:
        ts_raw = raw.get("timestamp")
        ts = int(ts_raw) if isinstance(ts_raw, (int, float)) else 0
        if "error" in raw and raw["error"] is not None:
            return cls.failure(str(raw["error"]), ts)
        if "result" in raw and raw["result"] is not None:
            return cls.success(str(raw["result"]), ts)
        raise ValueError("result entry has neither 'result' nor 'error'")
