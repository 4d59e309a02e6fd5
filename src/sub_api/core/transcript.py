# src/sub_api/core/transcript.py

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from .models import Role, Turn

logger = logging.getLogger(__name__)


class Transcript:
    """
    In-memory ordered conversation implementing TranscriptSink.

    Turn index == position; turns are never reordered or removed here.
    """

    def __init__(
        self,
        turns: Sequence[Turn] | None = None,
        *,
        on_refresh: Callable[[Turn], None] | None = None,
    ) -> None:
        self._turns: list[Turn] = []
        for t in turns or []:
            self.append(t.role, t.text)
        self.on_refresh = on_refresh

    # ---- TranscriptSink ----

    def turns(self) -> Sequence[Turn]:
        return tuple(self._turns)

    def set_text(self, index: int, text: str) -> None:
        self._turns[index].text = text

    def refresh_text(self, index: int) -> None:
        if self.on_refresh is not None and 0 <= index < len(self._turns):
            self.on_refresh(self._turns[index])

    # ---- host-side mutation ----

    def append(self, role: Role | str, text: str) -> Turn:
        turn = Turn(index=len(self._turns), role=Role.parse(role), text=text)
        self._turns.append(turn)
        return turn

    def swap_last(self, role: Role | str, text: str) -> Turn | None:
        """Replace the text of the most recent turn of `role` (a regenerated reply)."""
        r = Role.parse(role)
        for turn in reversed(self._turns):
            if turn.role == r:
                turn.text = text
                return turn
        return None

    def __len__(self) -> int:
        return len(self._turns)

    def to_list(self) -> list[dict[str, Any]]:
        return [{"role": t.role.value, "text": t.text} for t in self._turns]

    @classmethod
    def from_list(cls, data: Any) -> Transcript:
        transcript = cls()
        if not isinstance(data, list):
            return transcript
        for m in data:
            if not isinstance(m, dict):
                continue
            transcript.append(Role.parse(m.get("role", "user")), str(m.get("text", m.get("content", ""))))
        return transcript
