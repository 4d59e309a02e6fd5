# src/sub_api/core/results.py

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .models import TaskResult

logger = logging.getLogger(__name__)

ResultSnapshot = dict[str, dict[str, dict[str, Any]]]


class ResultStore:
    """
    Per-turn, per-task outcomes: turn index -> task id -> TaskResult.

    At most one result per (turn, task); put() overwrites. Entries are never pruned
    automatically, only through drop_turn()/drop_task().
    """

    def __init__(self) -> None:
        self._by_turn: dict[int, dict[str, TaskResult]] = {}

    def put(self, turn_index: int, task_id: str, result: TaskResult) -> None:
        self._by_turn.setdefault(int(turn_index), {})[task_id] = result

    def get(self, turn_index: int, task_id: str) -> TaskResult | None:
        return self._by_turn.get(int(turn_index), {}).get(task_id)

    def for_turn(self, turn_index: int) -> dict[str, TaskResult]:
        return dict(self._by_turn.get(int(turn_index), {}))

    def turn_indices(self) -> list[int]:
        return sorted(i for i, per_task in self._by_turn.items() if per_task)

    def drop_turn(self, turn_index: int) -> None:
        self._by_turn.pop(int(turn_index), None)

    def drop_task(self, task_id: str) -> None:
        for per_task in self._by_turn.values():
            per_task.pop(task_id, None)
        self._by_turn = {i: per_task for i, per_task in self._by_turn.items() if per_task}

    def __len__(self) -> int:
        return sum(len(per_task) for per_task in self._by_turn.values())

    def to_dict(self) -> ResultSnapshot:
        """Persisted schema: {"<turn>": {"<task id>": {"result"|"error": ..., "timestamp": ms}}}."""
        return {
            str(i): {task_id: r.to_dict() for task_id, r in per_task.items()}
            for i, per_task in sorted(self._by_turn.items())
            if per_task
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ResultStore:
        store = cls()
        if not isinstance(data, Mapping):
            return store

        for key, per_task in data.items():
            try:
                turn_index = int(key)
            except (TypeError, ValueError):
                logger.warning("Skipping result entry with non-numeric turn key: %r", key)
                continue
            if not isinstance(per_task, Mapping):
                continue
            for task_id, raw in per_task.items():
                if not isinstance(raw, Mapping):
                    continue
                try:
                    store.put(turn_index, str(task_id), TaskResult.from_dict(dict(raw)))
                except ValueError:
                    logger.warning("Skipping malformed result turn=%s task=%s", key, task_id)
        return store
