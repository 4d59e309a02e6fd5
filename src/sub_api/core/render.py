# src/sub_api/core/render.py

"""
Display-side selection of what to show out-of-band.

Only the most recent `limit` assistant turns that have results are rendered; tasks that
write into the transcript are skipped (their output already lives in the turn text).
This never prunes the ResultStore.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from ..tasks.task_models import RenderPosition, Task
from .models import Role, TaskResult, Turn
from .results import ResultStore

RENDER_LIMIT = 7


@dataclass(frozen=True, slots=True)
class RenderItem:
    turn_index: int
    task: Task
    result: TaskResult

    @property
    def position(self) -> RenderPosition:
        return self.task.render_position

    def label(self) -> str:
        if self.result.ok:
            return self.result.text or ""
        return f"[{self.task.name}] {self.result.error_message}"


def select_renderable(
    turns: Sequence[Turn],
    results: ResultStore,
    tasks: Sequence[Task],
    limit: int = RENDER_LIMIT,
) -> list[RenderItem]:
    annotated = [
        t.index for t in turns if t.role == Role.ASSISTANT and results.for_turn(t.index)
    ]

    items: list[RenderItem] = []
    for turn_index in annotated[-max(1, limit):]:
        per_task = results.for_turn(turn_index)
        for task in tasks:
            if task.write_to_context:
                continue
            result = per_task.get(task.id)
            if result is None:
                continue
            if result.ok and not result.text:
                continue
            items.append(RenderItem(turn_index=turn_index, task=task, result=result))
    return items
