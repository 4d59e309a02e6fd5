# src/sub_api/tasks/task_store.py

from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import replace
from pathlib import Path
from typing import Any

from ..storage.json_store import read_json, write_json_atomic
from .task_models import PatternRule, RenderPosition, RuleStage, Task

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits

DEFAULT_SYSTEM_PROMPT = "You are an analysis assistant. Analyse the conversation below."
DEFAULT_USER_PROMPT = "Analyse the following:\n{{char1}}"

_EDITABLE_FIELDS = {
    "name",
    "enabled",
    "system_prompt",
    "user_prompt",
    "render_position",
    "write_to_context",
}


def new_task_id() -> str:
    """Opaque id: task_<epoch ms>_<6 base36 chars>."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"task_{int(time.time() * 1000)}_{suffix}"


def create_default_task(name: str = "New task") -> Task:
    return Task(
        id=new_task_id(),
        name=name,
        enabled=True,
        system_prompt=DEFAULT_SYSTEM_PROMPT,
        user_prompt=DEFAULT_USER_PROMPT,
        render_position=RenderPosition.BELOW,
        write_to_context=False,
    )


class TaskConfigStore:
    """
    Task configuration persisted as JSON: {"enabled": bool, "tasks": [...]}.

    Implements the TaskSource port. Every mutation is saved immediately.
    Tasks are stored in the camelCase layout of the settings file format.
    """

    def __init__(self, path: str | Path, *, default_enabled: bool = True) -> None:
        self._path = Path(path)
        self._enabled = default_enabled
        self._tasks: list[Task] = []
        self._load()
        logger.info("TaskConfigStore ready path=%s tasks=%d", self._path, len(self._tasks))

    # ---- persistence ----

    def _load(self) -> None:
        data = read_json(self._path, {})
        if not isinstance(data, dict):
            logger.warning("Task config %s is not an object; starting empty", self._path)
            return

        if "enabled" in data:
            self._enabled = bool(data["enabled"])

        seen: set[str] = set()
        for raw in data.get("tasks") or []:
            if not isinstance(raw, dict) or not raw.get("id"):
                continue
            try:
                task = Task.from_dict(raw)
            except Exception:
                logger.exception("Skipping malformed task entry: %r", raw)
                continue
            if task.id in seen:
                logger.warning("Duplicate task id %s ignored", task.id)
                continue
            seen.add(task.id)
            self._tasks.append(task)

    def save(self) -> None:
        payload: dict[str, Any] = {
            "enabled": self._enabled,
            "tasks": [t.to_dict() for t in self._tasks],
        }
        write_json_atomic(self._path, payload)

    # ---- TaskSource ----

    @property
    def enabled(self) -> bool:
        return self._enabled

    def list_tasks(self) -> list[Task]:
        return list(self._tasks)

    # ---- editing ----

    def set_enabled(self, value: bool) -> None:
        self._enabled = bool(value)
        self.save()

    def get(self, task_id: str) -> Task | None:
        return next((t for t in self._tasks if t.id == task_id), None)

    def add_task(self, task: Task | None = None, *, name: str | None = None) -> Task:
        task = task or create_default_task(name or "New task")
        if self.get(task.id) is not None:
            raise ValueError(f"Task id already exists: {task.id}")
        self._tasks.append(task)
        self.save()
        return task

    def update_task(self, task_id: str, **fields: Any) -> Task:
        unknown = set(fields) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown task fields: {', '.join(sorted(unknown))}")
        if "render_position" in fields:
            fields["render_position"] = RenderPosition.parse(fields["render_position"])

        i = self._index(task_id)
        self._tasks[i] = replace(self._tasks[i], **fields)
        self.save()
        return self._tasks[i]

    def delete_task(self, task_id: str) -> Task:
        i = self._index(task_id)
        task = self._tasks.pop(i)
        self.save()
        return task

    def add_rule(self, task_id: str, stage: RuleStage | str, rule: PatternRule) -> Task:
        i = self._index(task_id)
        task = self._tasks[i]
        task.rules(RuleStage(stage)).append(rule)
        self.save()
        return task

    def remove_rule(self, task_id: str, stage: RuleStage | str, index: int) -> PatternRule:
        task = self._tasks[self._index(task_id)]
        rules = task.rules(RuleStage(stage))
        if not 0 <= index < len(rules):
            raise IndexError(f"No {RuleStage(stage).value} rule #{index} on task {task_id}")
        rule = rules.pop(index)
        self.save()
        return rule

    def _index(self, task_id: str) -> int:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        raise KeyError(task_id)
