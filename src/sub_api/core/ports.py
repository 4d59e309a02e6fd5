# src/sub_api/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the generation vendor, the transcript owner and the display swappable
and makes testing easier.
"""

from collections.abc import Sequence
from typing import Any, Protocol

from ..tasks.task_models import Task
from .models import Turn


class GenerationClient(Protocol):
    """
    External text-generation service.

    Model identifier and credential are bound at construction time.
    Raises GenerationError on a non-success response or an empty output.
    """

    async def generate(self, system_prompt: str, user_prompt: str) -> str: ...


class TranscriptSink(Protocol):
    """
    Transcript collaborator: ordered turns plus text mutation.

    The core only ever calls set_text() with marker blocks appended/replaced.
    """

    def turns(self) -> Sequence[Turn]: ...
    def set_text(self, index: int, text: str) -> None: ...
    def refresh_text(self, index: int) -> None: ...


class AnnotationDisplay(Protocol):
    """Out-of-band rendering of results for tasks that do not write to the transcript."""

    def show_pending(self, turn_index: int, tasks: Sequence[Task]) -> None: ...
    def refresh_results(self, turn_index: int) -> None: ...


class ResultPersister(Protocol):
    """Chat-scoped metadata storage. save() may block; the orchestrator runs it off-loop."""

    def save(self, snapshot: dict[str, dict[str, dict[str, Any]]]) -> None: ...


class TaskSource(Protocol):
    """Read-only view of the task configuration (global switch + ordered task list)."""

    @property
    def enabled(self) -> bool: ...

    def list_tasks(self) -> Sequence[Task]: ...
