# src/sub_api/core/orchestrator.py

"""
Batch orchestration for one turn.

A batch runs every selected task concurrently on the same turn and waits for all of them
to settle; one task failing never affects its siblings. Afterwards:
- the transcript collaborator is asked to refresh the turn text if any task wrote into it,
- the display collaborator is always asked to refresh out-of-band results,
- a save of the ResultStore is requested once, in the background (not awaited by the caller).

Saves of one chat run one at a time and always write the store's latest state, so an
older snapshot can never land after a newer one.

When the feature is disabled or no generation client is configured, a batch is a no-op.

Session state tracks the "turn swapped" signal: the next "turn added" signal after a swap
is a regenerated turn, not a new one, and is not processed automatically.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from ..tasks.task_models import Task
from .models import Role, TaskResult, Turn
from .ports import AnnotationDisplay, GenerationClient, ResultPersister, TaskSource, TranscriptSink
from .results import ResultStore
from .runner import TaskRunner

logger = logging.getLogger(__name__)


class _ResultSaver:
    """Serialised background saves of one chat's ResultStore."""

    def __init__(self, persister: ResultPersister, results: ResultStore) -> None:
        self.persister = persister
        self._results = results
        self._dirty = False
        self._task: asyncio.Task[None] | None = None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def request(self) -> None:
        self._dirty = True
        if not self.busy:
            self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        # Requests arriving mid-save are coalesced into one more pass.
        while self._dirty:
            self._dirty = False
            snapshot = self._results.to_dict()
            try:
                await asyncio.to_thread(self.persister.save, snapshot)
            except Exception:
                logger.exception("Persisting results failed")

    async def wait(self) -> None:
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)


@dataclass(slots=True)
class SessionState:
    """Per-conversation state owned by the orchestrator."""

    swap_pending: bool = False

    def arm_swap(self) -> None:
        self.swap_pending = True

    def consume_swap(self) -> bool:
        """Return True (and clear the flag) if the current new-turn signal must be ignored."""
        if not self.swap_pending:
            return False
        self.swap_pending = False
        return True


class TaskOrchestrator:
    def __init__(
        self,
        *,
        tasks: TaskSource,
        transcript: TranscriptSink,
        results: ResultStore,
        generator: GenerationClient | None,
        display: AnnotationDisplay,
        persister: ResultPersister | None = None,
        session: SessionState | None = None,
    ) -> None:
        self._tasks = tasks
        self._transcript = transcript
        self._results = results
        self._generator = generator
        self._display = display
        self.session = session or SessionState()
        self._saver = _ResultSaver(persister, results) if persister is not None else None
        self._retired_savers: list[_ResultSaver] = []

    @property
    def results(self) -> ResultStore:
        return self._results

    @property
    def transcript(self) -> TranscriptSink:
        return self._transcript

    @property
    def persister(self) -> ResultPersister | None:
        return self._saver.persister if self._saver is not None else None

    # ---- readiness / targeting ----

    def _ready(self) -> GenerationClient | None:
        """The client to run a batch with, or None when the batch is a no-op."""
        if not self._tasks.enabled:
            logger.info("Processing is disabled; skipping batch.")
            return None
        if self._generator is None:
            logger.warning("No generation client configured (missing API key?); skipping batch.")
        return self._generator

    def _target(self, turn_index: int) -> Turn | None:
        turns = self._transcript.turns()
        if not 0 <= turn_index < len(turns):
            logger.debug("Turn %s out of range (len=%d); skipping.", turn_index, len(turns))
            return None
        turn = turns[turn_index]
        if turn.role == Role.SYSTEM:
            return None
        return turn

    def latest_assistant_index(self) -> int | None:
        turns = self._transcript.turns()
        for i in range(len(turns) - 1, -1, -1):
            if turns[i].role == Role.ASSISTANT:
                return i
        return None

    # ---- run-all / run-single ----

    async def process_turn(self, turn_index: int) -> dict[str, TaskResult]:
        generator = self._ready()
        if generator is None or self._target(turn_index) is None:
            return {}

        enabled = [t for t in self._tasks.list_tasks() if t.enabled]
        if not enabled:
            return {}
        return await self._run_batch(generator, turn_index, enabled)

    async def process_one(self, task_id: str, turn_index: int) -> TaskResult | None:
        generator = self._ready()
        if generator is None or self._target(turn_index) is None:
            return None

        task = next((t for t in self._tasks.list_tasks() if t.id == task_id), None)
        if task is None:
            logger.info("Unknown task id %r; nothing to run.", task_id)
            return None

        outcome = await self._run_batch(generator, turn_index, [task])
        return outcome.get(task.id)

    async def process_latest(self) -> dict[str, TaskResult]:
        idx = self.latest_assistant_index()
        return {} if idx is None else await self.process_turn(idx)

    async def process_latest_one(self, task_id: str) -> TaskResult | None:
        idx = self.latest_assistant_index()
        return None if idx is None else await self.process_one(task_id, idx)

    async def _run_batch(
        self,
        generator: GenerationClient,
        turn_index: int,
        tasks: Sequence[Task],
    ) -> dict[str, TaskResult]:
        runner = TaskRunner(self._transcript, generator, self._results)

        shown = [t for t in tasks if not t.write_to_context]
        if shown:
            self._signal(self._display.show_pending, turn_index, shown)

        logger.info("Batch start: turn=%s tasks=%d", turn_index, len(tasks))
        outcomes = await asyncio.gather(
            *(runner.run(task, turn_index) for task in tasks),
            return_exceptions=True,
        )

        results: dict[str, TaskResult] = {}
        wrote = False
        for task, outcome in zip(tasks, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("Runner crashed for task %s", task.id, exc_info=outcome)
                outcome = TaskResult.failure(str(outcome) or outcome.__class__.__name__)
                self._results.put(turn_index, task.id, outcome)
            results[task.id] = outcome
            if outcome.ok and task.write_to_context:
                wrote = True

        failed = sum(1 for r in results.values() if not r.ok)
        logger.info("Batch done: turn=%s ok=%d failed=%d", turn_index, len(results) - failed, failed)

        if wrote:
            self._signal(self._transcript.refresh_text, turn_index)
        self._signal(self._display.refresh_results, turn_index)

        self.schedule_persist()
        return results

    # ---- host events ----

    async def on_turn_added(self, turn_index: int | None = None) -> dict[str, TaskResult]:
        """New-turn signal. Only assistant turns are processed automatically."""
        if self.session.consume_swap():
            logger.debug("Turn %s follows a swap; not reprocessing.", turn_index)
            return {}

        if not self._tasks.enabled:
            return {}

        idx = len(self._transcript.turns()) - 1 if turn_index is None else turn_index
        turn = self._target(idx)
        if turn is None or turn.role != Role.ASSISTANT:
            return {}
        return await self.process_turn(idx)

    def on_turn_swapped(self) -> None:
        self.session.arm_swap()

    def on_chat_changed(
        self,
        transcript: TranscriptSink,
        results: ResultStore,
        persister: ResultPersister | None = None,
    ) -> None:
        """
        Switch to another conversation.

        Results are chat-scoped: the new chat saves through its own persister, and without
        one it is not persisted at all. Saves still pending for the previous chat finish
        against the previous chat's persister.
        """
        if self._saver is not None and self._saver.busy:
            self._retired_savers.append(self._saver)

        self._transcript = transcript
        self._results = results
        self._saver = _ResultSaver(persister, results) if persister is not None else None
        self.session = SessionState()

        for turn_index in results.turn_indices():
            self._signal(self._display.refresh_results, turn_index)

    # ---- collaborators ----

    @staticmethod
    def _signal(fn: Callable[..., Any], *args: Any) -> None:
        try:
            fn(*args)
        except Exception:
            logger.exception("Rendering signal %s failed", getattr(fn, "__name__", fn))

    def schedule_persist(self) -> None:
        """Request a background save of the current chat's results."""
        if self._saver is not None:
            self._saver.request()

    async def drain(self) -> None:
        """Wait for background saves (used on shutdown and in tests)."""
        savers = [*self._retired_savers, *([self._saver] if self._saver is not None else [])]
        for saver in savers:
            await saver.wait()
        self._retired_savers = [s for s in self._retired_savers if s.busy]
