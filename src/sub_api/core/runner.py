# src/sub_api/core/runner.py

"""
Single-task execution.

run() performs, strictly in order:
  1. context snapshot of the current transcript (markers stripped)
  2. placeholder substitution into system + user prompt
  3. input rules on both prompts
  4. generation call (the only suspension point)
  5. output rules, then final rules
  6. store the outcome (success or failure) in the ResultStore
  7. when the task writes to context and succeeded, splice the text into the turn

run() never raises: any failure becomes a failure-kind TaskResult.
"""

from __future__ import annotations

import logging

from ..tasks.task_models import Task
from . import markers
from .context import extract_context, substitute
from .models import TaskResult
from .patterns import apply_chain
from .ports import GenerationClient, TranscriptSink
from .results import ResultStore

logger = logging.getLogger(__name__)


def _error_message(exc: BaseException) -> str:
    return str(exc).strip() or exc.__class__.__name__


class TaskRunner:
    def __init__(
        self,
        transcript: TranscriptSink,
        generator: GenerationClient,
        results: ResultStore,
    ) -> None:
        self._transcript = transcript
        self._generator = generator
        self._results = results

    async def run(self, task: Task, turn_index: int) -> TaskResult:
        try:
            result = TaskResult.success(await self._produce(task))
        except Exception as e:
            logger.warning("Task %r (%s) failed on turn %s: %s", task.name, task.id, turn_index, e)
            logger.debug("Task %s failure details", task.id, exc_info=True)
            result = TaskResult.failure(_error_message(e))

        self._results.put(turn_index, task.id, result)

        if result.ok and task.write_to_context:
            try:
                self.write_to_turn(turn_index, task.id, result.text or "")
            except Exception:
                logger.exception("Failed to write task %s into turn %s", task.id, turn_index)

        return result

    async def _produce(self, task: Task) -> str:
        context = extract_context(self._transcript.turns())

        system_prompt = substitute(task.system_prompt, context)
        user_prompt = substitute(task.user_prompt, context)

        system_prompt = apply_chain(system_prompt, task.input_regex_list)
        user_prompt = apply_chain(user_prompt, task.input_regex_list)

        raw = await self._generator.generate(system_prompt, user_prompt)

        text = apply_chain(raw, task.output_regex_list)
        return apply_chain(text, task.final_regex_list)

    def write_to_turn(self, turn_index: int, task_id: str, text: str) -> bool:
        # No await between read and write: the event loop keeps this atomic per call.
        turns = self._transcript.turns()
        if not 0 <= turn_index < len(turns):
            logger.warning("Turn %s no longer exists; result for %s not injected", turn_index, task_id)
            return False
        current = turns[turn_index].text
        self._transcript.set_text(turn_index, markers.inject(current, task_id, text))
        return True
