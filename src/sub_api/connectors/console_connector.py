# src/sub_api/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import TYPE_CHECKING

from ..cli.commands import cmd_user
from ..cli.commands import registry as command_registry
from ..core.models import Turn
from ..core.ports import TaskSource
from ..core.render import RENDER_LIMIT, RenderItem, select_renderable
from ..llm.errors import friendly_error_message
from ..tasks.task_models import RenderPosition, Task

if TYPE_CHECKING:
    from ..core.orchestrator import TaskOrchestrator
    from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleDisplay:
    """AnnotationDisplay that prints results instead of decorating a rendered message."""

    def __init__(
        self,
        config: TaskSource,
        *,
        render_limit: int = RENDER_LIMIT,
        emit: Callable[[str], None] | None = None,
    ) -> None:
        self._config = config
        self._limit = render_limit
        self._emit = emit or _print_ts
        self._orchestrator: TaskOrchestrator | None = None

    def bind(self, orchestrator: TaskOrchestrator) -> None:
        self._orchestrator = orchestrator

    def renderable(self) -> list[RenderItem]:
        orch = self._orchestrator
        if orch is None or not self._config.enabled:
            return []
        return select_renderable(orch.transcript.turns(), orch.results, self._config.list_tasks(), self._limit)

    # ---- AnnotationDisplay ----

    def show_pending(self, turn_index: int, tasks: Sequence[Task]) -> None:
        names = ", ".join(f"[{t.name}]" for t in tasks)
        self._emit(f"turn #{turn_index}: running {names}...")

    def refresh_results(self, turn_index: int) -> None:
        items = [i for i in self.renderable() if i.turn_index == turn_index]
        above = [i for i in items if i.position == RenderPosition.ABOVE]
        below = [i for i in items if i.position == RenderPosition.BELOW]
        for item in above:
            self._emit(f"turn #{turn_index} ^ {item.label()}")
        for item in below:
            self._emit(f"turn #{turn_index} v {item.label()}")

    # ---- TranscriptSink refresh hook ----

    def show_turn(self, turn: Turn) -> None:
        self._emit(f"turn #{turn.index} ({turn.role.value}):\n{turn.text}")


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (turns=%d).", len(state.transcript))
    _print_ts(
        "[CONSOLE] Plain text adds a user turn; /reply <text> adds an assistant turn. "
        "Use /help for commands, /exit to quit.\n"
    )

    while True:
        try:
            line = (await asyncio.to_thread(input, ">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            if line.startswith("/"):
                reply = await command_registry.handle(state, line, emit=_print_ts)
            else:
                reply = cmd_user(state, line.split())
        except Exception as e:
            logger.exception("Console command failed: %s", line)
            reply = f"Error: {friendly_error_message(e)}"

        if reply:
            _print_ts(reply)
