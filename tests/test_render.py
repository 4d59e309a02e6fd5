# tests/test_render.py

from __future__ import annotations

from sub_api.connectors.console_connector import ConsoleDisplay
from sub_api.core.models import Role, TaskResult
from sub_api.core.orchestrator import TaskOrchestrator
from sub_api.core.render import select_renderable
from sub_api.core.results import ResultStore
from sub_api.core.transcript import Transcript
from sub_api.tasks.task_models import RenderPosition, Task

from .fakes import StaticTasks


def _chat(n_pairs: int) -> Transcript:
    t = Transcript()
    for i in range(n_pairs):
        t.append(Role.USER, f"u{i}")
        t.append(Role.ASSISTANT, f"a{i}")
    return t


def test_only_last_n_annotated_assistant_turns_are_selected() -> None:
    t = _chat(5)
    task = Task(id="A", name="Mood")
    results = ResultStore()
    for turn in t.turns():
        results.put(turn.index, "A", TaskResult.success(f"r{turn.index}"))

    items = select_renderable(t.turns(), results, [task], limit=2)

    # user turns are never rendered targets; only assistant turns 7 and 9 remain
    assert [i.turn_index for i in items] == [7, 9]
    # nothing is pruned from the store
    assert len(results) == 10


def test_context_writers_are_skipped_and_task_order_is_kept() -> None:
    t = _chat(1)
    tasks = [
        Task(id="B", name="Second", render_position=RenderPosition.ABOVE),
        Task(id="CTX", name="Writer", write_to_context=True),
        Task(id="A", name="First"),
    ]
    results = ResultStore()
    for tid in ("A", "B", "CTX"):
        results.put(1, tid, TaskResult.success(tid.lower()))
    results.put(1, "A", TaskResult.failure("boom"))

    items = select_renderable(t.turns(), results, tasks)

    assert [i.task.id for i in items] == ["B", "A"]
    assert items[0].position == RenderPosition.ABOVE
    assert items[1].label() == "[First] boom"


def test_console_display_prints_above_before_below() -> None:
    t = _chat(1)
    tasks = [
        Task(id="below", name="Below"),
        Task(id="above", name="Above", render_position=RenderPosition.ABOVE),
    ]
    results = ResultStore()
    results.put(1, "below", TaskResult.success("under"))
    results.put(1, "above", TaskResult.success("over"))

    lines: list[str] = []
    source = StaticTasks(tasks)
    display = ConsoleDisplay(source, emit=lines.append)
    display.bind(
        TaskOrchestrator(tasks=source, transcript=t, results=results, generator=None, display=display)
    )

    display.refresh_results(1)
    assert lines == ["turn #1 ^ over", "turn #1 v under"]

    source.enabled = False
    lines.clear()
    display.refresh_results(1)
    assert lines == []
