# src/sub_api/cli/commands.py

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import cast

from ..core.models import Role, TaskResult
from ..core.render import select_renderable
from ..core.state import AppState
from ..tasks.task_models import PatternRule, RuleStage

CommandEmitter = Callable[[str], None]
CommandReply = str | Awaitable[str]
CommandHandler2 = Callable[[AppState, list[str]], CommandReply]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], CommandReply]
CommandHandler = CommandHandler2 | CommandHandler3


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /run, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            reply = cast(CommandHandler3, handler)(state, args, emit)
        else:
            reply = cast(CommandHandler2, handler)(state, args)

        if inspect.isawaitable(reply):
            reply = await reply
        return cast(str, reply)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _on_off(raw: str) -> bool | None:
    s = raw.strip().lower()
    if s in ("on", "1", "true", "yes"):
        return True
    if s in ("off", "0", "false", "no"):
        return False
    return None


def _text_arg(args: list[str]) -> str:
    # Console input is single-line; "\n" spells a line break.
    return " ".join(args).replace("\\n", "\n")


def _save_transcript(state: AppState) -> None:
    state.save_transcript()


def _save_results(state: AppState) -> None:
    # Same serialised background path as batch saves.
    state.orchestrator.schedule_persist()


def _format_result(name: str, r: TaskResult | None) -> str:
    if r is None:
        return f"[{name}] (no result)"
    if r.ok:
        return f"[{name}] {r.text}"
    return f"[{name}] ERROR: {r.error_message}"


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.settings
    tasks = state.config.list_tasks()
    return (
        "Status:\n"
        f"  chat: {state.chat_name}\n"
        f"  processing: {'ON' if state.config.enabled else 'OFF'}\n"
        f"  provider: {getattr(s, 'provider', '?')} model={getattr(s, 'model_name', '?')}\n"
        f"  generation client: {'configured' if state.generator is not None else 'MISSING (no API key)'}\n"
        f"  tasks: {len(tasks)} ({sum(1 for t in tasks if t.enabled)} enabled)\n"
        f"  turns: {len(state.transcript)}  stored results: {len(state.results)}"
    )


def cmd_enable(state: AppState, args: list[str]) -> str:
    value = _on_off(args[0]) if args else None
    if value is None:
        return "Usage: /enable on|off"
    state.config.set_enabled(value)
    return f"Processing {'enabled' if value else 'disabled'}."


def cmd_tasks(state: AppState, args: list[str]) -> str:
    tasks = state.config.list_tasks()
    if not tasks:
        return "No tasks. Use /task add <name>."
    lines = ["Tasks:"]
    for t in tasks:
        flags = [
            "on" if t.enabled else "off",
            "ctx" if t.write_to_context else t.render_position.value,
            f"rules={len(t.input_regex_list)}/{len(t.output_regex_list)}/{len(t.final_regex_list)}",
        ]
        lines.append(f"  {t.id}  {t.name}  ({', '.join(flags)})")
    return "\n".join(lines)


def cmd_task(state: AppState, args: list[str]) -> str:
    usage = (
        "Usage: /task add <name> | rm <id> | on|off <id> | ctx <id> on|off | pos <id> above|below"
        " | prompt <id> <text> | sys <id> <text> | rule <id> <input|output|final> <flags> <find> [replace]"
        " | unrule <id> <stage> <n>"
    )
    if not args:
        return usage

    sub, rest = args[0].lower(), args[1:]

    if sub == "add":
        task = state.config.add_task(name=_text_arg(rest) or None)
        return f"Added task {task.id} ({task.name})."

    if not rest:
        return usage
    task_id = rest[0]
    if state.config.get(task_id) is None:
        return f"Unknown task: {task_id}"

    if sub == "rm":
        task = state.config.delete_task(task_id)
        state.results.drop_task(task_id)
        _save_results(state)
        return f"Deleted task {task.id} ({task.name})."

    if sub in ("on", "off"):
        state.config.update_task(task_id, enabled=(sub == "on"))
        return f"Task {task_id} {'enabled' if sub == 'on' else 'disabled'}."

    if sub == "ctx" and len(rest) >= 2 and _on_off(rest[1]) is not None:
        state.config.update_task(task_id, write_to_context=_on_off(rest[1]))
        return f"Task {task_id} write-to-context: {rest[1].lower()}."

    if sub == "pos" and len(rest) >= 2 and rest[1].lower() in ("above", "below"):
        state.config.update_task(task_id, render_position=rest[1].lower())
        return f"Task {task_id} renders {rest[1].lower()}."

    if sub == "prompt":
        state.config.update_task(task_id, user_prompt=_text_arg(rest[1:]))
        return f"Task {task_id} user prompt updated."

    if sub == "sys":
        state.config.update_task(task_id, system_prompt=_text_arg(rest[1:]))
        return f"Task {task_id} system prompt updated."

    if sub == "rule" and len(rest) >= 4:
        try:
            stage = RuleStage(rest[1].lower())
        except ValueError:
            return usage
        rule = PatternRule(find=rest[3], replace=_text_arg(rest[4:]), flags=rest[2])
        state.config.add_rule(task_id, stage, rule)
        return f"Added {stage.value} rule to {task_id}: {rule.find!r} -> {rule.replace!r} ({rule.flags})."

    if sub == "unrule" and len(rest) >= 3:
        try:
            removed = state.config.remove_rule(task_id, rest[1].lower(), int(rest[2]))
        except (ValueError, IndexError) as e:
            return f"Cannot remove rule: {e}"
        return f"Removed rule {removed.find!r} from {task_id}."

    return usage


def cmd_user(state: AppState, args: list[str]) -> str:
    text = _text_arg(args)
    if not text:
        return "Usage: /user <text>"
    turn = state.transcript.append(Role.USER, text)
    _save_transcript(state)
    return f"Added user turn #{turn.index}."


async def cmd_reply(state: AppState, args: list[str]) -> str:
    text = _text_arg(args)
    if not text:
        return "Usage: /reply <text>"
    turn = state.transcript.append(Role.ASSISTANT, text)
    results = await state.orchestrator.on_turn_added(turn.index)
    _save_transcript(state)
    return f"Added assistant turn #{turn.index} ({len(results)} task(s) ran)."


async def cmd_swap(state: AppState, args: list[str]) -> str:
    text = _text_arg(args)
    if not text:
        return "Usage: /swap <text>"
    turn = state.transcript.swap_last(Role.ASSISTANT, text)
    if turn is None:
        return "No assistant turn to swap."
    # The host announces the regenerated reply as a new turn right after the swap.
    state.orchestrator.on_turn_swapped()
    await state.orchestrator.on_turn_added(turn.index)
    _save_transcript(state)
    return f"Swapped assistant turn #{turn.index}; automatic processing skipped (use /run)."


async def cmd_run(state: AppState, args: list[str]) -> str:
    orch = state.orchestrator
    if orch.latest_assistant_index() is None:
        return "No assistant turn to process."

    if args:
        task = state.config.get(args[0])
        if task is None:
            return f"Unknown task: {args[0]}"
        result = await orch.process_latest_one(task.id)
        _save_transcript(state)
        return _format_result(task.name, result) if result is not None else "Nothing ran (disabled or not configured)."

    results = await orch.process_latest()
    _save_transcript(state)
    if not results:
        return "Nothing ran (disabled, not configured, or no enabled tasks)."
    names = {t.id: t.name for t in state.config.list_tasks()}
    return "\n".join(_format_result(names.get(tid, tid), r) for tid, r in results.items())


def cmd_show(state: AppState, args: list[str]) -> str:
    limit = int(getattr(state.settings, "render_limit", 7))
    items = select_renderable(state.transcript.turns(), state.results, state.config.list_tasks(), limit)
    if not items:
        return "No results to show."
    lines = []
    for item in items:
        arrow = "^" if item.position.value == "above" else "v"
        lines.append(f"turn #{item.turn_index} {arrow} {item.label()}")
    return "\n".join(lines)


def cmd_raw(state: AppState, args: list[str]) -> str:
    turns = state.transcript.turns()
    if not turns:
        return "Transcript is empty."
    try:
        idx = int(args[0]) if args else len(turns) - 1
        turn = turns[idx]
    except (ValueError, IndexError):
        return "Usage: /raw [turn index]"
    return f"turn #{turn.index} ({turn.role.value}):\n{turn.text}"


def cmd_forget(state: AppState, args: list[str]) -> str:
    try:
        idx = int(args[0])
    except (IndexError, ValueError):
        return "Usage: /forget <turn index>"
    state.results.drop_turn(idx)
    _save_results(state)
    return f"Dropped stored results for turn #{idx}."


def cmd_chat(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Current chat: {state.chat_name}. Usage: /chat <name>"
    name = args[0]
    if name == state.chat_name:
        return f"Already in chat {name}."
    try:
        state.open_chat(name)
    except ValueError as e:
        return str(e)
    return f"Switched to chat {name} ({len(state.transcript)} turns, {len(state.results)} stored results)."


registry.register("help", cmd_help, "show this help")
registry.register("status", cmd_status, "show configuration and counters")
registry.register("enable", cmd_enable, "turn processing on/off")
registry.register("tasks", cmd_tasks, "list tasks")
registry.register("task", cmd_task, "edit tasks (add/rm/on/off/ctx/pos/prompt/sys/rule/unrule)")
registry.register("user", cmd_user, "add a user turn")
registry.register("reply", cmd_reply, "add an assistant turn (runs enabled tasks)")
registry.register("swap", cmd_swap, "regenerate the last assistant turn (no automatic run)")
registry.register("run", cmd_run, "run all tasks, or one task id, on the latest assistant turn")
registry.register("show", cmd_show, "show displayed results")
registry.register("raw", cmd_raw, "show the raw text of a turn (with annotations)")
registry.register("forget", cmd_forget, "drop stored results of a turn")
registry.register("chat", cmd_chat, "switch to another chat (transcript and results are per chat)")
