# src/sub_api/core/context.py

"""
Context snapshots and placeholder substitution.

extract_context() maps role-relative recency keys to clean turn text:
- "user1" is the most recent user turn, "user2" the one before, ...
- "char1" is the most recent assistant turn, "char2" the one before, ...
System turns are invisible, and marker blocks are stripped so annotations never
feed back into future prompts.

substitute() replaces {{user1}} / {{CHAR2}} / ... (case-insensitive) with snapshot values.
Placeholders whose key is missing stay verbatim.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

from . import markers
from .models import Role, Turn

ROLE_KEYS = {
    Role.USER: "user",
    Role.ASSISTANT: "char",
}

_PLACEHOLDER_RE = re.compile(r"\{\{(user\d+|char\d+)\}\}", re.IGNORECASE)


def extract_context(turns: Iterable[Turn]) -> dict[str, str]:
    counters = {prefix: 0 for prefix in ROLE_KEYS.values()}
    context: dict[str, str] = {}

    for turn in reversed(list(turns)):
        prefix = ROLE_KEYS.get(turn.role)
        if prefix is None:
            continue
        counters[prefix] += 1
        context[f"{prefix}{counters[prefix]}"] = markers.strip(turn.text or "")

    return context


def substitute(template: str, context: Mapping[str, str]) -> str:
    if not template:
        return ""

    def repl(m: re.Match[str]) -> str:
        value = context.get(m.group(1).lower())
        return m.group(0) if value is None else value

    return _PLACEHOLDER_RE.sub(repl, template)
