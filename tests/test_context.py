# tests/test_context.py

from __future__ import annotations

from sub_api.core import markers
from sub_api.core.context import extract_context, substitute
from sub_api.core.models import Role
from sub_api.core.transcript import Transcript


def _transcript() -> Transcript:
    t = Transcript()
    t.append(Role.USER, "u-old")
    t.append(Role.ASSISTANT, "a-old")
    t.append(Role.USER, "u-new")
    t.append(Role.SYSTEM, "system note")
    t.append(Role.ASSISTANT, "a-new")
    return t


def test_keys_count_backwards_per_role() -> None:
    ctx = extract_context(_transcript().turns())

    assert ctx == {
        "user1": "u-new",
        "user2": "u-old",
        "char1": "a-new",
        "char2": "a-old",
    }


def test_numbering_is_stable_and_renumbers_on_append() -> None:
    t = _transcript()
    assert extract_context(t.turns()) == extract_context(t.turns())

    t.append(Role.ASSISTANT, "a-newest")
    ctx = extract_context(t.turns())
    assert ctx["char1"] == "a-newest"
    assert ctx["char2"] == "a-new"
    assert ctx["char3"] == "a-old"
    assert ctx["user1"] == "u-new"


def test_marker_blocks_never_reach_the_context() -> None:
    t = Transcript()
    t.append(Role.USER, "hi")
    t.append(Role.ASSISTANT, markers.inject(markers.inject("hello", "A", "x"), "B", "y"))

    assert extract_context(t.turns())["char1"] == "hello"


def test_system_turns_are_invisible() -> None:
    t = Transcript()
    t.append(Role.SYSTEM, "only system")
    assert extract_context(t.turns()) == {}


def test_substitute_is_case_insensitive_and_keeps_unknown_placeholders() -> None:
    ctx = {"user1": "hi", "char1": "hello"}

    assert substitute("{{USER1}} / {{Char1}} / {{char1}}", ctx) == "hi / hello / hello"
    assert substitute("{{user9}} and {{name}}", ctx) == "{{user9}} and {{name}}"
    assert substitute("", ctx) == ""


def test_substituted_values_are_not_rescanned() -> None:
    ctx = {"user1": "{{char1}}", "char1": "X"}
    assert substitute("{{user1}}", ctx) == "{{char1}}"
