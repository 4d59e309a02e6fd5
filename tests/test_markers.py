# tests/test_markers.py

from __future__ import annotations

import re

import pytest

from sub_api.core import markers


def test_inject_appends_block_in_exact_format() -> None:
    out = markers.inject("hello", "T", "HELLO")
    assert out == "hello\n<!--sub-api:T:start-->\nHELLO\n<!--sub-api:T:end-->"


@pytest.mark.parametrize(
    "text",
    [
        "hello",
        "",
        "line one\n",
        "a\n<!--sub-api:other:start-->\nkeep\n<!--sub-api:other:end-->",
        "old\n<!--sub-api:T:start-->\nstale\n<!--sub-api:T:end-->",
    ],
)
def test_reinjection_is_idempotent(text: str) -> None:
    twice = markers.inject(markers.inject(text, "T", "A"), "T", "B")

    assert markers.strip(twice, "T") == markers.strip(text, "T")
    assert twice.count("<!--sub-api:T:start-->") == 1
    assert "\nB\n" in twice
    assert "\nA\n" not in twice


def test_strip_by_id_keeps_other_blocks() -> None:
    text = markers.inject(markers.inject("msg", "one", "1"), "two", "2")

    only_two = markers.strip(text, "one")
    assert "sub-api:one:" not in only_two
    assert only_two == markers.inject("msg", "two", "2")


def test_strip_all_removes_every_block() -> None:
    text = markers.inject(markers.inject("msg", "one", "1"), "two", "2")
    assert markers.strip(text) == "msg"


def test_task_id_with_pattern_characters_is_escaped() -> None:
    tid = "task.(1)+[x]*"
    assert markers.escape_task_id(tid) == re.escape(tid)

    text = markers.inject("msg", tid, "payload")
    assert markers.has_block(text, tid)
    assert markers.strip(text, tid) == "msg"

    # "a.b" must not match a block owned by "axb"
    other = markers.inject("msg", "axb", "keep")
    assert markers.strip(other, "a.b") == other


def test_spaced_legacy_markers_are_recognised() -> None:
    legacy = "hi\n<!-- sub-api:T:start -->\nold\n<!-- sub-api:T:end -->"
    assert markers.strip(legacy, "T") == "hi"
    assert markers.strip(legacy) == "hi"
    assert markers.inject(legacy, "T", "new") == markers.inject("hi", "T", "new")


def test_strip_handles_multiline_content_and_empty_text() -> None:
    text = markers.inject("q", "T", "line1\nline2\n\nline4")
    assert markers.strip(text, "T") == "q"
    assert markers.strip("", "T") == ""
