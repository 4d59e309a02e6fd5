# tests/test_patterns.py

from __future__ import annotations

import logging

from sub_api.core.patterns import CompiledRule, RuleCompileError, apply_chain, try_compile
from sub_api.tasks.task_models import PatternRule


def test_global_replace_collapses_runs() -> None:
    assert apply_chain("HELLO", [PatternRule("L+", "L", "g")]) == "HELO"


def test_without_g_only_first_match_is_replaced() -> None:
    assert apply_chain("aaa", [PatternRule("a", "b", "i")]) == "baa"
    # empty flags default to "g"
    assert apply_chain("aaa", [PatternRule("a", "b", "")]) == "bbb"


def test_case_insensitive_multiline_and_dotall_flags() -> None:
    assert apply_chain("Foo foo", [PatternRule("foo", "x", "gi")]) == "x x"
    assert apply_chain("x\nx", [PatternRule("^x", "y", "gm")]) == "y\ny"
    assert apply_chain("a\nb", [PatternRule("a.b", "X", "gs")]) == "X"


def test_rules_compose_left_to_right() -> None:
    r1 = PatternRule("cat", "dog", "g")
    r2 = PatternRule("dog", "wolf", "g")
    text = "cat and dog"

    assert apply_chain(apply_chain(text, [r1]), [r2]) == apply_chain(text, [r1, r2])
    assert apply_chain(text, [r1, r2]) == "wolf and wolf"


def test_invalid_rule_is_skipped_and_chain_continues(caplog) -> None:
    good = [PatternRule("a", "b", "g"), PatternRule("c", "d", "g")]
    with_bad = [good[0], PatternRule("(unclosed", "x", "g"), good[1]]

    with caplog.at_level(logging.WARNING, logger="sub_api.core.patterns"):
        out = apply_chain("abc", with_bad)

    assert out == apply_chain("abc", good) == "bbd"
    assert any("(unclosed" in rec.getMessage() for rec in caplog.records)


def test_unsupported_or_repeated_flags_make_rule_invalid() -> None:
    assert isinstance(try_compile(PatternRule("a", "b", "gy")), RuleCompileError)
    assert isinstance(try_compile(PatternRule("a", "b", "gg")), RuleCompileError)
    assert isinstance(try_compile(PatternRule("a", "b", "gu")), CompiledRule)
    assert apply_chain("a", [PatternRule("a", "b", "gy")]) == "a"


def test_empty_pattern_is_noop() -> None:
    assert apply_chain("abc", [PatternRule("", "x", "g")]) == "abc"
    assert apply_chain("abc", []) == "abc"
    assert apply_chain("abc", None) == "abc"


def test_dollar_style_replacement_tokens() -> None:
    assert apply_chain("me@host", [PatternRule(r"(\w+)@(\w+)", "$2 at $1")]) == "host at me"
    assert apply_chain("foo", [PatternRule("o", "[$&]")]) == "f[o][o]"
    assert apply_chain("x", [PatternRule("x", "$$")]) == "$"
    # no such group: literal, like the settings format has always behaved
    assert apply_chain("a", [PatternRule("a", "$1")]) == "$1"
    # "$12" with a single group is group 1 followed by "2"
    assert apply_chain("a", [PatternRule("(a)", "$12")]) == "a2"


def test_python_native_backreferences_still_work() -> None:
    assert apply_chain("ab", [PatternRule(r"(a)(b)", r"\2\1")]) == "ba"
    assert apply_chain("ab", [PatternRule(r"(?P<x>a)", r"[\g<x>]")]) == "[a]b"


def test_named_groups_in_angle_bracket_syntax() -> None:
    assert apply_chain("hi!", [PatternRule(r"(?<word>\w+)!", "<$<word>>")]) == "<hi>"
    assert apply_chain("aab", [PatternRule(r"(?<c>a)\k<c>", "X")]) == "Xb"
    # lookbehind is left alone
    assert apply_chain("xa ya", [PatternRule(r"(?<=x)a", "!")]) == "x! ya"


def test_bad_replacement_template_is_skipped(caplog) -> None:
    rules = [PatternRule("a", r"\9", "g"), PatternRule("b", "c", "g")]
    with caplog.at_level(logging.WARNING, logger="sub_api.core.patterns"):
        assert apply_chain("ab", rules) == "ac"
    assert caplog.records
