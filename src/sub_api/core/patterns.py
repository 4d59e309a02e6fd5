# src/sub_api/core/patterns.py

"""
Pattern chain: an ordered, fault-tolerant list of find/replace rules.

Rules are written by task authors in the vocabulary the settings file has always used:
- flags are letters ("g", "i", "m", "s"); without "g" only the first match is replaced,
- replacements may use $1..$99, $&, $<name> and $$ as well as Python's \\1 / \\g<name>,
- named groups may be written as (?<name>...) and referenced as \\k<name>.

Key invariants:
- rules apply left-to-right, each one seeing the previous rule's output,
- a rule that fails to compile (or to apply) is logged and skipped, never fatal,
- a rule with an empty pattern is a no-op.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache

from ..tasks.task_models import PatternRule

logger = logging.getLogger(__name__)

_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}
# Unicode is the default for str patterns; match indices have no meaning here.
_NOOP_FLAGS = frozenset("ud")

_NAMED_GROUP_RE = re.compile(r"(?<!\\)\(\?<(?![=!])")
_NAMED_BACKREF_RE = re.compile(r"\\k<([A-Za-z_][A-Za-z0-9_]*)>")
_DOLLAR_RE = re.compile(r"\$(\$|&|\d{1,2}|<([A-Za-z_][A-Za-z0-9_]*)>)")


@dataclass(frozen=True, slots=True)
class CompiledRule:
    rule: PatternRule
    regex: re.Pattern[str]
    template: str
    count: int  # 0 -> replace all

    def apply(self, text: str) -> str:
        return self.regex.sub(self.template, text, count=self.count)


@dataclass(frozen=True, slots=True)
class RuleCompileError:
    rule: PatternRule
    message: str


def _parse_flags(flags: str) -> tuple[int, bool]:
    re_flags = 0
    replace_all = False
    seen: set[str] = set()
    for ch in (flags or "").strip() or "g":
        if ch in seen:
            raise ValueError(f"duplicate flag {ch!r}")
        seen.add(ch)
        if ch == "g":
            replace_all = True
        elif ch in _FLAG_MAP:
            re_flags |= _FLAG_MAP[ch]
        elif ch in _NOOP_FLAGS:
            continue
        else:
            raise ValueError(f"unsupported flag {ch!r}")
    return re_flags, replace_all


def _translate_pattern(find: str) -> str:
    out = _NAMED_GROUP_RE.sub("(?P<", find)
    return _NAMED_BACKREF_RE.sub(r"(?P=\1)", out)


def _translate_replacement(replace: str, regex: re.Pattern[str]) -> str:
    """Rewrite $-style tokens into Python template syntax; unknown tokens stay literal."""

    def sub(m: re.Match[str]) -> str:
        tok = m.group(1)
        if tok == "$":
            return "$"
        if tok == "&":
            return r"\g<0>"
        name = m.group(2)
        if name is not None:
            return rf"\g<{name}>" if name in regex.groupindex else m.group(0)

        n = int(tok)
        if 1 <= n <= regex.groups:
            return rf"\g<{n}>"
        # "$12" with fewer than 12 groups means group 1 followed by "2".
        if len(tok) == 2 and 1 <= int(tok[0]) <= regex.groups:
            return rf"\g<{tok[0]}>" + tok[1]
        return m.group(0)

    return _DOLLAR_RE.sub(sub, replace or "")


@lru_cache(maxsize=512)
def try_compile(rule: PatternRule) -> CompiledRule | RuleCompileError:
    """Compile one rule. Failure is returned as a value so callers can skip the rule."""
    try:
        re_flags, replace_all = _parse_flags(rule.flags)
        regex = re.compile(_translate_pattern(rule.find), re_flags)
    except (re.error, ValueError) as e:
        return RuleCompileError(rule=rule, message=str(e))

    return CompiledRule(
        rule=rule,
        regex=regex,
        template=_translate_replacement(rule.replace, regex),
        count=0 if replace_all else 1,
    )


def apply_chain(text: str, rules: Iterable[PatternRule] | None) -> str:
    """Apply `rules` in order to `text`; invalid rules are skipped."""
    if not rules:
        return text

    result = text
    for rule in rules:
        if not rule.find:
            continue

        compiled = try_compile(rule)
        if isinstance(compiled, RuleCompileError):
            logger.warning("Invalid pattern skipped: %r (%s)", rule.find, compiled.message)
            continue

        try:
            result = compiled.apply(result)
        except (re.error, IndexError) as e:
            # Bad replacement template (e.g. \9 without a group 9).
            logger.warning("Pattern %r failed to apply, skipped: %s", rule.find, e)

    return result
