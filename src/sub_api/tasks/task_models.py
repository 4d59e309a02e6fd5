# src/sub_api/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class RenderPosition(StrEnum):
    """Where the display places a task's result relative to the turn text."""

    ABOVE = "above"
    BELOW = "below"

    @classmethod
    def parse(cls, raw: Any) -> RenderPosition:
        try:
            return cls(str(raw).strip().lower())
        except Exception:
            return cls.BELOW


class RuleStage(StrEnum):
    INPUT = "input"
    OUTPUT = "output"
    FINAL = "final"


@dataclass(frozen=True, slots=True)
class PatternRule:
    """One find/replace rule. Empty flags mean "g"."""

    find: str
    replace: str = ""
    flags: str = "g"

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> PatternRule:
        return cls(
            find=str(raw.get("find") or ""),
            replace=str(raw.get("replace") or ""),
            flags=str(raw.get("flags") or "g"),
        )

    def to_dict(self) -> dict[str, str]:
        return {"find": self.find, "replace": self.replace, "flags": self.flags}


def _rules(raw: Any) -> list[PatternRule]:
    if not isinstance(raw, list):
        return []
    return [PatternRule.from_dict(r) for r in raw if isinstance(r, dict)]


@dataclass(slots=True)
class Task:
    """
    A user-configured analysis task.

    The core reads tasks and never mutates them; edits go through TaskConfigStore.
    """

    id: str
    name: str
    enabled: bool = True
    system_prompt: str = ""
    user_prompt: str = ""
    input_regex_list: list[PatternRule] = field(default_factory=list)
    output_regex_list: list[PatternRule] = field(default_factory=list)
    final_regex_list: list[PatternRule] = field(default_factory=list)
    render_position: RenderPosition = RenderPosition.BELOW
    write_to_context: bool = False

    def rules(self, stage: RuleStage) -> list[PatternRule]:
        if stage == RuleStage.INPUT:
            return self.input_regex_list
        if stage == RuleStage.OUTPUT:
            return self.output_regex_list
        return self.final_regex_list

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Task:
        # Keys follow the persisted settings format (camelCase).
        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name") or ""),
            enabled=bool(raw.get("enabled", True)),
            system_prompt=str(raw.get("systemPrompt") or ""),
            user_prompt=str(raw.get("userPrompt") or ""),
            input_regex_list=_rules(raw.get("inputRegexList")),
            output_regex_list=_rules(raw.get("outputRegexList")),
            final_regex_list=_rules(raw.get("finalRegexList")),
            render_position=RenderPosition.parse(raw.get("renderPosition", "below")),
            write_to_context=bool(raw.get("writeToContext", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "enabled": self.enabled,
            "systemPrompt": self.system_prompt,
            "userPrompt": self.user_prompt,
            "inputRegexList": [r.to_dict() for r in self.input_regex_list],
            "outputRegexList": [r.to_dict() for r in self.output_regex_list],
            "finalRegexList": [r.to_dict() for r in self.final_regex_list],
            "renderPosition": self.render_position.value,
            "writeToContext": self.write_to_context,
        }
