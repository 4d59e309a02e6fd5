# src/sub_api/core/markers.py

"""
Marker blocks: task annotations spliced into a turn's own text.

Block format (appended at the end of the turn):

    \n<!--sub-api:{task_id}:start-->\n{content}\n<!--sub-api:{task_id}:end-->

Key invariants:
- a turn holds at most one block per task id (inject() strips before appending),
- strip() removes exactly the block(s) and the single newline that introduced them,
- task ids are escaped before they are embedded into a removal pattern.

Markers written with inner spaces (`<!-- sub-api:ID:start -->`) by older builds are
recognised as well, so re-annotated turns never accumulate stale blocks.
"""

from __future__ import annotations

import re

_ANY_BLOCK_RE = re.compile(
    r"\n?<!--\s*sub-api:(?P<id>[^\n]+?):start\s*-->[\s\S]*?<!--\s*sub-api:(?P=id):end\s*-->"
)


def marker_start(task_id: str) -> str:
    return f"\n<!--sub-api:{task_id}:start-->"


def marker_end(task_id: str) -> str:
    return f"<!--sub-api:{task_id}:end-->"


def escape_task_id(task_id: str) -> str:
    """Escape every character of `task_id` that is meaningful to the pattern engine."""
    return re.escape(task_id)


def _block_re(task_id: str) -> re.Pattern[str]:
    tid = escape_task_id(task_id)
    return re.compile(
        rf"\n?<!--\s*sub-api:{tid}:start\s*-->[\s\S]*?<!--\s*sub-api:{tid}:end\s*-->"
    )


def strip(text: str, task_id: str | None = None) -> str:
    """Remove the block for `task_id`, or every block when `task_id` is None."""
    if not text:
        return ""
    if task_id is None:
        return _ANY_BLOCK_RE.sub("", text)
    return _block_re(task_id).sub("", text)


def inject(text: str, task_id: str, content: str) -> str:
    """Replace-then-append: drop any existing block for `task_id`, append the new one."""
    base = strip(text or "", task_id)
    return f"{base}{marker_start(task_id)}\n{content}\n{marker_end(task_id)}"


def has_block(text: str, task_id: str) -> bool:
    return bool(text) and _block_re(task_id).search(text) is not None
