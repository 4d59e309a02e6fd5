# src/sub_api/core/state.py

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

from ..storage.json_store import JsonResultPersister, load_transcript, save_transcript
from ..tasks.task_store import TaskConfigStore
from .orchestrator import TaskOrchestrator
from .ports import GenerationClient, ResultPersister
from .results import ResultStore
from .transcript import Transcript

logger = logging.getLogger(__name__)

DEFAULT_CHAT = "default"

_CHAT_NAME_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9_.-]{0,63}")


def chat_paths(settings: Any, name: str) -> tuple[Path, Path]:
    """(transcript path, results path) of a chat; the default chat uses the configured paths."""
    if name == DEFAULT_CHAT:
        return Path(settings.transcript_path), Path(settings.results_path)
    if not _CHAT_NAME_RE.fullmatch(name) or ".." in name:
        raise ValueError(f"Invalid chat name: {name!r}")
    chat_dir = Path(settings.data_dir) / "chats" / name
    return chat_dir / "transcript.json", chat_dir / "results.json"


@dataclass
class AppState:
    # Store Settings on the state for easy access in commands/connectors.
    settings: Any

    config: TaskConfigStore
    orchestrator: TaskOrchestrator

    generator: GenerationClient | None = None
    chat_name: str = DEFAULT_CHAT
    transcript_path: Path | None = None

    # The current chat's data lives on the orchestrator so a chat switch updates it in one place.

    @property
    def transcript(self) -> Transcript:
        return cast(Transcript, self.orchestrator.transcript)

    @property
    def results(self) -> ResultStore:
        return self.orchestrator.results

    @property
    def persister(self) -> ResultPersister | None:
        return self.orchestrator.persister

    def save_transcript(self) -> None:
        if self.transcript_path is not None:
            save_transcript(self.transcript, self.transcript_path)

    def open_chat(self, name: str) -> None:
        """Save the current chat's transcript, then load and switch to chat `name`."""
        transcript_path, results_path = chat_paths(self.settings, name)
        self.save_transcript()

        previous = self.transcript
        transcript = load_transcript(transcript_path)
        transcript.on_refresh = previous.on_refresh
        persister = JsonResultPersister(results_path)
        results = ResultStore.from_dict(persister.load())

        self.chat_name = name
        self.transcript_path = transcript_path
        self.orchestrator.on_chat_changed(transcript, results, persister)
        logger.info("Switched to chat %r (turns=%d results=%d)", name, len(transcript), len(results))
