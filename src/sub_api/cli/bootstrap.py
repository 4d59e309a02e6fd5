# src/sub_api/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the generation client for the configured provider (or none),
- wires transcript, results, task config and display into the orchestrator.
"""

from __future__ import annotations

import logging
from typing import Any

from ..config import get_settings
from ..connectors.console_connector import ConsoleDisplay
from ..core.orchestrator import TaskOrchestrator
from ..core.ports import AnnotationDisplay, GenerationClient
from ..core.results import ResultStore
from ..core.state import DEFAULT_CHAT, AppState
from ..llm.client import OpenAICompatClient
from ..llm.errors import LLMNotConfiguredError, friendly_error_message
from ..llm.gemini import GeminiClient
from ..llm.offline import OfflineGenerationClient
from ..storage.json_store import JsonResultPersister, load_transcript
from ..tasks.task_store import TaskConfigStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_path.parent.mkdir(parents=True, exist_ok=True)
    settings.results_path.parent.mkdir(parents=True, exist_ok=True)
    settings.transcript_path.parent.mkdir(parents=True, exist_ok=True)


def create_generation_client(settings: Any) -> GenerationClient | None:
    """
    Build the client for settings.provider.

    Returns None when the credential is missing: batches then become no-ops.
    """
    provider = str(getattr(settings, "provider", "gemini"))
    if provider == "offline":
        return OfflineGenerationClient()

    try:
        if provider == "openai":
            return OpenAICompatClient.from_settings(settings)
        return GeminiClient.from_settings(settings)
    except LLMNotConfiguredError as e:
        logger.warning("%s", friendly_error_message(e))
        return None


def create_initial_state(*, settings=None, display: AnnotationDisplay | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    config = TaskConfigStore(settings.tasks_path, default_enabled=settings.enabled)
    transcript = load_transcript(settings.transcript_path)
    persister = JsonResultPersister(settings.results_path)
    results = ResultStore.from_dict(persister.load())
    generator = create_generation_client(settings)

    console_display: ConsoleDisplay | None = None
    if display is None:
        console_display = ConsoleDisplay(config, render_limit=settings.render_limit)
        display = console_display

    orchestrator = TaskOrchestrator(
        tasks=config,
        transcript=transcript,
        results=results,
        generator=generator,
        display=display,
        persister=persister,
    )

    if console_display is not None:
        console_display.bind(orchestrator)
        transcript.on_refresh = console_display.show_turn

    return AppState(
        settings=settings,
        config=config,
        orchestrator=orchestrator,
        generator=generator,
        chat_name=DEFAULT_CHAT,
        transcript_path=settings.transcript_path,
    )


async def shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        await state.orchestrator.drain()
    except Exception:
        logger.exception("Waiting for pending saves failed.")

    state.save_transcript()

    aclose = getattr(state.generator, "aclose", None)
    if callable(aclose):
        try:
            await aclose()
        except Exception:
            logger.debug("Generation client close failed.", exc_info=True)
