# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from sub_api.core.models import Role
from sub_api.core.transcript import Transcript
from sub_api.tasks.task_models import Task

from .fakes import FakeDisplay, FakeGenerationClient, FakePersister


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="sub-api-test",
        log_level="DEBUG",
        enabled=True,
        provider="offline",
        api_key=None,
        base_url="",
        model_name="gemini-2.0-flash",
        extra_headers={},
        connect_timeout=1.0,
        read_timeout=1.0,
        data_dir=tmp_path,
        tasks_path=tmp_path / "tasks.json",
        results_path=tmp_path / "results.json",
        transcript_path=tmp_path / "transcript.json",
        render_limit=7,
    )


@pytest.fixture()
def transcript() -> Transcript:
    t = Transcript()
    t.append(Role.USER, "hi")
    t.append(Role.ASSISTANT, "hello")
    return t


@pytest.fixture()
def echo_task() -> Task:
    return Task(id="T", name="Echo", user_prompt="echo {{char1}}")


@pytest.fixture()
def generator() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture()
def display() -> FakeDisplay:
    return FakeDisplay()


@pytest.fixture()
def persister() -> FakePersister:
    return FakePersister()
