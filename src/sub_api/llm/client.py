# src/sub_api/llm/client.py

"""
OpenAI-compatible generation client (OpenAI, OpenRouter, local gateways).

Automatic retries are disabled: one call per task run, failures are reported as-is.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI

from .errors import GenerationError, LLMNotConfiguredError

logger = logging.getLogger(__name__)


def make_timeout(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)


def _status_body(exc: openai.APIStatusError) -> str:
    try:
        return exc.response.text
    except Exception:
        return str(exc.message or "")


class OpenAICompatClient:
    """GenerationClient backed by chat.completions."""

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str,
        model: str,
        extra_headers: dict[str, str] | None = None,
        timeout: httpx.Timeout | float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key or not str(api_key).strip():
            raise LLMNotConfiguredError("LLM API key is not set.")
        if not base_url or not base_url.strip():
            raise LLMNotConfiguredError("LLM base URL is not set.")
        if not model or not model.strip():
            raise LLMNotConfiguredError("LLM model is not set.")

        self.model = model.strip()
        self._headers = dict(extra_headers or {})
        self._client = AsyncOpenAI(
            base_url=base_url.strip(),
            api_key=str(api_key).strip(),
            timeout=timeout if timeout is not None else make_timeout(5.0, 60.0),
            max_retries=0,
            http_client=http_client,
        )

    @classmethod
    def from_settings(cls, settings: Any) -> OpenAICompatClient:
        return cls(
            api_key=getattr(settings, "api_key", None),
            base_url=str(getattr(settings, "base_url", "") or ""),
            model=str(getattr(settings, "model_name", "") or ""),
            extra_headers=dict(getattr(settings, "extra_headers", {}) or {}),
            timeout=make_timeout(
                float(getattr(settings, "connect_timeout", 5.0)),
                float(getattr(settings, "read_timeout", 60.0)),
            ),
        )

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        messages: list[dict[str, str]] = []
        if system_prompt.strip():
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        t0 = time.monotonic()
        try:
            resp = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,  # type: ignore[arg-type]
                extra_headers=self._headers or None,
            )
        except openai.APIStatusError as e:
            raise GenerationError.from_status(e.status_code, _status_body(e)) from e
        except openai.APIConnectionError as e:
            raise GenerationError(f"Network error: {e.__class__.__name__}: {e}") from e

        choices = list(resp.choices or [])
        if not choices:
            raise GenerationError("No candidates returned")

        message = getattr(choices[0], "message", None)
        text = getattr(message, "content", None) or ""
        if not text:
            raise GenerationError("Empty response from model")

        logger.debug("LLM: model=%s answered in %.2fs (%d chars)", self.model, time.monotonic() - t0, len(text))
        return text

    async def aclose(self) -> None:
        await self._client.close()
