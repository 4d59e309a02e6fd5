# src/sub_api/llm/gemini.py

"""
Google Gemini REST client (generateContent).

Request:  POST {base}/models/{model}:generateContent?key=...
          {"contents": [{"role": "user", "parts": [{"text": user}]}],
           "systemInstruction": {"parts": [{"text": system}]}}
Response: text of candidates[0].content.parts, concatenated.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import DEFAULT_BASE_URLS
from .client import make_timeout
from .errors import GenerationError, LLMNotConfiguredError

logger = logging.getLogger(__name__)


class GeminiClient:
    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        base_url: str = DEFAULT_BASE_URLS["gemini"],
        timeout: httpx.Timeout | float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key or not str(api_key).strip():
            raise LLMNotConfiguredError("LLM API key is not set.")
        if not model or not model.strip():
            raise LLMNotConfiguredError("LLM model is not set.")

        self.model = model.strip()
        self._api_key = str(api_key).strip()
        self._base_url = (base_url or DEFAULT_BASE_URLS["gemini"]).rstrip("/")
        self._http = httpx.AsyncClient(
            timeout=timeout if timeout is not None else make_timeout(5.0, 60.0),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Any) -> GeminiClient:
        return cls(
            api_key=getattr(settings, "api_key", None),
            model=str(getattr(settings, "model_name", "") or ""),
            base_url=str(getattr(settings, "base_url", "") or DEFAULT_BASE_URLS["gemini"]),
            timeout=make_timeout(
                float(getattr(settings, "connect_timeout", 5.0)),
                float(getattr(settings, "read_timeout", 60.0)),
            ),
        )

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        url = f"{self._base_url}/models/{self.model}:generateContent"
        body = {
            "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
            "systemInstruction": {"parts": [{"text": system_prompt}]},
        }

        try:
            resp = await self._http.post(url, params={"key": self._api_key}, json=body)
        except httpx.HTTPError as e:
            raise GenerationError(f"Network error: {e.__class__.__name__}: {e}") from e

        if not resp.is_success:
            raise GenerationError.from_status(resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError as e:
            raise GenerationError("Malformed response (not JSON)") from e

        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not candidates:
            raise GenerationError("No candidates returned")

        content = (candidates[0] or {}).get("content") or {}
        parts = content.get("parts") or []
        if not parts:
            raise GenerationError("Empty response from model")

        text = "".join(str(p.get("text") or "") for p in parts if isinstance(p, dict))
        if not text:
            raise GenerationError("Empty response from model")
        return text

    async def aclose(self) -> None:
        await self._http.aclose()
