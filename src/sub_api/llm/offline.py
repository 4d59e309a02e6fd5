# src/sub_api/llm/offline.py

from __future__ import annotations


class OfflineGenerationClient:
    """
    Offline deterministic client used for demos when no external service is configured.

    Echoes the (already substituted and filtered) user prompt so the whole pipeline,
    including pattern stages and marker injection, can be exercised locally.
    """

    max_chars = 400

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        text = (user_prompt or "").strip()
        if len(text) > self.max_chars:
            text = text[: self.max_chars] + "…"
        return f"Offline demo mode: {text}" if text else "Offline demo mode."
