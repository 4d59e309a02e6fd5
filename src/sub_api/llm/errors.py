# src/sub_api/llm/errors.py

from __future__ import annotations

_MAX_BODY_CHARS = 2000


class GenerationError(RuntimeError):
    """A generation call failed: non-2xx status, transport error or empty output."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    @classmethod
    def from_status(cls, status_code: int, body: str) -> GenerationError:
        text = (body or "").strip()
        if len(text) > _MAX_BODY_CHARS:
            text = text[:_MAX_BODY_CHARS] + "…"
        return cls(f"Request failed ({status_code}): {text}", status_code=status_code, body=text)


class LLMNotConfiguredError(RuntimeError):
    """Credential or endpoint missing; raised by client constructors."""


def friendly_error_message(err: Exception) -> str:
    msg = str(err).strip() or "Generation error."
    if isinstance(err, LLMNotConfiguredError):
        if "API key" in msg:
            return "Generation is not configured (missing API key). Set SUBAPI_API_KEY in .env."
        if "base URL" in msg:
            return "Generation is not configured (missing base URL). Set SUBAPI_BASE_URL in .env."
        if "model" in msg:
            return "Generation is not configured (missing model). Set SUBAPI_MODEL in .env."
    return msg
