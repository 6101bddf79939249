"""LLM errors."""

from __future__ import annotations


class LLMError(RuntimeError):
    """Raised when the model endpoint cannot complete a request."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


__all__ = ["LLMError"]
