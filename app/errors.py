"""
app/errors.py – domain exceptions and user-facing provider error messages.
"""
from __future__ import annotations

from typing import Optional

from google.genai import errors as genai_errors


# ── Custom exceptions ─────────────────────────────────────────────────────────


class KeywordProviderError(RuntimeError):
    """Raised when the keyword research provider cannot serve a lookup."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.__cause__ = cause


class StorageError(RuntimeError):
    """Raised when the persistence backend fails."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


class RecordNotFoundError(StorageError):
    """Raised when a record id does not exist."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} '{record_id}' not found.")
        self.kind = kind
        self.record_id = record_id


# ── User-facing descriptions ──────────────────────────────────────────────────

_STATUS_MESSAGES: dict[int, str] = {
    400: "The AI service rejected the request. Please review the campaign details.",
    401: "Invalid API key. Please check your configuration.",
    403: "Invalid API key. Please check your configuration.",
    429: "Rate limit exceeded. Please wait a moment and try again.",
    500: "The AI service encountered an error. Please try again later.",
    502: "The AI service encountered an error. Please try again later.",
    503: "The AI service encountered an error. Please try again later.",
    504: "The AI service timed out. Please try again later.",
}


def describe_provider_error(exc: Optional[BaseException]) -> str:
    """Map an LLM or keyword-provider failure to a message safe to show end users."""
    if exc is None:
        return "The AI service is not configured. Showing fallback ad copy."
    if isinstance(exc, KeywordProviderError):
        if exc.status_code in (401, 403):
            return "Keyword research unavailable: invalid Semrush API key."
        if exc.status_code == 429:
            return "Keyword research unavailable: Semrush rate limit exceeded."
        return f"Keyword research unavailable: {exc}"
    if isinstance(exc, genai_errors.APIError) and exc.code in _STATUS_MESSAGES:
        return _STATUS_MESSAGES[exc.code]
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return "Could not reach the AI service. Please check your connection and retry."
    return "An unexpected error occurred while generating ad copy."
