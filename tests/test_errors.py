"""
tests/test_errors.py – user-facing provider error messages.
"""
from __future__ import annotations

import pytest
from google.genai import errors as genai_errors

from app.errors import KeywordProviderError, RecordNotFoundError, StorageError, describe_provider_error


def _api_error(code: int) -> genai_errors.APIError:
    return genai_errors.APIError(code, {"error": {"code": code, "message": "m", "status": "S"}})


class TestDescribeProviderError:
    def test_no_client(self):
        assert "not configured" in describe_provider_error(None)

    @pytest.mark.parametrize("code", [401, 403])
    def test_invalid_gemini_key(self, code):
        assert describe_provider_error(_api_error(code)) == (
            "Invalid API key. Please check your configuration."
        )

    def test_gemini_rate_limit(self):
        assert "Rate limit exceeded" in describe_provider_error(_api_error(429))

    def test_gemini_server_error(self):
        assert "try again later" in describe_provider_error(_api_error(500))

    def test_semrush_errors(self):
        assert describe_provider_error(KeywordProviderError("x", status_code=401)) == (
            "Keyword research unavailable: invalid Semrush API key."
        )
        assert "rate limit" in describe_provider_error(KeywordProviderError("x", status_code=429))
        assert describe_provider_error(KeywordProviderError("Semrush error 134: TOTAL LIMIT")) == (
            "Keyword research unavailable: Semrush error 134: TOTAL LIMIT"
        )

    def test_connection_error(self):
        assert "connection" in describe_provider_error(ConnectionError("refused"))

    def test_anything_else(self):
        assert describe_provider_error(KeyError("x")) == (
            "An unexpected error occurred while generating ad copy."
        )


class TestExceptions:
    def test_not_found_is_a_storage_error(self):
        exc = RecordNotFoundError("Ad group", "g1")
        assert isinstance(exc, StorageError)
        assert str(exc) == "Ad group 'g1' not found."
        assert exc.kind == "Ad group"

    def test_cause_is_chained(self):
        cause = OSError("disk full")
        assert StorageError("write failed", cause=cause).__cause__ is cause
        assert KeywordProviderError("x", cause=cause).__cause__ is cause
