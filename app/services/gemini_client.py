"""
app/services/gemini_client.py – wrapper around the Google Gen AI SDK.

Key design decisions
────────────────────
• Uses the `google-genai` SDK.
• `complete()` takes role-tagged messages; `system` messages become the
  model-level system instruction, everything else becomes conversation turns.
• Planning and generation passes can run on different models.
• Supports structured JSON outputs via `response_json_schema`.
• Retries on transient errors (429, 5xx, connection errors) with exponential backoff.
• Never logs the API key or raw prompt content.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

from app.config import settings
from app.services.extraction import extract_json_object

logger = logging.getLogger(__name__)

Message = dict[str, str]


# ── Helpers ───────────────────────────────────────────────────────────────────


def _is_transient(exc: BaseException) -> bool:
    """Return True for errors that are safe to retry."""
    if isinstance(exc, genai_errors.APIError):
        # 429 = quota/rate-limit, 5xx = server errors
        return exc.code in {429, 500, 502, 503, 504}
    # Connection-level / timeout errors
    return isinstance(exc, (TimeoutError, ConnectionError, OSError))


def _split_messages(
    messages: list[Message],
) -> tuple[Optional[str], list[genai_types.Content]]:
    """Separate system text from conversation turns in Gemini's content format."""
    system_parts: list[str] = []
    contents: list[genai_types.Content] = []
    for message in messages:
        role = message.get("role", "user")
        text = message.get("content", "")
        if role == "system":
            system_parts.append(text)
            continue
        contents.append(
            genai_types.Content(
                role="model" if role == "assistant" else "user",
                parts=[genai_types.Part.from_text(text=text)],
            )
        )
    system_instruction = "\n\n".join(system_parts) if system_parts else None
    return system_instruction, contents


# ── Client ────────────────────────────────────────────────────────────────────


class GeminiClient:
    """Thin, production-hardened wrapper around the Google Gen AI SDK."""

    def __init__(self) -> None:
        api_key = settings.gemini_api_key
        if not api_key:
            raise ValueError(
                "GEMINI_API_KEY is not set. "
                "Please export it or add it to your .env file."
            )
        self._client = genai.Client(api_key=api_key)
        self._model = settings.gemini_generation_model
        logger.info(
            "GeminiClient initialised",
            extra={
                "planning_model": settings.gemini_planning_model,
                "generation_model": settings.gemini_generation_model,
            },
        )

    # ── Public methods ────────────────────────────────────────────────────────

    def complete(
        self,
        messages: list[Message],
        *,
        model: Optional[str] = None,
        json_schema: Optional[dict] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Send an ordered list of ``{"role", "content"}`` messages to Gemini.

        Roles are ``system``, ``user`` and ``assistant``.

        Returns
        -------
        dict with keys:
            text        – raw text of the response
            parsed      – parsed JSON object (if json_schema was given, else None)
            model       – model string used
            tokens_used – estimated token count (input + output)
            latency_ms  – wall-clock latency in milliseconds
        """
        system_instruction, contents = _split_messages(messages)
        if not contents:
            raise ValueError("complete() needs at least one user or assistant message.")
        return self._call_with_retry(
            contents=contents,
            model=model or self._model,
            system_instruction=system_instruction,
            json_schema=json_schema,
            temperature=settings.gemini_temperature if temperature is None else temperature,
            max_output_tokens=max_output_tokens or settings.gemini_max_output_tokens,
        )

    # ── Internal retry wrapper ─────────────────────────────────────────────────

    def _call_with_retry(
        self,
        contents: Any,
        model: str,
        system_instruction: Optional[str],
        json_schema: Optional[dict],
        temperature: float,
        max_output_tokens: int,
    ) -> dict[str, Any]:
        """Executes the API call with exponential-backoff retries."""

        @retry(
            retry=retry_if_exception(_is_transient),
            stop=stop_after_attempt(settings.gemini_retry_attempts),
            wait=wait_exponential(
                min=settings.gemini_retry_min_wait,
                max=settings.gemini_retry_max_wait,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        def _execute() -> dict[str, Any]:
            config_kwargs: dict[str, Any] = {
                "temperature": temperature,
                "max_output_tokens": max_output_tokens,
            }
            if system_instruction:
                config_kwargs["system_instruction"] = system_instruction
            if json_schema:
                config_kwargs["response_mime_type"] = "application/json"
                config_kwargs["response_json_schema"] = json_schema

            config = genai_types.GenerateContentConfig(**config_kwargs)

            t0 = time.perf_counter()
            response = self._client.models.generate_content(
                model=model,
                contents=contents,
                config=config,
            )
            latency_ms = (time.perf_counter() - t0) * 1000

            raw_text = response.text or ""

            # Attempt to parse JSON if schema was requested
            parsed_obj: Optional[Any] = None
            if json_schema:
                try:
                    parsed_obj = json.loads(raw_text)
                except json.JSONDecodeError as exc:
                    logger.warning(
                        "Gemini returned non-JSON despite schema; attempting recovery",
                        extra={"error": str(exc)},
                    )
                    parsed_obj = extract_json_object(raw_text)

            # Token counting (best-effort; SDK may not always populate this)
            tokens_used = 0
            try:
                usage = response.usage_metadata
                if usage:
                    tokens_used = (usage.prompt_token_count or 0) + (
                        usage.candidates_token_count or 0
                    )
            except AttributeError:
                pass

            logger.debug(
                "Gemini call completed",
                extra={
                    "model": model,
                    "tokens_used": tokens_used,
                    "latency_ms": round(latency_ms, 1),
                    "json_mode": json_schema is not None,
                },
            )

            return {
                "text": raw_text,
                "parsed": parsed_obj,
                "model": model,
                "tokens_used": tokens_used,
                "latency_ms": latency_ms,
            }

        return _execute()


# ── Module-level singleton (lazy init) ────────────────────────────────────────

_client_instance: Optional[GeminiClient] = None


def get_gemini_client() -> GeminiClient:
    """Return the shared GeminiClient singleton (created on first call)."""
    global _client_instance
    if _client_instance is None:
        _client_instance = GeminiClient()
    return _client_instance


def get_optional_gemini_client() -> Optional[GeminiClient]:
    """Like `get_gemini_client` but returns None when no API key is configured."""
    try:
        return get_gemini_client()
    except ValueError:
        logger.warning("Gemini client unavailable; ad copy will use fallback content")
        return None
