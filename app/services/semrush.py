"""
app/services/semrush.py – keyword provider backed by the Semrush phrase API.

Semrush answers with semicolon-separated rows rather than JSON:

    Keyword;Search Volume;CPC;Competition;Number of Results;Trends
    luxury apartments austin;1900;3.12;0.87;1240000;0.81,0.81,...

Errors also come back as plain text (``ERROR 50 :: NOTHING FOUND``), usually
with a 200 status, so the body is inspected before parsing.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

import httpx
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

from app.config import settings
from app.errors import KeywordProviderError
from app.models import KeywordMetric

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = "Ph,Nq,Cp,Co,Nr,Td"

_ERROR_BODY = re.compile(r"^ERROR\s+(\d+)\s*::\s*(.*)$", re.IGNORECASE)
_NOTHING_FOUND = 50
# Semrush key / unit errors
_AUTH_ERRORS = {120, 121, 130, 131, 132, 133, 134, 135}


def _is_transient(exc: BaseException) -> bool:
    """Return True for errors that are safe to retry."""
    if isinstance(exc, KeywordProviderError):
        return exc.status_code in {429, 500, 502, 503, 504}
    return isinstance(exc, (httpx.TimeoutException, httpx.TransportError))


# ── Parsing ───────────────────────────────────────────────────────────────────


def _to_int(value: str) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def _to_float(value: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def parse_keyword_data(raw: str) -> list[KeywordMetric]:
    """Parse a Semrush export body into metrics. The header row is skipped."""
    lines = [line for line in raw.strip().splitlines() if line.strip()]
    metrics: list[KeywordMetric] = []
    for line in lines[1:]:
        fields = line.split(";")
        if len(fields) < 6:
            continue
        metrics.append(
            KeywordMetric(
                keyword=fields[0].strip(),
                search_volume=_to_int(fields[1]),
                cpc=_to_float(fields[2]),
                competition=_to_float(fields[3]),
                results=_to_int(fields[4]),
                intent=fields[5].strip(),
            )
        )
    return metrics


def deduplicate_keywords(metrics: Iterable[KeywordMetric]) -> list[KeywordMetric]:
    """Drop case-insensitive duplicates, keeping the first occurrence."""
    seen: set[str] = set()
    unique: list[KeywordMetric] = []
    for metric in metrics:
        key = metric.keyword.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(metric)
    return unique


def prioritize_keywords(metrics: Iterable[KeywordMetric]) -> list[KeywordMetric]:
    """Highest search volume first; ties go to the lower competition."""
    return sorted(metrics, key=lambda m: (-m.search_volume, m.competition))


# ── Client ────────────────────────────────────────────────────────────────────


class SemrushClient:
    """Synchronous Semrush client with retries on transient failures."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        database: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.semrush_api_key
        if not self._api_key:
            raise ValueError(
                "SEMRUSH_API_KEY is not set. "
                "Please export it or add it to your .env file."
            )
        self._base_url = base_url or settings.semrush_base_url
        self._database = database or settings.semrush_database
        self._http = httpx.Client(
            timeout=timeout or settings.semrush_timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    # ── Public API ────────────────────────────────────────────────────────────

    def search_keywords(
        self,
        phrase: str,
        *,
        database: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[KeywordMetric]:
        """Related keywords for one seed phrase (``type=phrase_all``)."""

        @retry(
            retry=retry_if_exception(_is_transient),
            stop=stop_after_attempt(settings.semrush_retry_attempts),
            wait=wait_exponential(
                min=settings.semrush_retry_min_wait,
                max=settings.semrush_retry_max_wait,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        def _execute() -> str:
            response = self._http.get(
                self._base_url,
                params={
                    "type": "phrase_all",
                    "phrase": phrase,
                    "database": database or self._database,
                    "export_columns": EXPORT_COLUMNS,
                    "display_limit": limit or settings.semrush_display_limit,
                    "key": self._api_key,
                },
            )
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise KeywordProviderError(
                    f"Semrush returned HTTP {response.status_code}",
                    status_code=response.status_code,
                    cause=exc,
                ) from exc
            return response.text

        try:
            body = _execute()
        except httpx.HTTPError as exc:
            raise KeywordProviderError(f"Semrush request failed: {exc}", cause=exc) from exc

        error = _ERROR_BODY.match(body.strip())
        if error:
            code, message = int(error.group(1)), error.group(2).strip()
            if code == _NOTHING_FOUND:
                return []
            raise KeywordProviderError(
                f"Semrush error {code}: {message}",
                status_code=401 if code in _AUTH_ERRORS else None,
            )

        metrics = parse_keyword_data(body)
        logger.debug(
            "Semrush lookup completed",
            extra={"phrase": phrase, "keywords": len(metrics)},
        )
        return metrics

    def lookup(
        self,
        seed_terms: Iterable[str],
        *,
        database: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[KeywordMetric]:
        """
        Query every seed term and merge the results.

        A failing seed is logged and skipped; the merged list is deduplicated
        and ordered by volume, then competition. Raises KeywordProviderError
        only when every seed failed.
        """
        collected: list[KeywordMetric] = []
        attempted = failed = 0
        last_error: Optional[KeywordProviderError] = None
        for term in seed_terms:
            if not term or not term.strip():
                continue
            attempted += 1
            try:
                collected.extend(self.search_keywords(term.strip(), database=database, limit=limit))
            except KeywordProviderError as exc:
                failed += 1
                last_error = exc
                logger.warning(
                    "Semrush lookup failed for seed term; skipping",
                    extra={"phrase": term, "error": str(exc)},
                )
        if last_error is not None and failed == attempted:
            raise last_error
        return prioritize_keywords(deduplicate_keywords(collected))


# ── Module-level singleton (lazy init) ────────────────────────────────────────

_client_instance: Optional[SemrushClient] = None


def get_semrush_client() -> Optional[SemrushClient]:
    """Return the shared SemrushClient, or None when no API key is configured."""
    global _client_instance
    if _client_instance is None:
        if not settings.semrush_api_key:
            return None
        _client_instance = SemrushClient()
    return _client_instance


def close_semrush_client() -> None:
    """Close the shared client's connection pool (called on app shutdown)."""
    global _client_instance
    if _client_instance is not None:
        _client_instance.close()
        _client_instance = None
