"""
Question source contract and shared HTTP plumbing.

A source turns ``(keywords, subject)`` into raw candidates or raises.
Callers treat any exception as "skip this source"; nothing here decides
what gets stored.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Protocol, runtime_checkable

import httpx
from loguru import logger

from mcqbank.quiz.models import RawCandidate


class SourceUnavailableError(Exception):
    """A source could not be reached or refused the request."""


@runtime_checkable
class QuestionSource(Protocol):
    """Anything that can fetch raw question candidates."""

    name: str

    async def fetch(self, keywords: list[str], subject: str) -> list[RawCandidate]: ...


class HttpQuestionSource(ABC):
    """
    Base class for HTTP-backed sources.

    Retries timeouts, transport errors and 5xx responses with exponential
    backoff. 4xx responses fail immediately.
    """

    name = "http"

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        retry_attempts: int = 3,
        backoff_base: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the source.

        Args:
            base_url: Endpoint URL
            timeout_seconds: Per-request timeout
            retry_attempts: Attempts before giving up
            backoff_base: First retry delay in seconds (doubles each attempt)
            client: Shared client (created and owned here when omitted)
        """
        self.base_url = base_url
        self.retry_attempts = max(1, retry_attempts)
        self.backoff_base = backoff_base
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            follow_redirects=True,
        )

    async def close(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._owns_client:
            await self.client.aclose()

    async def _get_json(
        self,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        GET ``base_url`` and decode the JSON body.

        Raises:
            SourceUnavailableError: On 4xx, invalid JSON, or exhausted retries
        """
        last_error: Exception | None = None

        for attempt in range(self.retry_attempts):
            try:
                response = await self.client.get(self.base_url, params=params, headers=headers)
                response.raise_for_status()
                return response.json()

            except httpx.HTTPStatusError as e:
                last_error = e
                if e.response.status_code < 500:
                    logger.warning(f"{self.name} rejected request: {e.response.status_code}")
                    raise SourceUnavailableError(
                        f"{self.name} returned {e.response.status_code}"
                    ) from e
                logger.warning(
                    f"{self.name} server error {e.response.status_code} on attempt "
                    f"{attempt + 1}/{self.retry_attempts}"
                )

            except (httpx.TimeoutException, httpx.RequestError) as e:
                last_error = e
                logger.warning(
                    f"{self.name} request error on attempt {attempt + 1}/{self.retry_attempts}: {e}"
                )

            except ValueError as e:
                raise SourceUnavailableError(f"{self.name} returned invalid JSON") from e

            if attempt < self.retry_attempts - 1:
                await asyncio.sleep(self.backoff_base * 2**attempt)

        raise SourceUnavailableError(
            f"{self.name} failed after {self.retry_attempts} attempts: {last_error}"
        )

    @abstractmethod
    async def fetch(self, keywords: list[str], subject: str) -> list[RawCandidate]:
        """Fetch raw candidates for ``subject``."""
