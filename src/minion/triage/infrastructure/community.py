"""
Community Forum Client
======================

Posts triage answers back to a Discourse topic.

Handles:
- Circuit breaker to prevent cascade failures
- Exponential backoff retry
- Timeout handling
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from minion.core import CollaboratorUnavailableException, ConfigurationException
from minion.shared.infrastructure.logging import get_logger
from minion.shared.infrastructure.resilience import CircuitBreaker

logger = get_logger(__name__)


class CommunityClient:
    """Discourse API client replying to topics."""

    SERVICE_NAME = "Community"

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        api_username: str = "system",
        timeout_seconds: float = 5.0,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._api_username = api_username
        self._timeout = timeout_seconds
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._transport = transport
        self._circuit_breaker = CircuitBreaker(self.SERVICE_NAME, failure_threshold=5, recovery_timeout=60)
        self._http_client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
                headers={
                    "Api-Key": self._api_key or "",
                    "Api-Username": self._api_username,
                    "Accept": "application/json"
                }
            )
        return self._http_client

    async def reply(self, topic_id: str, raw: str) -> Dict[str, Any]:
        """
        Post raw as a new reply in topic_id.

        Returns:
            The created post as returned by Discourse

        Raises:
            ConfigurationException: If no API key is configured
            CollaboratorUnavailableException: If every attempt failed
        """
        if not self.is_configured:
            raise ConfigurationException("Community API key not configured")

        if not self._circuit_breaker.allow_request():
            raise CollaboratorUnavailableException(
                self.SERVICE_NAME,
                "circuit open after repeated failures",
                details={"topic_id": topic_id}
            )

        last_error = "no attempt made"
        for attempt in range(self._max_retries):
            try:
                client = await self._get_client()
                response = await client.post(
                    "/posts.json",
                    data={"topic_id": topic_id, "raw": raw}
                )
                response.raise_for_status()
                post = response.json()
                self._circuit_breaker.record_success()
                logger.info(
                    "Community reply posted",
                    extra={"topic_id": topic_id, "post_id": post.get("id")}
                )
                return post
            except (httpx.HTTPError, ValueError) as e:
                last_error = str(e)
                logger.warning(
                    "Community reply failed",
                    extra={"topic_id": topic_id, "attempt": attempt + 1, "error": last_error}
                )

            if attempt < self._max_retries - 1:
                await asyncio.sleep(self._backoff_base * 2 ** attempt)

        self._circuit_breaker.record_failure()
        raise CollaboratorUnavailableException(
            self.SERVICE_NAME,
            f"reply to topic {topic_id} failed after {self._max_retries} attempts: {last_error}",
            details={"topic_id": topic_id}
        )

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
