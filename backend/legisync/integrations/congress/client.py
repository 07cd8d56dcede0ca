"""
Congress.gov API Client.
Handles API-key authentication, liveness probing and retried GET requests.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from legisync.core.exceptions import TransientFailure, UpstreamUnavailable
from legisync.integrations.congress.retry import RetryPolicy

logger = logging.getLogger(__name__)

USER_AGENT = "LegiSync/0.1"


class CongressClient:
    """
    Congress.gov API v3 client.

    Every real fetch is preceded by a cheap liveness probe against a
    known-good path; a failed probe raises immediately without spending
    retry budget. Non-2xx responses, timeouts and transport errors are
    retried by the ``RetryPolicy`` and surface as ``FatalFailure`` once
    attempts are exhausted.
    """

    def __init__(
        self,
        api_key: str,
        api_base_url: str = "https://api.congress.gov/v3",
        probe_path: str = "/bill/119/hr/1",
        timeout: float = 30.0,
        probe_timeout: float = 10.0,
        retry_policy: Optional[RetryPolicy] = None,
        probe_before_fetch: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Congress.gov client.

        Args:
            api_key: Congress.gov API key (sent as X-API-Key)
            api_base_url: API base URL
            probe_path: Path used for the liveness probe
            timeout: Per-request timeout for real fetches (seconds)
            probe_timeout: Timeout for the liveness probe (seconds)
            retry_policy: Backoff policy for real fetches
            probe_before_fetch: Probe before every ``get``
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.api_base_url = api_base_url.rstrip("/")
        self.probe_path = probe_path
        self.timeout = timeout
        self.probe_timeout = probe_timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self.probe_before_fetch = probe_before_fetch

        self._client = httpx.AsyncClient(
            base_url=self.api_base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/json",
                "User-Agent": USER_AGENT,
                "X-API-Key": api_key,
            },
        )

        logger.info(f"CongressClient initialized ({self.api_base_url})")

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "CongressClient":
        """Build a client from application settings."""
        return cls(
            api_key=settings.congress_api_key,
            api_base_url=settings.congress_api_url,
            probe_path=settings.congress_probe_path,
            timeout=settings.http_timeout,
            probe_timeout=settings.probe_timeout,
            retry_policy=RetryPolicy(
                max_attempts=settings.fetch_max_attempts,
                base_delay=settings.fetch_base_delay,
                max_delay=settings.http_timeout,
            ),
            transport=transport,
        )

    async def check_connection(self) -> bool:
        """
        Lightweight liveness probe.

        Returns:
            True if the probe path answered with 2xx within the probe timeout
        """
        try:
            response = await self._client.get(self.probe_path, timeout=self.probe_timeout)
        except httpx.HTTPError as e:
            logger.error(f"❌ Congress.gov liveness probe failed: {type(e).__name__}: {e}")
            return False

        if not response.is_success:
            logger.error(
                f"❌ Congress.gov liveness probe failed: {response.status_code} - {response.text[:200]}"
            )
            return False

        logger.debug("Congress.gov liveness probe OK")
        return True

    async def probe(self) -> None:
        """
        Raise if upstream is unreachable.

        Raises:
            UpstreamUnavailable: If the liveness probe fails
        """
        if not await self.check_connection():
            raise UpstreamUnavailable("Congress.gov API is currently unavailable")

    async def _get_once(self, endpoint: str, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Single GET attempt; every failure mode is mapped to TransientFailure."""
        try:
            response = await self._client.get(endpoint, params=params)
        except httpx.TimeoutException as e:
            raise TransientFailure(f"Timeout fetching {endpoint}: {e}") from e
        except httpx.HTTPError as e:
            raise TransientFailure(f"Network error fetching {endpoint}: {e}") from e

        if not response.is_success:
            raise TransientFailure(
                f"HTTP {response.status_code} fetching {endpoint}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise TransientFailure(f"Invalid JSON from {endpoint}: {e}") from e

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        GET ``endpoint`` and return the decoded JSON body.

        Args:
            endpoint: Path relative to the base URL (e.g. "/bill/119/hr")
            params: Query parameters

        Returns:
            Response body as dictionary

        Raises:
            UpstreamUnavailable: Liveness probe failed (no retries spent)
            FatalFailure: All retry attempts failed
        """
        if self.probe_before_fetch:
            await self.probe()

        logger.debug(f"GET {endpoint} params={params}")
        return await self.retry_policy.call(self._get_once, endpoint, params, description=f"GET {endpoint}")

    async def close(self):
        """Closes the HTTP client."""
        await self._client.aclose()
        logger.info("CongressClient closed")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
