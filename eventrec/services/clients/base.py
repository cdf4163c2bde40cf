"""
Shared httpx plumbing for collaborator service clients.
"""

import asyncio
from typing import Any

import httpx

from eventrec.config import settings
from eventrec.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

MAX_ATTEMPTS = 2
BACKOFF_SECONDS = 0.2
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


class ServiceClient:
    """
    Base class for JSON-over-HTTP collaborators.

    ``get_json`` never raises: transport errors, timeouts, non-2xx statuses
    and undecodable bodies are logged and reported as ``None`` so callers can
    fall back to their degraded value.
    """

    service_name = "service"

    def __init__(
        self,
        base_url: str,
        *,
        connect_timeout_s: float | None = None,
        read_timeout_s: float | None = None,
        backoff_s: float = BACKOFF_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.backoff_s = backoff_s
        timeout = httpx.Timeout(
            read_timeout_s or settings.HTTP_READ_TIMEOUT_S,
            connect=connect_timeout_s or settings.HTTP_CONNECT_TIMEOUT_S,
        )
        limits = httpx.Limits(max_keepalive_connections=20, max_connections=50)
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, limits=limits, transport=transport
        )

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _auth_headers(auth_token: str | None) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        return headers

    async def _request_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Execute a request, retrying once on transient statuses or transport errors."""
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                response = await self._client.request(method, url, **kwargs)
                if response.status_code in RETRY_STATUS_CODES and attempt < MAX_ATTEMPTS:
                    logger.debug(
                        "Retrying collaborator request",
                        collaborator=self.service_name,
                        url=url,
                        attempt=attempt,
                        status_code=response.status_code,
                    )
                    await asyncio.sleep(self.backoff_s * attempt)
                    continue
                return response
            except httpx.TransportError as e:
                if attempt >= MAX_ATTEMPTS:
                    raise
                logger.debug(
                    "Collaborator request error, retrying",
                    collaborator=self.service_name,
                    url=url,
                    attempt=attempt,
                    error=str(e),
                )
                await asyncio.sleep(self.backoff_s * attempt)
        raise RuntimeError("Collaborator retry loop exhausted")

    async def get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        auth_token: str | None = None,
    ) -> Any | None:
        try:
            response = await self._request_with_retry(
                "GET", url, params=params, headers=self._auth_headers(auth_token)
            )
        except httpx.HTTPError as e:
            logger.error(
                "Collaborator request failed",
                collaborator=self.service_name,
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        if not response.is_success:
            logger.error(
                "Collaborator returned error status",
                collaborator=self.service_name,
                url=url,
                status_code=response.status_code,
            )
            return None

        try:
            return response.json()
        except ValueError as e:
            logger.error(
                "Collaborator returned invalid JSON",
                collaborator=self.service_name,
                url=url,
                error=str(e),
            )
            return None
