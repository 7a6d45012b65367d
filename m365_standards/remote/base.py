"""
Shared async HTTP plumbing for the Graph and Exchange clients:
safety validation, a concurrency semaphore, and backoff on throttling.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from ..config import (
    BACKOFF_MULTIPLIER,
    MAX_CONCURRENT_REQUESTS,
    RemoteConfig,
)
from ..safety.guardian import SafetyGuardian, SafetyViolation

logger = logging.getLogger("m365_standards.remote")


class RemoteAPIError(Exception):
    """Raised when a remote service returns a non-recoverable error."""
    def __init__(self, status_code: int, message: str, url: str):
        self.status_code = status_code
        self.remote_message = message
        self.url = url
        super().__init__(f"Remote API Error {status_code} for {url}: {message}")


def extract_error_message(response: httpx.Response) -> str:
    """Pull the most specific message out of a Graph/Exchange error body."""
    try:
        body = response.json() if response.content else {}
    except ValueError:
        return response.text[:200]
    if not isinstance(body, dict):
        return response.text[:200]

    error = body.get("error", {})
    if isinstance(error, str):
        return error
    details = error.get("details") or []
    if details and isinstance(details[0], dict) and details[0].get("message"):
        return details[0]["message"]
    return error.get("message") or body.get("message") or response.reason_phrase


class RemoteServiceClient:
    """
    Base for async remote clients.
    Subclasses set the default headers and build their URLs; requests
    are validated by the guardian before any bytes leave the process.
    """

    service_name: str = "remote"

    def __init__(
        self,
        access_token: str,
        guardian: SafetyGuardian,
        config: Optional[RemoteConfig] = None,
    ):
        self.access_token = access_token
        self.guardian = guardian
        self.config = config or RemoteConfig()
        self._semaphore = asyncio.Semaphore(MAX_CONCURRENT_REQUESTS)
        self._request_count = 0
        self._throttle_count = 0
        self._client: Optional[httpx.AsyncClient] = None

    def default_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout_seconds, connect=30.0),
            limits=httpx.Limits(
                max_connections=MAX_CONCURRENT_REQUESTS * 2,
                max_keepalive_connections=MAX_CONCURRENT_REQUESTS,
            ),
            headers=self.default_headers(),
        )
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> dict:
        self.guardian.validate_request(method, url)
        async with self._semaphore:
            return await self._execute_with_retry(
                method, url, params=params, json_body=json_body, headers=headers
            )

    async def _execute_with_retry(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> dict:
        """Execute request with exponential backoff on throttling."""
        backoff = self.config.initial_backoff
        max_retries = self.config.max_retries

        for attempt in range(max_retries + 1):
            response = await self._execute_raw(
                method, url, params=params, json_body=json_body, headers=headers
            )
            self._request_count += 1

            if response.status_code in (200, 201):
                if not response.content or not response.content.strip():
                    return {}
                try:
                    return response.json()
                except ValueError:
                    logger.debug(f"{response.status_code} response with non-JSON body from {url}")
                    return {}

            if response.status_code == 204:
                return {}

            if response.status_code in (429, 503, 504) and attempt < max_retries:
                self._throttle_count += 1
                try:
                    retry_after = float(response.headers.get("Retry-After", backoff))
                except ValueError:
                    retry_after = backoff
                wait_time = min(max(retry_after, backoff), self.config.max_backoff)
                logger.warning(
                    f"Throttled ({response.status_code}) on {url}. "
                    f"Retry {attempt + 1}/{max_retries} in {wait_time:.1f}s"
                )
                await asyncio.sleep(wait_time)
                backoff = min(backoff * BACKOFF_MULTIPLIER, self.config.max_backoff)
                continue

            raise RemoteAPIError(response.status_code, extract_error_message(response), url)

    async def _execute_raw(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> httpx.Response:
        """Execute raw HTTP request."""
        if not self._client:
            raise RuntimeError(
                f"{type(self).__name__} not initialized. Use 'async with' context."
            )

        if method == "GET":
            return await self._client.get(url, params=params, headers=headers)
        elif method == "POST":
            return await self._client.post(url, json=json_body, params=params, headers=headers)
        else:
            raise SafetyViolation(f"Unsupported method at raw level: {method}")

    def get_stats(self) -> dict:
        """Return client statistics."""
        return {
            "service": self.service_name,
            "total_requests": self._request_count,
            "throttle_events": self._throttle_count,
        }
