"""
Microsoft Graph client (read-only, paginated).
Used for tenant license/capability discovery.
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator, Optional

from ..config import (
    DEFAULT_PAGE_SIZE,
    GRAPH_API_VERSION,
    GRAPH_BASE_URL,
    MAX_PAGES_PER_ENDPOINT,
)
from .base import RemoteAPIError, RemoteServiceClient

logger = logging.getLogger("m365_standards.graph")


class GraphClient(RemoteServiceClient):
    service_name = "graph"

    def _build_url(self, endpoint: str) -> str:
        """Build full Graph URL from relative endpoint."""
        if endpoint.startswith("http"):
            return endpoint
        return f"{GRAPH_BASE_URL}/{GRAPH_API_VERSION}/{endpoint.lstrip('/')}"

    async def get(self, endpoint: str, params: Optional[dict] = None) -> dict:
        return await self.request("GET", self._build_url(endpoint), params=params)

    async def get_all_pages(
        self,
        endpoint: str,
        params: Optional[dict] = None,
        top: Optional[int] = None,
        skip_top: bool = False,
    ) -> list[dict]:
        items = []
        async for item in self.get_all_pages_stream(endpoint, params, top, skip_top=skip_top):
            items.append(item)
        return items

    async def get_all_pages_stream(
        self,
        endpoint: str,
        params: Optional[dict] = None,
        top: Optional[int] = None,
        skip_top: bool = False,
    ) -> AsyncGenerator[dict, None]:
        """
        Yield every item of a paginated collection, following @odata.nextLink.
        Set skip_top=True for endpoints that reject $top (e.g. subscribedSkus).
        """
        params = dict(params or {})
        if not skip_top and "$top" not in params:
            params["$top"] = str(min(top or DEFAULT_PAGE_SIZE, DEFAULT_PAGE_SIZE))

        url: Optional[str] = self._build_url(endpoint)
        pages = 0

        while url and pages < MAX_PAGES_PER_ENDPOINT:
            data = await self.request("GET", url, params=params or None)
            if not isinstance(data, dict):
                raise RemoteAPIError(200, "Unexpected response shape", url)

            for item in data.get("value", []):
                yield item

            url = data.get("@odata.nextLink")
            params = {}  # nextLink carries all query params
            pages += 1

        if pages >= MAX_PAGES_PER_ENDPOINT:
            logger.warning(
                f"Pagination safety cap reached ({MAX_PAGES_PER_ENDPOINT} pages) "
                f"for endpoint: {endpoint}"
            )
