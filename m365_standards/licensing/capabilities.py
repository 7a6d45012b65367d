"""
Tenant capability detection.
Reads subscribed SKUs from Graph and exposes the provisioned service plans
as the tenant's capabilities (e.g. EXCHANGE_S_ENTERPRISE).
"""

from __future__ import annotations

import logging
from typing import Sequence

from ..remote.graph import GraphClient

logger = logging.getLogger("m365_standards.licensing")


class GraphCapabilityResolver:
    """
    Answers "does this tenant hold any of these service plans?".
    Capabilities are looked up once per resolver instance and tenant.
    """

    def __init__(self, graph: GraphClient):
        self.graph = graph
        self._capabilities: dict[str, set[str]] = {}

    async def get_capabilities(self, tenant: str) -> set[str]:
        if tenant in self._capabilities:
            return self._capabilities[tenant]

        skus = await self.graph.get_all_pages("subscribedSkus", skip_top=True)
        capabilities: set[str] = set()
        for sku in skus:
            if sku.get("capabilityStatus", "Enabled") not in ("Enabled", "Warning"):
                continue
            for plan in sku.get("servicePlans", []):
                if plan.get("provisioningStatus") != "Success":
                    continue
                name = (plan.get("servicePlanName") or "").upper()
                if name:
                    capabilities.add(name)

        logger.debug(f"[{tenant}] {len(capabilities)} provisioned service plans")
        self._capabilities[tenant] = capabilities
        return capabilities

    async def has_capability(
        self, tenant: str, standard_name: str, required: Sequence[str]
    ) -> bool:
        capabilities = await self.get_capabilities(tenant)
        matched = [c for c in required if c.upper() in capabilities]
        if matched:
            logger.debug(f"[{tenant}] {standard_name} licensed via {', '.join(matched)}")
        return bool(matched)
