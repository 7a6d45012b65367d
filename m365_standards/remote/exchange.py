"""
Exchange Online admin API client.

Every cmdlet, read or write, is sent as
POST {EXCHANGE_BASE_URL}/{tenant}/InvokeCommand with a CmdletInput body.
The guardian checks the cmdlet itself, so a read-only run can never
reach Set-* even though the HTTP method is the same.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..config import EXCHANGE_BASE_URL, EXCHANGE_SYSTEM_MAILBOX, MAX_PAGES_PER_ENDPOINT
from .base import RemoteAPIError, RemoteServiceClient

logger = logging.getLogger("m365_standards.exchange")


class ExchangeClient(RemoteServiceClient):
    service_name = "exchange"

    def default_headers(self) -> dict[str, str]:
        headers = super().default_headers()
        headers["X-ResponseFormat"] = "json"
        headers["X-ClientApplication"] = "ExoManagementModule"
        return headers

    def _build_url(self, tenant: str) -> str:
        return f"{EXCHANGE_BASE_URL}/{tenant}/InvokeCommand"

    async def invoke_command(
        self,
        tenant: str,
        cmdlet: str,
        parameters: Optional[dict[str, Any]] = None,
        use_system_mailbox: bool = False,
    ) -> list[dict]:
        """
        Run one cmdlet and return its output objects.
        Raises RemoteAPIError on failure; SafetyViolation if not authorized.
        """
        self.guardian.validate_cmdlet(cmdlet, tenant)

        body = {
            "CmdletInput": {
                "CmdletName": cmdlet,
                "Parameters": parameters or {},
            }
        }
        headers = {"X-CmdletName": cmdlet}
        if use_system_mailbox:
            headers["X-AnchorMailbox"] = f"UPN:{EXCHANGE_SYSTEM_MAILBOX}@{tenant}"

        url: Optional[str] = self._build_url(tenant)
        results: list[dict] = []
        pages = 0
        while url and pages < MAX_PAGES_PER_ENDPOINT:
            data = await self.request("POST", url, json_body=body, headers=headers)
            if not isinstance(data, dict):
                raise RemoteAPIError(200, "Unexpected response shape", url)

            value = data.get("value", [])
            if isinstance(value, dict):
                value = [value]
            results.extend(value)

            for warning in data.get("@adminapi.warnings", []) or []:
                logger.warning(f"[{tenant}] {cmdlet}: {warning}")

            url = data.get("@odata.nextLink")
            pages += 1

        logger.debug(f"[{tenant}] {cmdlet} returned {len(results)} objects")
        return results


class ExchangeSharingPolicyClient:
    """Sharing-policy operations on top of ExchangeClient."""

    READ_CMDLET = "Get-SharingPolicy"
    WRITE_CMDLET = "Set-SharingPolicy"

    def __init__(self, exchange: ExchangeClient):
        self.exchange = exchange

    async def read_sharing_policies(self, tenant: str) -> list[dict[str, Any]]:
        return await self.exchange.invoke_command(tenant, self.READ_CMDLET)

    async def write_sharing_policy(
        self, tenant: str, policy_id: str, changes: dict[str, Any]
    ) -> None:
        await self.exchange.invoke_command(
            tenant,
            self.WRITE_CMDLET,
            {"Identity": policy_id, **changes},
            use_system_mailbox=True,
        )
