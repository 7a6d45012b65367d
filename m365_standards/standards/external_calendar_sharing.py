"""
External Calendar Sharing standard.
Disables calendar sharing with external users through the tenant's
default sharing policy. Named (non-default) policies are left alone so
administrators can grant exceptions to specific users.
"""

from __future__ import annotations

import logging
from typing import Any

from ..models import PolicyState
from ..remote.exchange import ExchangeSharingPolicyClient
from .base import BaseStandard

logger = logging.getLogger("m365_standards.standards.external_calendar_sharing")


class ExternalCalendarSharingStandard(BaseStandard):
    name = "ExternalCalendarSharing"
    description = "Disable external calendar sharing on the default sharing policy"
    required_capabilities = (
        "EXCHANGE_S_STANDARD",
        "EXCHANGE_S_ENTERPRISE",
        "EXCHANGE_S_STANDARD_GOV",
        "EXCHANGE_S_ENTERPRISE_GOV",
        "EXCHANGE_LITE",
    )
    write_cmdlets = (ExchangeSharingPolicyClient.WRITE_CMDLET,)
    baseline_field = "ExternalCalendarSharingDisabled"

    already_compliant_message = "External calendar sharing is already disabled"
    alert_message = "External calendar sharing is enabled"
    compliant_alert_message = "External calendar sharing is not enabled"

    async def fetch_state(self, tenant: str) -> list[PolicyState]:
        records = await self.context.remote.read_sharing_policies(tenant)
        policies = [PolicyState.from_remote(r) for r in records]
        defaults = [p for p in policies if p.is_default]
        if not defaults:
            raise LookupError(
                f"No default sharing policy among {len(policies)} returned policies"
            )
        logger.debug(
            f"[{tenant}] {len(defaults)} default of {len(policies)} sharing policies"
        )
        return defaults

    def is_compliant(self, state: PolicyState) -> bool:
        return not state.enabled

    async def remediate_instance(self, tenant: str, state: PolicyState):
        await self.context.remote.write_sharing_policy(tenant, state.id, {"Enabled": False})

    def alert_payload(self, states: list[PolicyState]) -> Any:
        return {"enabled": any(s.enabled for s in states)}

    def report_value(self, states: list[PolicyState]) -> bool:
        # Reported as "sharing disabled", the inverse of the raw setting
        return not any(s.enabled for s in states)

    def remediated_message(self, state: PolicyState) -> str:
        return f"Successfully disabled external calendar sharing for the policy {state.name}"

    def remediate_failed_message(self, state: PolicyState) -> str:
        return f"Failed to disable external calendar sharing for the policy {state.name}"
