"""
Collaborator contracts consumed by standards.

Concrete adapters live in licensing/, remote/, sinks/ and store/; tests
substitute in-memory fakes.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from .models import Severity


class CapabilityResolver(Protocol):
    async def has_capability(
        self, tenant: str, standard_name: str, required: Sequence[str]
    ) -> bool:
        """True if the tenant holds ANY of the required capabilities."""
        ...


class SharingPolicyClient(Protocol):
    async def read_sharing_policies(self, tenant: str) -> list[dict[str, Any]]:
        ...

    async def write_sharing_policy(
        self, tenant: str, policy_id: str, changes: dict[str, Any]
    ) -> None:
        ...


class LogSink(Protocol):
    def log(
        self,
        surface: str,
        tenant: str,
        message: str,
        severity: Severity,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        ...


class AlertSink(Protocol):
    def raise_alert(
        self,
        message: str,
        payload: Any,
        tenant: str,
        standard_name: str,
        standard_id: str,
    ) -> None:
        ...


class ComparisonFieldStore(Protocol):
    def set_comparison_field(self, field_name: str, value: Any, tenant: str) -> None:
        ...


class BaselineFieldStore(Protocol):
    def set_baseline_field(
        self, field_name: str, value: Any, value_type: str, tenant: str
    ) -> None:
        ...
