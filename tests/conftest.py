"""Shared fakes and fixtures for standard tests."""
from __future__ import annotations

from typing import Any, Optional

import pytest

from m365_standards.models import Severity
from m365_standards.remote.base import RemoteAPIError
from m365_standards.standards import StandardContext

TENANT = "contoso.onmicrosoft.com"


def policy(name: str, enabled: bool, default: bool, policy_id: Optional[str] = None) -> dict:
    """A Get-SharingPolicy record as the Exchange admin API returns it."""
    return {
        "Name": name,
        "Identity": name,
        "Id": policy_id or f"id-{name}",
        "Enabled": enabled,
        "Default": default,
        "Domains": ["Anonymous:CalendarSharingFreeBusyReviewer", "*:CalendarSharingFreeBusySimple"],
    }


class FakeCapabilityResolver:
    def __init__(self, eligible: bool = True, error: Optional[Exception] = None):
        self.eligible = eligible
        self.error = error
        self.calls: list[tuple] = []

    async def has_capability(self, tenant, standard_name, required):
        self.calls.append((tenant, standard_name, tuple(required)))
        if self.error:
            raise self.error
        return self.eligible


class FakeSharingPolicyClient:
    def __init__(self, policies: list[dict], read_error: Optional[Exception] = None,
                 failing_ids: Optional[set[str]] = None):
        self.policies = policies
        self.read_error = read_error
        self.failing_ids = failing_ids or set()
        self.reads = 0
        self.writes: list[tuple[str, str, dict]] = []

    async def read_sharing_policies(self, tenant):
        self.reads += 1
        if self.read_error:
            raise self.read_error
        return [dict(p) for p in self.policies]

    async def write_sharing_policy(self, tenant, policy_id, changes):
        self.writes.append((tenant, policy_id, dict(changes)))
        if policy_id in self.failing_ids:
            raise RemoteAPIError(400, f"The operation couldn't be performed on {policy_id}",
                                 "https://outlook.office365.com/adminapi/beta/x/InvokeCommand")
        for p in self.policies:
            if p["Id"] == policy_id:
                p.update(changes)


class RecordingLogSink:
    def __init__(self, error: Optional[Exception] = None):
        self.entries: list[dict[str, Any]] = []
        self.error = error

    def log(self, surface, tenant, message, severity, data=None):
        if self.error:
            raise self.error
        self.entries.append({
            "surface": surface,
            "tenant": tenant,
            "message": message,
            "severity": Severity(severity),
            "data": data,
        })

    def messages(self, severity: Optional[Severity] = None) -> list[str]:
        return [e["message"] for e in self.entries
                if severity is None or e["severity"] == severity]


class RecordingAlertSink:
    def __init__(self, error: Optional[Exception] = None):
        self.alerts: list[dict[str, Any]] = []
        self.error = error

    def raise_alert(self, message, payload, tenant, standard_name, standard_id):
        if self.error:
            raise self.error
        self.alerts.append({
            "message": message,
            "payload": payload,
            "tenant": tenant,
            "standard_name": standard_name,
            "standard_id": standard_id,
        })


class RecordingFieldStore:
    def __init__(self, error: Optional[Exception] = None):
        self.comparison: dict[tuple[str, str], Any] = {}
        self.baseline: dict[tuple[str, str], tuple[Any, str]] = {}
        self.error = error

    def set_comparison_field(self, field_name, value, tenant):
        if self.error:
            raise self.error
        self.comparison[(tenant, field_name)] = value

    def set_baseline_field(self, field_name, value, value_type, tenant):
        if self.error:
            raise self.error
        self.baseline[(tenant, field_name)] = (value, value_type)

    @property
    def calls(self) -> int:
        return len(self.comparison) + len(self.baseline)


class Harness:
    """Bundle of fakes plus the context built from them."""

    def __init__(self, policies: list[dict], eligible: bool = True, **kwargs):
        self.capabilities = FakeCapabilityResolver(eligible, kwargs.get("capability_error"))
        self.remote = FakeSharingPolicyClient(
            policies, kwargs.get("read_error"), kwargs.get("failing_ids")
        )
        self.log = RecordingLogSink(kwargs.get("log_error"))
        self.alerts = RecordingAlertSink(kwargs.get("alert_error"))
        self.fields = RecordingFieldStore(kwargs.get("store_error"))
        self.context = StandardContext(
            capabilities=self.capabilities,
            remote=self.remote,
            log=self.log,
            alerts=self.alerts,
            comparison=self.fields,
            baseline=self.fields,
        )


@pytest.fixture
def harness():
    """Factory: harness(policies, eligible=True, read_error=..., failing_ids=...)."""
    def _make(policies: Optional[list[dict]] = None, **kwargs) -> Harness:
        if policies is None:
            policies = [policy("Default Sharing Policy", True, True)]
        return Harness(policies, **kwargs)
    return _make
