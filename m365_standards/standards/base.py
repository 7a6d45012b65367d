"""
Base standard: the check/remediate/alert/report execution contract.

A standard governs one tenant setting. Each invocation:
  1. checks the tenant holds a required capability (else: success, no action)
  2. fetches the current state once (failure: error log, no actions)
  3. runs Remediate, Alert and Report as requested, in that order,
     all against the same pre-remediation snapshot
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from ..errors import ErrorKind, StandardError
from ..interfaces import (
    AlertSink,
    BaselineFieldStore,
    CapabilityResolver,
    ComparisonFieldStore,
    LogSink,
)
from ..models import (
    ACTION_ORDER,
    ExecutionOutcome,
    OutcomeStatus,
    PolicyState,
    Severity,
    StandardAction,
    StandardRunResult,
    StandardSettings,
)

logger = logging.getLogger("m365_standards.standards")

LOG_SURFACE = "Standards"


@dataclass
class StandardContext:
    """Collaborators injected into a standard for one or more invocations."""
    capabilities: CapabilityResolver
    remote: Any                      # setting-specific client, e.g. SharingPolicyClient
    log: LogSink
    alerts: AlertSink
    comparison: ComparisonFieldStore
    baseline: BaselineFieldStore


class BaseStandard(ABC):
    """
    Abstract base class for all standards.

    Subclasses implement fetch_state(), is_compliant() and
    remediate_instance(), and supply their log/alert wording.
    The base class provides:
      - Capability gating
      - Single fetch with normalized error logging
      - Per-instance write isolation during remediation
      - Alert and report forwarding with sink failure capture
    """

    name: str = "base"
    description: str = "Base standard"
    required_capabilities: tuple[str, ...] = ()
    write_cmdlets: tuple[str, ...] = ()
    baseline_field: str = ""
    baseline_value_type: str = "bool"

    def __init__(self, context: StandardContext):
        self.context = context

    @property
    def comparison_field(self) -> str:
        return f"standards.{self.name}"

    # ─── Hooks ───────────────────────────────────────────────────────────

    @abstractmethod
    async def fetch_state(self, tenant: str) -> list[PolicyState]:
        """Read the governed setting. Raise on any remote failure."""
        raise NotImplementedError

    @abstractmethod
    def is_compliant(self, state: PolicyState) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def remediate_instance(self, tenant: str, state: PolicyState):
        """Write the desired value for one instance. Raise on failure."""
        raise NotImplementedError

    def alert_payload(self, states: list[PolicyState]) -> Any:
        return [s.to_dict() for s in states]

    def report_value(self, states: list[PolicyState]) -> Any:
        return all(self.is_compliant(s) for s in states)

    # Messages
    def fetch_failed_message(self, tenant: str) -> str:
        return f"Could not get the {self.name} state for {tenant}"

    def remediated_message(self, state: PolicyState) -> str:
        return f"Successfully remediated {self.name} for {state.name}"

    def remediate_failed_message(self, state: PolicyState) -> str:
        return f"Failed to remediate {self.name} for {state.name}"

    already_compliant_message: str = "Setting is already compliant"
    alert_message: str = "Setting is not compliant"
    compliant_alert_message: str = "Setting is compliant"

    # ─── Execution ───────────────────────────────────────────────────────

    def _log(self, tenant: str, message: str, severity: Severity = Severity.INFO,
             data: Optional[dict] = None):
        """Forward to the log sink. A failing sink never aborts the invocation."""
        try:
            self.context.log.log(LOG_SURFACE, tenant, message, severity, data)
        except Exception:
            logger.exception(f"[{self.name}] {tenant}: log sink failed for: {message}")

    async def check_eligible(self, tenant: str) -> bool:
        if not self.required_capabilities:
            return True
        eligible = await self.context.capabilities.has_capability(
            tenant, self.name, list(self.required_capabilities)
        )
        if not eligible:
            self._log(
                tenant,
                f"Tenant does not have the required capability to run standard "
                f"{self.name}: the tenant needs one of the following service plans: "
                f"{', '.join(self.required_capabilities)}",
            )
        return eligible

    async def execute(self, tenant: str, settings: StandardSettings) -> StandardRunResult:
        """Run one invocation of the standard against one tenant."""
        result = StandardRunResult(
            standard=self.name, tenant=tenant, standard_id=settings.standard_id
        )
        logger.debug(
            f"[{self.name}] {tenant}: actions="
            f"{sorted(a.value for a in settings.actions) or 'none'}"
        )

        try:
            result.eligible = await self.check_eligible(tenant)
        except Exception as e:
            result.error = StandardError(
                ErrorKind.CAPABILITY, f"Could not determine capabilities for {tenant}", e
            )
            self._log(
                tenant,
                f"{result.error.message}. Error: {result.error.normalized_message}",
                Severity.ERROR,
                result.error.to_dict(),
            )
            return result
        if not result.eligible:
            return result

        try:
            states = await self.fetch_state(tenant)
        except Exception as e:
            result.error = StandardError(ErrorKind.FETCH, self.fetch_failed_message(tenant), e)
            self._log(
                tenant,
                f"{result.error.message}. Error: {result.error.normalized_message}",
                Severity.ERROR,
                result.error.to_dict(),
            )
            return result
        result.states = states

        handlers = {
            StandardAction.REMEDIATE: self._remediate,
            StandardAction.ALERT: self._alert,
            StandardAction.REPORT: self._report,
        }
        for action in ACTION_ORDER:
            if settings.wants(action):
                await handlers[action](tenant, settings, states, result.outcome(action))

        return result

    async def _remediate(self, tenant: str, settings: StandardSettings,
                         states: list[PolicyState], outcome: ExecutionOutcome):
        """Write only instances that are still non-compliant, each in isolation."""
        pending = [s for s in states if not self.is_compliant(s)]
        if not pending:
            outcome.status = OutcomeStatus.SUCCESS
            outcome.message = self.already_compliant_message
            self._log(tenant, self.already_compliant_message)
            return

        outcome.status = OutcomeStatus.SUCCESS
        for state in pending:
            outcome.writes_attempted += 1
            try:
                await self.remediate_instance(tenant, state)
            except Exception as e:
                error = StandardError(ErrorKind.WRITE, self.remediate_failed_message(state), e)
                outcome.fail(error)
                self._log(
                    tenant,
                    f"{error.message}. Error: {error.normalized_message}",
                    Severity.ERROR,
                    error.to_dict(),
                )
                continue
            outcome.message = self.remediated_message(state)
            self._log(tenant, self.remediated_message(state))

    async def _alert(self, tenant: str, settings: StandardSettings,
                     states: list[PolicyState], outcome: ExecutionOutcome):
        if all(self.is_compliant(s) for s in states):
            outcome.status = OutcomeStatus.SUCCESS
            outcome.message = self.compliant_alert_message
            self._log(tenant, self.compliant_alert_message)
            return

        try:
            self.context.alerts.raise_alert(
                self.alert_message,
                self.alert_payload(states),
                tenant,
                self.name,
                settings.standard_id,
            )
        except Exception as e:
            self._sink_failed(tenant, outcome, "Failed to raise alert", e)
            return
        outcome.status = OutcomeStatus.SUCCESS
        outcome.message = self.alert_message
        self._log(tenant, self.alert_message)

    async def _report(self, tenant: str, settings: StandardSettings,
                      states: list[PolicyState], outcome: ExecutionOutcome):
        value = self.report_value(states)
        try:
            self.context.comparison.set_comparison_field(self.comparison_field, value, tenant)
            if self.baseline_field:
                self.context.baseline.set_baseline_field(
                    self.baseline_field, value, self.baseline_value_type, tenant
                )
        except Exception as e:
            self._sink_failed(tenant, outcome, "Failed to report state", e)
            return
        outcome.status = OutcomeStatus.SUCCESS
        outcome.message = f"Reported {self.comparison_field} = {value!r}"
        self._log(tenant, outcome.message)

    def _sink_failed(self, tenant: str, outcome: ExecutionOutcome, message: str,
                     exc: Exception):
        error = StandardError(ErrorKind.SINK, f"{message} for {self.name}", exc)
        outcome.fail(error)
        self._log(
            tenant,
            f"{error.message}. Error: {error.normalized_message}",
            Severity.ERROR,
            error.to_dict(),
        )
