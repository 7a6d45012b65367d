"""
Data models shared by every standard: requested actions, settings,
fetched policy state, and per-action outcomes.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any, Optional

from .errors import StandardError


class StandardAction(str, enum.Enum):
    """The three independently toggleable execution modes."""
    REMEDIATE = "remediate"
    ALERT = "alert"
    REPORT = "report"


# Execution order within one invocation. Order is conventional only:
# no action reads another action's outcome.
ACTION_ORDER = (StandardAction.REMEDIATE, StandardAction.ALERT, StandardAction.REPORT)


def all_action_combinations() -> list[frozenset[StandardAction]]:
    """Every subset of actions, from the empty no-op run to all three."""
    return [
        frozenset(combo)
        for size in range(len(ACTION_ORDER) + 1)
        for combo in combinations(ACTION_ORDER, size)
    ]


class Severity(str, enum.Enum):
    DEBUG = "Debug"
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"
    CRITICAL = "Critical"


class OutcomeStatus(str, enum.Enum):
    SKIPPED = "skipped"
    SUCCESS = "success"
    FAILED = "failed"


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


@dataclass(frozen=True)
class StandardSettings:
    """Configuration for one invocation of a standard."""
    actions: frozenset[StandardAction] = frozenset()
    standard_id: str = ""
    parameters: dict[str, Any] = field(default_factory=dict)

    def wants(self, action: StandardAction) -> bool:
        return action in self.actions

    @property
    def remediate(self) -> bool:
        return StandardAction.REMEDIATE in self.actions

    @property
    def alert(self) -> bool:
        return StandardAction.ALERT in self.actions

    @property
    def report(self) -> bool:
        return StandardAction.REPORT in self.actions

    @classmethod
    def from_flags(
        cls,
        remediate: bool = False,
        alert: bool = False,
        report: bool = False,
        standard_id: str = "",
        parameters: Optional[dict[str, Any]] = None,
    ) -> "StandardSettings":
        flags = {
            StandardAction.REMEDIATE: remediate,
            StandardAction.ALERT: alert,
            StandardAction.REPORT: report,
        }
        return cls(
            actions=frozenset(a for a, on in flags.items() if on),
            standard_id=standard_id,
            parameters=dict(parameters or {}),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StandardSettings":
        """
        Build settings from the boolean form used in configuration files:
        {"remediate": true, "alert": false, "report": true, "standardId": "..."}.
        Any other keys are kept as setting-specific parameters.
        """
        known = {"remediate", "alert", "report", "standardId", "standard_id"}
        return cls.from_flags(
            remediate=_as_bool(data.get("remediate", False)),
            alert=_as_bool(data.get("alert", False)),
            report=_as_bool(data.get("report", False)),
            standard_id=str(data.get("standardId", data.get("standard_id", "")) or ""),
            parameters={k: v for k, v in data.items() if k not in known},
        )


@dataclass(frozen=True)
class PolicyState:
    """One sharing policy instance as returned by the remote service."""
    id: str
    name: str
    enabled: bool
    is_default: bool = False
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_remote(cls, record: dict[str, Any]) -> "PolicyState":
        name = str(record.get("Name") or record.get("Identity") or "")
        policy_id = record.get("Id") or record.get("Identity") or record.get("Guid") or name
        return cls(
            id=str(policy_id),
            name=name,
            enabled=_as_bool(record.get("Enabled", False)),
            is_default=_as_bool(record.get("Default", False)),
            raw=dict(record),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "enabled": self.enabled,
            "default": self.is_default,
        }


@dataclass
class ExecutionOutcome:
    """Result of one sub-action."""
    action: StandardAction
    status: OutcomeStatus = OutcomeStatus.SKIPPED
    message: str = ""
    errors: list[StandardError] = field(default_factory=list)
    writes_attempted: int = 0

    @property
    def reason(self) -> Optional[StandardError]:
        return self.errors[0] if self.errors else None

    def fail(self, error: StandardError):
        self.status = OutcomeStatus.FAILED
        self.errors.append(error)

    def to_dict(self) -> dict:
        return {
            "action": self.action.value,
            "status": self.status.value,
            "message": self.message,
            "writes_attempted": self.writes_attempted,
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class StandardRunResult:
    """Everything one invocation observed and did."""
    standard: str
    tenant: str
    standard_id: str = ""
    eligible: bool = True
    states: list[PolicyState] = field(default_factory=list)
    outcomes: dict[StandardAction, ExecutionOutcome] = field(default_factory=dict)
    error: Optional[StandardError] = None

    def __post_init__(self):
        for action in ACTION_ORDER:
            self.outcomes.setdefault(action, ExecutionOutcome(action))

    @property
    def succeeded(self) -> bool:
        """False only when the run could not establish the current state."""
        return self.error is None

    def outcome(self, action: StandardAction) -> ExecutionOutcome:
        return self.outcomes[action]

    @property
    def executed_actions(self) -> frozenset[StandardAction]:
        return frozenset(
            a for a, o in self.outcomes.items() if o.status != OutcomeStatus.SKIPPED
        )

    def to_dict(self) -> dict:
        return {
            "standard": self.standard,
            "tenant": self.tenant,
            "standard_id": self.standard_id,
            "eligible": self.eligible,
            "succeeded": self.succeeded,
            "states": [s.to_dict() for s in self.states],
            "outcomes": {a.value: self.outcomes[a].to_dict() for a in ACTION_ORDER},
            "error": self.error.to_dict() if self.error else None,
        }
