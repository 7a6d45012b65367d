"""
M365 Standards Engine
=====================
Per-setting compliance standards for Microsoft 365 tenants. Each standard
checks one tenant setting and, as configured, remediates drift, raises an
alert, and reports the observed state.

Remote writes happen only when remediation is requested for the run; the
Safety Guardian blocks every other state-changing call.
"""

__version__ = "1.0.0"
__author__ = "M365 Standards Engine"

from .models import (
    ExecutionOutcome,
    OutcomeStatus,
    PolicyState,
    Severity,
    StandardAction,
    StandardRunResult,
    StandardSettings,
    all_action_combinations,
)
from .errors import ErrorKind, StandardError
from .standards import ALL_STANDARDS, BaseStandard, StandardContext, get_standard

__all__ = [
    "ExecutionOutcome",
    "OutcomeStatus",
    "PolicyState",
    "Severity",
    "StandardAction",
    "StandardRunResult",
    "StandardSettings",
    "all_action_combinations",
    "ErrorKind",
    "StandardError",
    "ALL_STANDARDS",
    "BaseStandard",
    "StandardContext",
    "get_standard",
]
