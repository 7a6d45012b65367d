"""
Safety Guardian. Keeps remote side effects inside what a run asked for.
Graph traffic is read-only. Exchange cmdlets are read-only unless the run
has armed the guardian for a specific write cmdlet (remediation).
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Iterable, Optional

logger = logging.getLogger("m365_standards.safety")

# ─── Blocked HTTP Methods ────────────────────────────────────────────────────

WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

# Exchange admin API tunnels every cmdlet, read or write, through one POST
SAFE_POST_ENDPOINTS = [
    re.compile(r"/adminapi/beta/[^/]+/InvokeCommand$", re.IGNORECASE),
]

# Cmdlet verbs that never change tenant state (matched case-insensitively)
READ_CMDLET_VERBS = ("get-", "test-")


class SafetyViolation(Exception):
    """Raised when a request would change state the run did not authorize."""
    pass


class SafetyGuardian:
    """
    Validates every outbound request and cmdlet before it is sent.
    Maintains an audit log of all safety checks and violations.
    """

    def __init__(self, allowed_write_cmdlets: Optional[Iterable[str]] = None):
        self.allowed_write_cmdlets: set[str] = {
            c.lower() for c in (allowed_write_cmdlets or ())
        }
        self.violations: list[dict] = []
        self.checks_performed: int = 0
        self.writes_authorized: int = 0
        self.started_at: str = datetime.now(timezone.utc).isoformat()

    def arm(self, *cmdlets: str):
        """Allow the given write cmdlets for the rest of this guardian's life."""
        for cmdlet in cmdlets:
            self.allowed_write_cmdlets.add(cmdlet.lower())
        logger.debug(f"Guardian armed for: {', '.join(cmdlets)}")

    @property
    def armed(self) -> bool:
        return bool(self.allowed_write_cmdlets)

    def validate_request(self, method: str, url: str) -> bool:
        """
        Validate an HTTP request at the transport layer.
        Returns True if safe, raises SafetyViolation if not.
        """
        self.checks_performed += 1
        method_upper = method.upper()

        if method_upper in ("GET", "HEAD", "OPTIONS"):
            return True

        if method_upper == "POST":
            path = url.split("?", 1)[0]
            for pattern in SAFE_POST_ENDPOINTS:
                if pattern.search(path):
                    return True

        if method_upper in WRITE_METHODS:
            self._record_violation(method_upper, url, "Write HTTP method blocked")
            raise SafetyViolation(
                f"SAFETY VIOLATION: Write method blocked: {method_upper} {url}"
            )

        return True

    def validate_cmdlet(self, cmdlet: str, tenant: str = "") -> bool:
        """Validate an Exchange cmdlet; writes must have been armed."""
        self.checks_performed += 1
        if cmdlet.lower().startswith(READ_CMDLET_VERBS):
            return True

        if cmdlet.lower() in self.allowed_write_cmdlets:
            self.writes_authorized += 1
            logger.info(f"Authorized write cmdlet {cmdlet} for {tenant or 'tenant'}")
            return True

        self._record_violation("CMDLET", f"{tenant}:{cmdlet}", "Write cmdlet not armed")
        raise SafetyViolation(
            f"SAFETY VIOLATION: Write cmdlet not authorized for this run: {cmdlet}"
        )

    def _record_violation(self, method: str, target: str, reason: str):
        """Record a safety violation for audit."""
        violation = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": method,
            "target": target,
            "reason": reason,
        }
        self.violations.append(violation)
        logger.critical(f"SAFETY VIOLATION: {reason} for {method} {target}")

    def get_audit_record(self) -> dict:
        """Return the full safety audit record."""
        return {
            "safety_guardian": {
                "mode": "REMEDIATE" if self.armed else "READ-ONLY",
                "allowed_write_cmdlets": sorted(self.allowed_write_cmdlets),
                "started_at": self.started_at,
                "checks_performed": self.checks_performed,
                "writes_authorized": self.writes_authorized,
                "violations_detected": len(self.violations),
                "violations": self.violations,
                "status": "CLEAN" if not self.violations else "VIOLATIONS_DETECTED",
            }
        }
