"""
Log sink for standard runs.
Every entry goes to the `m365_standards.standards` logger; when a
ComplianceStore is attached the entry is also persisted for audit.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..models import Severity
from ..store.compliance_store import ComplianceStore

logger = logging.getLogger("m365_standards.standards")

SEVERITY_LEVELS = {
    Severity.DEBUG: logging.DEBUG,
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.CRITICAL: logging.CRITICAL,
}


class StandardsLogSink:
    def __init__(self, store: Optional[ComplianceStore] = None):
        self.store = store

    def log(
        self,
        surface: str,
        tenant: str,
        message: str,
        severity: Severity,
        data: Optional[dict[str, Any]] = None,
    ):
        severity = Severity(severity)
        logger.log(SEVERITY_LEVELS[severity], f"[{surface}] [{tenant}] {message}")
        if self.store is not None:
            self.store.add_log_entry(surface, tenant, message, severity.value, data)
