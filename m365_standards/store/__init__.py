from .compliance_store import ComplianceStore

__all__ = ["ComplianceStore"]
