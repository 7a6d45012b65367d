"""
Configuration module for the M365 Standards Engine.
Defines remote endpoints, throttling behaviour, and per-standard settings.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional


# ─── Tenant Authentication ───────────────────────────────────────────────────

@dataclass
class CertificateAuth:
    """Certificate-based app-only authentication configuration."""
    tenant_id: str
    client_id: str
    certificate_path: str          # Path to base64-encoded PFX
    certificate_password: str = "" # Falls back to M365_CERT_PASSWORD
    thumbprint: str = ""

@dataclass
class AuthConfig:
    """Authentication configuration (app-only certificate flow)."""
    certificate: Optional[CertificateAuth] = None


# ─── Remote Service Settings ─────────────────────────────────────────────────

GRAPH_BASE_URL = "https://graph.microsoft.com"
GRAPH_API_VERSION = "v1.0"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"

EXCHANGE_BASE_URL = "https://outlook.office365.com/adminapi/beta"
EXCHANGE_SCOPE = "https://outlook.office365.com/.default"
# Well-known arbitration mailbox used to anchor admin cmdlets
EXCHANGE_SYSTEM_MAILBOX = "SystemMailbox{bb558c35-97f1-4cb9-8ff7-d53741dc928c}"

# Rate limiting / throttling
MAX_CONCURRENT_REQUESTS = 4       # Parallel requests per client
MAX_RETRIES = 3                   # Retry count for throttled requests
INITIAL_BACKOFF_SECONDS = 2.0     # First retry delay
MAX_BACKOFF_SECONDS = 60.0        # Cap on exponential backoff
BACKOFF_MULTIPLIER = 2.0          # Exponential factor

# Pagination
DEFAULT_PAGE_SIZE = 999
MAX_PAGES_PER_ENDPOINT = 100


@dataclass
class RemoteConfig:
    """Throttling knobs shared by the Graph and Exchange clients."""
    max_retries: int = MAX_RETRIES
    initial_backoff: float = INITIAL_BACKOFF_SECONDS
    max_backoff: float = MAX_BACKOFF_SECONDS
    timeout_seconds: float = 60.0


# ─── Compliance Store ────────────────────────────────────────────────────────

@dataclass
class StoreConfig:
    """Where log entries, alerts and report fields are persisted."""
    db_path: str = ""

    def __post_init__(self):
        if not self.db_path:
            self.db_path = os.path.join(os.getcwd(), "m365_standards.db")

    @property
    def path(self) -> Path:
        return Path(self.db_path)


# ─── Master Configuration ───────────────────────────────────────────────────

@dataclass
class EngineConfig:
    """Top-level configuration for the engine."""
    auth: AuthConfig = field(default_factory=AuthConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    standards: dict[str, dict[str, Any]] = field(default_factory=dict)
    verbose: bool = False

    def standard_settings(self, standard_name: str) -> dict[str, Any]:
        """Raw settings block for one standard (empty if not configured)."""
        return dict(self.standards.get(standard_name, {}))

    @classmethod
    def from_file(cls, path: str | Path) -> "EngineConfig":
        """Load configuration from a JSON file."""
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EngineConfig":
        config = cls()
        if "auth" in data and "certificate" in data["auth"]:
            c = data["auth"]["certificate"]
            config.auth.certificate = CertificateAuth(
                tenant_id=c["tenant_id"],
                client_id=c["client_id"],
                certificate_path=c.get("certificate_path", "./base64.txt"),
                certificate_password=c.get("certificate_password", ""),
                thumbprint=c.get("thumbprint", ""),
            )
        if "remote" in data:
            for k, v in data["remote"].items():
                if hasattr(config.remote, k):
                    setattr(config.remote, k, v)
        if "store" in data:
            for k, v in data["store"].items():
                if hasattr(config.store, k):
                    setattr(config.store, k, v)
        config.standards = dict(data.get("standards", {}))
        config.verbose = data.get("verbose", False)
        return config
