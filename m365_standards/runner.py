"""
Runs one standard against one tenant with the concrete adapters:
Graph for capabilities, Exchange for the sharing policy, SQLite for
logs, alerts and report fields.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from .auth.authenticator import Authenticator
from .config import EXCHANGE_SCOPE, GRAPH_SCOPE, EngineConfig
from .licensing.capabilities import GraphCapabilityResolver
from .models import StandardAction, StandardRunResult, StandardSettings
from .remote.exchange import ExchangeClient, ExchangeSharingPolicyClient
from .remote.graph import GraphClient
from .safety.guardian import SafetyGuardian
from .sinks.log_sink import StandardsLogSink
from .standards import StandardContext, get_standard
from .store.compliance_store import ComplianceStore

logger = logging.getLogger("m365_standards.runner")


class TokenProvider(Protocol):
    def acquire_token(self, scope: str, tenant: Optional[str] = None) -> str:
        ...


def build_guardian(write_cmdlets: tuple[str, ...], settings: StandardSettings) -> SafetyGuardian:
    """A guardian that permits the standard's writes only when remediating."""
    guardian = SafetyGuardian()
    if settings.wants(StandardAction.REMEDIATE) and write_cmdlets:
        guardian.arm(*write_cmdlets)
    return guardian


async def run_standard(
    config: EngineConfig,
    tenant: str,
    standard_name: str,
    settings: Optional[StandardSettings] = None,
    token_provider: Optional[TokenProvider] = None,
    store: Optional[ComplianceStore] = None,
) -> StandardRunResult:
    """
    Build the adapters, execute one standard invocation, close the clients.
    Settings default to the standard's block in the engine configuration.
    Both tokens are issued by the target tenant, so capability lookups and
    cmdlets run against that tenant rather than the app's home tenant.
    """
    standard_cls = get_standard(standard_name)
    if standard_cls is None:
        raise KeyError(f"Unknown standard: {standard_name}")

    if settings is None:
        settings = StandardSettings.from_dict(config.standard_settings(standard_cls.name))

    guardian = build_guardian(standard_cls.write_cmdlets, settings)
    token_provider = token_provider or Authenticator(config.auth)
    store = store or ComplianceStore(config.store.path)

    graph_token = token_provider.acquire_token(GRAPH_SCOPE, tenant)
    exchange_token = token_provider.acquire_token(EXCHANGE_SCOPE, tenant)

    async with GraphClient(graph_token, guardian, config.remote) as graph, \
            ExchangeClient(exchange_token, guardian, config.remote) as exchange:
        context = StandardContext(
            capabilities=GraphCapabilityResolver(graph),
            remote=ExchangeSharingPolicyClient(exchange),
            log=StandardsLogSink(store),
            alerts=store,
            comparison=store,
            baseline=store,
        )
        result = await standard_cls(context).execute(tenant, settings)
        stats = [graph.get_stats(), exchange.get_stats()]

    audit = guardian.get_audit_record()["safety_guardian"]
    logger.info(
        f"[{standard_cls.name}] {tenant}: "
        f"{'succeeded' if result.succeeded else 'failed'}, "
        f"executed={sorted(a.value for a in result.executed_actions)}, "
        f"requests={sum(s['total_requests'] for s in stats)}, "
        f"guardian={audit['status']}"
    )
    return result
