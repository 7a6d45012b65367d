"""Graph and Exchange clients against respx-mocked endpoints."""
from __future__ import annotations

import json

import httpx
import pytest
import respx

from m365_standards.config import RemoteConfig
from m365_standards.licensing.capabilities import GraphCapabilityResolver
from m365_standards.remote.base import RemoteAPIError
from m365_standards.remote.exchange import ExchangeClient, ExchangeSharingPolicyClient
from m365_standards.remote.graph import GraphClient
from m365_standards.safety.guardian import SafetyGuardian, SafetyViolation

TENANT = "contoso.onmicrosoft.com"
INVOKE_URL = f"https://outlook.office365.com/adminapi/beta/{TENANT}/InvokeCommand"
SKUS_URL = "https://graph.microsoft.com/v1.0/subscribedSkus"

FAST = RemoteConfig(max_retries=2, initial_backoff=0.0, max_backoff=0.0)


class TestExchangeClient:
    @respx.mock
    async def test_get_sharing_policy(self):
        route = respx.post(INVOKE_URL).mock(return_value=httpx.Response(
            200, json={"value": [{"Name": "Default Sharing Policy", "Enabled": True, "Default": True}]}
        ))
        async with ExchangeClient("token", SafetyGuardian(), FAST) as exchange:
            policies = await ExchangeSharingPolicyClient(exchange).read_sharing_policies(TENANT)

        assert policies[0]["Name"] == "Default Sharing Policy"
        request = route.calls.last.request
        assert json.loads(request.content) == {
            "CmdletInput": {"CmdletName": "Get-SharingPolicy", "Parameters": {}}
        }
        assert request.headers["Authorization"] == "Bearer token"
        assert request.headers["X-CmdletName"] == "Get-SharingPolicy"
        assert "X-AnchorMailbox" not in request.headers

    @respx.mock
    async def test_set_sharing_policy_requires_armed_guardian(self):
        route = respx.post(INVOKE_URL).mock(return_value=httpx.Response(200, json={"value": []}))
        async with ExchangeClient("token", SafetyGuardian(), FAST) as exchange:
            client = ExchangeSharingPolicyClient(exchange)
            with pytest.raises(SafetyViolation):
                await client.write_sharing_policy(TENANT, "pol-1", {"Enabled": False})
        assert not route.called

    @respx.mock
    async def test_set_sharing_policy_when_armed(self):
        route = respx.post(INVOKE_URL).mock(return_value=httpx.Response(204))
        guardian = SafetyGuardian(allowed_write_cmdlets=["Set-SharingPolicy"])
        async with ExchangeClient("token", guardian, FAST) as exchange:
            await ExchangeSharingPolicyClient(exchange).write_sharing_policy(
                TENANT, "pol-1", {"Enabled": False}
            )

        request = route.calls.last.request
        assert json.loads(request.content)["CmdletInput"] == {
            "CmdletName": "Set-SharingPolicy",
            "Parameters": {"Identity": "pol-1", "Enabled": False},
        }
        assert request.headers["X-AnchorMailbox"].startswith("UPN:SystemMailbox{")
        assert request.headers["X-AnchorMailbox"].endswith(f"@{TENANT}")

    @respx.mock
    async def test_error_details_become_remote_message(self):
        respx.post(INVOKE_URL).mock(return_value=httpx.Response(400, json={
            "error": {
                "code": "BadRequest",
                "message": "Error executing cmdlet",
                "details": [{"message": "The policy 'x' couldn't be found."}],
            }
        }))
        async with ExchangeClient("token", SafetyGuardian(), FAST) as exchange:
            with pytest.raises(RemoteAPIError) as exc_info:
                await exchange.invoke_command(TENANT, "Get-SharingPolicy")

        assert exc_info.value.status_code == 400
        assert exc_info.value.remote_message == "The policy 'x' couldn't be found."

    @respx.mock
    async def test_throttling_is_retried(self):
        route = respx.post(INVOKE_URL).mock(side_effect=[
            httpx.Response(429, headers={"Retry-After": "0"}),
            httpx.Response(200, json={"value": [{"Name": "Default"}]}),
        ])
        async with ExchangeClient("token", SafetyGuardian(), FAST) as exchange:
            result = await exchange.invoke_command(TENANT, "Get-SharingPolicy")
            stats = exchange.get_stats()

        assert result == [{"Name": "Default"}]
        assert route.call_count == 2
        assert stats["throttle_events"] == 1

    @respx.mock
    async def test_throttling_without_retries_fails_once(self):
        route = respx.post(INVOKE_URL).mock(return_value=httpx.Response(429))
        no_retry = RemoteConfig(max_retries=0)
        async with ExchangeClient("token", SafetyGuardian(), no_retry) as exchange:
            with pytest.raises(RemoteAPIError):
                await exchange.invoke_command(TENANT, "Get-SharingPolicy")
        assert route.call_count == 1

    @respx.mock
    async def test_exhausted_retries_surface_the_last_throttle(self):
        route = respx.post(INVOKE_URL).mock(return_value=httpx.Response(
            503, headers={"Retry-After": "0"}, json={"error": {"message": "Server busy"}}
        ))
        async with ExchangeClient("token", SafetyGuardian(), FAST) as exchange:
            with pytest.raises(RemoteAPIError) as exc_info:
                await exchange.invoke_command(TENANT, "Get-SharingPolicy")
        assert route.call_count == 3
        assert exc_info.value.status_code == 503
        assert exc_info.value.remote_message == "Server busy"

    async def test_client_requires_context(self):
        exchange = ExchangeClient("token", SafetyGuardian())
        with pytest.raises(RuntimeError):
            await exchange.invoke_command(TENANT, "Get-SharingPolicy")


class TestGraphClient:
    @respx.mock
    async def test_follows_next_link(self):
        next_url = SKUS_URL + "?$skiptoken=page2"
        respx.get(next_url).mock(return_value=httpx.Response(200, json={"value": [{"n": 2}]}))
        respx.get(SKUS_URL).mock(return_value=httpx.Response(
            200, json={"value": [{"n": 1}], "@odata.nextLink": next_url}
        ))
        async with GraphClient("token", SafetyGuardian(), FAST) as graph:
            items = await graph.get_all_pages("subscribedSkus", skip_top=True)

        assert items == [{"n": 1}, {"n": 2}]


class TestCapabilityResolver:
    @respx.mock
    async def test_provisioned_plans_only(self):
        route = respx.get(SKUS_URL).mock(return_value=httpx.Response(200, json={"value": [
            {
                "skuPartNumber": "ENTERPRISEPACK",
                "capabilityStatus": "Enabled",
                "servicePlans": [
                    {"servicePlanName": "EXCHANGE_S_ENTERPRISE", "provisioningStatus": "Success"},
                    {"servicePlanName": "SHAREPOINTENTERPRISE", "provisioningStatus": "Disabled"},
                ],
            },
            {
                "skuPartNumber": "EXPIRED",
                "capabilityStatus": "Suspended",
                "servicePlans": [
                    {"servicePlanName": "EXCHANGE_LITE", "provisioningStatus": "Success"},
                ],
            },
        ]}))
        async with GraphClient("token", SafetyGuardian(), FAST) as graph:
            resolver = GraphCapabilityResolver(graph)
            assert await resolver.has_capability(TENANT, "S", ["EXCHANGE_S_STANDARD", "EXCHANGE_S_ENTERPRISE"])
            assert not await resolver.has_capability(TENANT, "S", ["EXCHANGE_LITE"])
            assert not await resolver.has_capability(TENANT, "S", ["SHAREPOINTENTERPRISE"])

        assert route.call_count == 1
