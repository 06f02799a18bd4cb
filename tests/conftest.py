"""
Pytest configuration and shared fixtures for testing.

Azure SDK models are replaced by ``SimpleNamespace`` objects carrying only
the attributes the scanners read, and the Azure client by an in-memory
fake exposing the same accessors.
"""

import threading
from types import SimpleNamespace

import pytest

from azqr.core.context import ScanContext, ScanScope

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000000"


def resource_id(provider_path: str, name: str, resource_group: str = "rg-prod") -> str:
    """Build an ARM resource id."""
    return (
        f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/{resource_group}"
        f"/providers/{provider_path}/{name}"
    )


def make_vault(name, resource_group="rg-prod", private_endpoints=0, sku="standard", with_id=True):
    """Create a fake Key Vault model."""
    return SimpleNamespace(
        id=resource_id("Microsoft.KeyVault/vaults", name, resource_group) if with_id else None,
        name=name,
        properties=SimpleNamespace(
            sku=SimpleNamespace(name=sku),
            private_endpoint_connections=[
                SimpleNamespace(id=f"pe-{i}") for i in range(private_endpoints)
            ],
        ),
    )


def make_gateway(name, resource_group="rg-prod", zones=None, sku="WAF_v2",
                 waf_enabled=False, firewall_policy=None):
    """Create a fake Application Gateway model."""
    return SimpleNamespace(
        id=resource_id("Microsoft.Network/applicationGateways", name, resource_group),
        name=name,
        zones=zones,
        sku=SimpleNamespace(name=sku),
        firewall_policy=firewall_policy,
        web_application_firewall_configuration=SimpleNamespace(enabled=waf_enabled),
    )


def make_environment(name, resource_group="rg-prod", zone_redundant=False, internal=None):
    """Create a fake Container Apps managed environment model."""
    vnet = None if internal is None else SimpleNamespace(internal=internal)
    return SimpleNamespace(
        id=resource_id("Microsoft.App/managedEnvironments", name, resource_group),
        name=name,
        zone_redundant=zone_redundant,
        vnet_configuration=vnet,
    )


def make_plan(name, resource_group="rg-prod", sku="P1v3", tier="PremiumV3", zone_redundant=False):
    """Create a fake App Service plan model."""
    return SimpleNamespace(
        id=resource_id("Microsoft.Web/serverfarms", name, resource_group),
        name=name,
        sku=SimpleNamespace(name=sku, tier=tier),
        zone_redundant=zone_redundant,
    )


class FakeAzureClient:
    """
    In-memory stand-in for ``AzureClient``.

    Parameters
    ----------
    vaults, gateways, environments, plans : list, optional
        Resources returned by the corresponding list calls.
    diagnostics : iterable of str, optional
        Resource ids that have diagnostic settings.
    failing_lookups : iterable of str, optional
        Resource ids whose diagnostics query raises.
    fetch_errors : dict, optional
        Service key (``kv``, ``agw``, ``cae``, ``plan``) to the exception
        raised by its list calls.
    """

    def __init__(self, vaults=None, gateways=None, environments=None, plans=None,
                 diagnostics=(), failing_lookups=(), fetch_errors=None):
        self.vaults = list(vaults or [])
        self.gateways = list(gateways or [])
        self.environments = list(environments or [])
        self.plans = list(plans or [])
        self.diagnostics = {d.lower() for d in diagnostics}
        self.failing_lookups = {d.lower() for d in failing_lookups}
        self.fetch_errors = dict(fetch_errors or {})
        self.lookup_calls = []
        self._lock = threading.Lock()

    def _pager(self, service, items, resource_group=None):
        if service in self.fetch_errors:
            raise self.fetch_errors[service]
        if resource_group:
            marker = f"/resourcegroups/{resource_group.lower()}/"
            items = [i for i in items if marker in (i.id or "").lower()]
        return iter(items)

    def get_keyvault_client(self, subscription_id):
        return SimpleNamespace(vaults=SimpleNamespace(
            list_by_subscription=lambda: self._pager("kv", self.vaults),
            list_by_resource_group=lambda rg: self._pager("kv", self.vaults, rg),
        ))

    def get_network_client(self, subscription_id):
        return SimpleNamespace(application_gateways=SimpleNamespace(
            list_all=lambda: self._pager("agw", self.gateways),
            list=lambda rg: self._pager("agw", self.gateways, rg),
        ))

    def get_container_apps_client(self, subscription_id):
        return SimpleNamespace(managed_environments=SimpleNamespace(
            list_by_subscription=lambda: self._pager("cae", self.environments),
            list_by_resource_group=lambda rg: self._pager("cae", self.environments, rg),
        ))

    def get_web_client(self, subscription_id):
        return SimpleNamespace(app_service_plans=SimpleNamespace(
            list=lambda: self._pager("plan", self.plans),
            list_by_resource_group=lambda rg: self._pager("plan", self.plans, rg),
        ))

    def has_diagnostic_settings(self, resource_id):
        with self._lock:
            self.lookup_calls.append(resource_id)
        if resource_id.lower() in self.failing_lookups:
            raise RuntimeError("diagnostic settings endpoint unavailable")
        return resource_id.lower() in self.diagnostics


@pytest.fixture
def scope():
    """Subscription-wide scan scope."""
    return ScanScope(SUBSCRIPTION_ID)


@pytest.fixture
def fake_client():
    """Factory for FakeAzureClient instances."""
    return FakeAzureClient


@pytest.fixture
def context_for():
    """Build a fresh ScanContext backed by a fake client's lookup."""
    def _build(client):
        return ScanContext(client.has_diagnostic_settings)
    return _build


@pytest.fixture
def vault_factory():
    return make_vault


@pytest.fixture
def gateway_factory():
    return make_gateway


@pytest.fixture
def environment_factory():
    return make_environment


@pytest.fixture
def plan_factory():
    return make_plan


@pytest.fixture
def id_for():
    return resource_id
