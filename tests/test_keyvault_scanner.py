"""
Tests for the Key Vault Scanner.
"""

import pytest

from azqr.core.context import ScanScope
from azqr.core.exceptions import ResourceFetchError
from azqr.core.rules import RuleKind
from azqr.scanners.keyvault_scanner import KeyVaultScanner


def _by_rule(results, resource_name):
    return {r.rule_id: r for r in results if r.resource_name == resource_name}


class TestKeyVaultScanner:
    """Tests for KeyVaultScanner class."""

    def test_get_resource_type(self, fake_client):
        """Test that resource type is correctly returned."""
        scanner = KeyVaultScanner(fake_client())
        assert scanner.get_resource_type() == "Microsoft.KeyVault/vaults"

    def test_rule_catalog(self, fake_client):
        """Test the rule names, ids and kinds."""
        rules = KeyVaultScanner(fake_client()).get_rules()

        assert list(rules) == [
            "DiagnosticSettings", "AvailabilityZones", "SLA", "Private", "SKU", "CAF",
        ]
        assert [r.id for r in rules.values()] == [
            "kv-001", "kv-002", "kv-003", "kv-004", "kv-005", "kv-006",
        ]
        assert rules["SLA"].kind == RuleKind.INFORMATIONAL
        assert rules["AvailabilityZones"].is_informational
        assert not rules["Private"].is_informational

    def test_get_rules_is_stable(self, fake_client):
        """Test that every call returns the same rules in the same order."""
        scanner = KeyVaultScanner(fake_client())
        assert list(scanner.get_rules().items()) == list(scanner.get_rules().items())

    def test_missing_diagnostics_is_violated(self, fake_client, vault_factory, scope, context_for):
        """A vault without diagnostic settings violates kv-001 with evidence 'false'."""
        client = fake_client(vaults=[vault_factory("kv-prod-01")])
        results = KeyVaultScanner(client).scan(scope, context_for(client))

        result = _by_rule(results, "kv-prod-01")["kv-001"]
        assert result.violated is True
        assert result.evidence == "false"
        assert result.undetermined is False

    def test_diagnostics_configured_passes(self, fake_client, vault_factory, scope, context_for):
        """A vault with diagnostic settings passes kv-001."""
        vault = vault_factory("kv-prod-01")
        client = fake_client(vaults=[vault], diagnostics=[vault.id])
        results = KeyVaultScanner(client).scan(scope, context_for(client))

        result = _by_rule(results, "kv-prod-01")["kv-001"]
        assert result.violated is False
        assert result.evidence == "true"

    def test_private_endpoint_passes(self, fake_client, vault_factory, scope, context_for):
        """A vault with one private endpoint connection passes kv-004."""
        client = fake_client(vaults=[vault_factory("kv-prod-01", private_endpoints=1)])
        results = KeyVaultScanner(client).scan(scope, context_for(client))

        result = _by_rule(results, "kv-prod-01")["kv-004"]
        assert result.violated is False
        assert result.evidence == "true"

    def test_no_private_endpoint_is_violated(self, fake_client, vault_factory, scope, context_for):
        """A vault with no private endpoints violates kv-004."""
        vault = vault_factory("kv-prod-01")
        vault.properties.private_endpoint_connections = None
        client = fake_client(vaults=[vault])
        results = KeyVaultScanner(client).scan(scope, context_for(client))

        result = _by_rule(results, "kv-prod-01")["kv-004"]
        assert result.violated is True
        assert result.evidence == "false"

    def test_caf_prefix_passes(self, fake_client, vault_factory, scope, context_for):
        """A vault named 'kv-prod-01' complies with the naming convention."""
        client = fake_client(vaults=[vault_factory("kv-prod-01")])
        results = KeyVaultScanner(client).scan(scope, context_for(client))

        result = _by_rule(results, "kv-prod-01")["kv-006"]
        assert result.violated is False
        assert result.evidence == "true"

    @pytest.mark.parametrize("name", ["secrets-prod", "KV-prod-01", "prod-kv"])
    def test_caf_prefix_is_case_sensitive(self, fake_client, vault_factory, scope, context_for, name):
        """Names not starting with lowercase 'kv' violate kv-006."""
        client = fake_client(vaults=[vault_factory(name)])
        results = KeyVaultScanner(client).scan(scope, context_for(client))

        result = _by_rule(results, name)["kv-006"]
        assert result.violated is True
        assert result.evidence == "false"

    def test_informational_rules_ignore_resource_fields(self, fake_client, vault_factory, context_for):
        """Availability zone and SLA rules return fixed values for any vault."""
        client = fake_client()
        scanner = KeyVaultScanner(client)
        context = context_for(client)
        rules = scanner.get_rules()

        for vault in (
            vault_factory("kv-a", private_endpoints=3, sku="premium"),
            vault_factory("other", sku="standard"),
        ):
            assert rules["AvailabilityZones"].evaluate(vault, context) == (False, "true")
            assert rules["SLA"].evaluate(vault, context) == (False, "99.99%")

    def test_sku_evidence(self, fake_client, vault_factory, scope, context_for):
        """Test that the SKU name is reported as evidence."""
        client = fake_client(vaults=[vault_factory("kv-prod-01", sku="premium")])
        results = KeyVaultScanner(client).scan(scope, context_for(client))

        result = _by_rule(results, "kv-prod-01")["kv-005"]
        assert result.violated is False
        assert result.evidence == "premium"

    def test_evaluate_is_deterministic(self, fake_client, vault_factory, context_for):
        """Evaluating a rule twice on the same input yields the same pair."""
        vault = vault_factory("kv-prod-01", private_endpoints=1)
        client = fake_client(vaults=[vault], diagnostics=[vault.id])
        context = context_for(client)

        for rule in KeyVaultScanner(client).get_rules().values():
            assert rule.evaluate(vault, context) == rule.evaluate(vault, context)

    def test_lookup_failure_marks_only_diagnostics_undetermined(
        self, fake_client, vault_factory, scope, context_for
    ):
        """A failed diagnostics query leaves every other result intact."""
        broken = vault_factory("kv-broken")
        healthy = vault_factory("kv-healthy", private_endpoints=1)
        client = fake_client(
            vaults=[broken, healthy],
            diagnostics=[healthy.id],
            failing_lookups=[broken.id],
        )

        results = KeyVaultScanner(client).scan(scope, context_for(client))

        assert len(results) == 12
        broken_rows = _by_rule(results, "kv-broken")
        assert broken_rows["kv-001"].undetermined is True
        assert broken_rows["kv-001"].violated is False
        assert "diagnostic settings endpoint unavailable" in broken_rows["kv-001"].evidence
        assert broken_rows["kv-001"].status == "Undetermined"
        assert all(
            not r.undetermined for rule_id, r in broken_rows.items() if rule_id != "kv-001"
        )

        healthy_rows = _by_rule(results, "kv-healthy")
        assert healthy_rows["kv-001"].violated is False
        assert healthy_rows["kv-001"].evidence == "true"
        assert healthy_rows["kv-004"].evidence == "true"

    def test_missing_resource_id_still_yields_every_rule(
        self, fake_client, vault_factory, scope, context_for
    ):
        """A vault without an id gets one result per rule."""
        client = fake_client(vaults=[vault_factory("kv-orphan", with_id=False)])
        results = KeyVaultScanner(client).scan(scope, context_for(client))

        assert [r.rule_id for r in results] == [
            "kv-001", "kv-002", "kv-003", "kv-004", "kv-005", "kv-006",
        ]
        diagnostics = results[0]
        assert diagnostics.undetermined is True
        assert diagnostics.evidence == "Incomplete resource metadata: missing resource id"
        assert client.lookup_calls == []

    def test_results_ordered_by_rule_then_resource(
        self, fake_client, vault_factory, scope, context_for
    ):
        """Rows follow rule catalog order, then resource enumeration order."""
        client = fake_client(vaults=[vault_factory("kv-b"), vault_factory("kv-a")])
        results = KeyVaultScanner(client).scan(scope, context_for(client))

        assert [(r.rule_id, r.resource_name) for r in results[:4]] == [
            ("kv-001", "kv-b"),
            ("kv-001", "kv-a"),
            ("kv-002", "kv-b"),
            ("kv-002", "kv-a"),
        ]

    def test_result_metadata(self, fake_client, vault_factory, scope, context_for):
        """Test subscription, resource group and reference fields."""
        vault = vault_factory("kv-prod-01", resource_group="rg-secrets")
        client = fake_client(vaults=[vault])
        result = KeyVaultScanner(client).scan(scope, context_for(client))[0]

        assert result.subscription_id == scope.subscription_id
        assert result.resource_group == "rg-secrets"
        assert result.resource_id == vault.id
        assert result.resource_type == "Microsoft.KeyVault/vaults"
        assert result.reference_url.startswith("https://")

    def test_resource_group_scope(self, fake_client, vault_factory, context_for, scope):
        """Only vaults in the scoped resource group are evaluated."""
        client = fake_client(vaults=[
            vault_factory("kv-a", resource_group="rg-a"),
            vault_factory("kv-b", resource_group="rg-b"),
        ])
        rg_scope = ScanScope(scope.subscription_id, "rg-b")

        results = KeyVaultScanner(client).scan(rg_scope, context_for(client))

        assert {r.resource_name for r in results} == {"kv-b"}

    def test_empty_subscription(self, fake_client, scope, context_for):
        """No vaults produce no results."""
        client = fake_client()
        assert KeyVaultScanner(client).scan(scope, context_for(client)) == []

    def test_fetch_failure_raises(self, fake_client, scope, context_for):
        """SDK errors while listing become ResourceFetchError."""
        client = fake_client(fetch_errors={"kv": RuntimeError("403 Forbidden")})

        with pytest.raises(ResourceFetchError) as exc_info:
            KeyVaultScanner(client).scan(scope, context_for(client))

        assert exc_info.value.resource_type == "Microsoft.KeyVault/vaults"
        assert "403 Forbidden" in exc_info.value.message
