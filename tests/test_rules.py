"""
Tests for the rule model and the rule catalog.
"""

import pytest

from azqr.core.exceptions import RuleRegistrationError
from azqr.core.rules import Rule, RuleCatalog, RuleKind, Severity, enum_text, format_bool
from azqr.scanners import SCANNERS, build_scanners
from azqr.scanners.keyvault_scanner import KeyVaultScanner


def _rule(rule_id="x-001", resource_type="Microsoft.KeyVault/vaults", **kwargs):
    defaults = dict(
        id=rule_id,
        category="Security",
        subcategory="Networking",
        description="Test rule",
        severity=Severity.LOW,
        evaluate=lambda resource, context: (False, "true"),
        url="https://example.com",
        resource_type=resource_type,
    )
    defaults.update(kwargs)
    return Rule(**defaults)


class _StubScanner:
    def __init__(self, resource_type, rules):
        self._resource_type = resource_type
        self._rules = rules

    def get_resource_type(self):
        return self._resource_type

    def get_rules(self):
        return dict(self._rules)


class TestRule:
    """Tests for the Rule dataclass."""

    def test_default_kind_is_computed(self):
        assert _rule().kind == RuleKind.COMPUTED
        assert not _rule().is_informational

    def test_empty_id_rejected(self):
        with pytest.raises(RuleRegistrationError):
            _rule(rule_id="")

    def test_invalid_severity_rejected(self):
        with pytest.raises(RuleRegistrationError):
            _rule(severity="Critical")

    def test_to_dict_omits_evaluate(self):
        data = _rule(kind=RuleKind.INFORMATIONAL).to_dict()
        assert data["id"] == "x-001"
        assert data["severity"] == "Low"
        assert data["kind"] == "informational"
        assert "evaluate" not in data


class TestEvidenceFormatting:
    """Tests for evidence helpers."""

    def test_format_bool(self):
        assert format_bool(True) == "true"
        assert format_bool(False) == "false"

    def test_enum_text(self):
        assert enum_text(Severity.HIGH) == "High"
        assert enum_text("standard") == "standard"
        assert enum_text(None) == ""


class TestRuleCatalog:
    """Tests for RuleCatalog class."""

    def test_full_catalog_ids_are_unique(self, fake_client):
        """Every rule id across all scanners is distinct."""
        scanners = build_scanners(fake_client())
        catalog = RuleCatalog.from_scanners(scanners)

        ids = [rule.id for rule in catalog]
        assert len(ids) == len(set(ids))
        assert len(catalog) == sum(len(s.get_rules()) for s in scanners)

    def test_lookup(self, fake_client):
        catalog = RuleCatalog.from_scanners(build_scanners(fake_client()))

        assert "kv-004" in catalog
        assert catalog.get("kv-004").subcategory == "Networking"
        assert catalog.name_of("kv-004") == "Private"
        assert len(catalog.for_resource_type("Microsoft.KeyVault/vaults")) == 6

        with pytest.raises(KeyError):
            catalog.get("kv-999")

    def test_iteration_follows_registration_order(self, fake_client):
        catalog = RuleCatalog.from_scanners(build_scanners(fake_client(), ["plan", "kv"]))
        ids = [rule.id for rule in catalog]
        assert ids[0] == "plan-001"
        assert ids[-1] == "kv-006"

    def test_duplicate_id_rejected(self):
        first = _StubScanner("A/a", {"One": _rule("dup-001", "A/a")})
        second = _StubScanner("B/b", {"Two": _rule("dup-001", "B/b")})

        with pytest.raises(RuleRegistrationError, match="Duplicate rule id"):
            RuleCatalog.from_scanners([first, second])

    def test_rule_bound_to_other_type_rejected(self):
        """A rule targeting another resource type cannot be registered."""
        scanner = _StubScanner("A/a", {"One": _rule("a-001", "B/b")})

        with pytest.raises(RuleRegistrationError, match="targets B/b"):
            RuleCatalog.from_scanners([scanner])

    def test_same_scanner_twice_rejected(self, fake_client):
        client = fake_client()
        with pytest.raises(RuleRegistrationError):
            RuleCatalog.from_scanners([KeyVaultScanner(client), KeyVaultScanner(client)])


class TestScannerRegistry:
    """Tests for the explicit scanner registry."""

    def test_default_order(self, fake_client):
        scanners = build_scanners(fake_client())
        assert [s.get_resource_type() for s in scanners] == [
            "Microsoft.KeyVault/vaults",
            "Microsoft.Network/applicationGateways",
            "Microsoft.App/managedEnvironments",
            "Microsoft.Web/serverfarms",
        ]
        assert list(SCANNERS) == ["kv", "agw", "cae", "plan"]

    def test_selection_keeps_order_and_dedupes(self, fake_client):
        scanners = build_scanners(fake_client(), ["plan", "kv", "plan"])
        assert [type(s).__name__ for s in scanners] == [
            "AppServicePlanScanner", "KeyVaultScanner",
        ]

    def test_unknown_key(self, fake_client):
        with pytest.raises(KeyError):
            build_scanners(fake_client(), ["redis"])
