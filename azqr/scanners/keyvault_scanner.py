"""
Key Vault Scanner Module
========================

Audits Azure Key Vaults against the Key Vault best-practice rules.

Classes
-------
KeyVaultScanner
    Scanner for ``Microsoft.KeyVault/vaults``.

Example
-------
>>> from azqr.scanners import KeyVaultScanner
>>> from azqr.core import AzureClient, ScanContext, ScanScope
>>>
>>> client = AzureClient()
>>> scanner = KeyVaultScanner(client)
>>> scope = ScanScope("00000000-0000-0000-0000-000000000000")
>>> results = scanner.scan(scope, ScanContext(client.has_diagnostic_settings))

Rules
-----
======  ==================  ==========================================
kv-001  DiagnosticSettings  Diagnostic settings enabled
kv-002  AvailabilityZones   Zone redundancy (platform fact)
kv-003  SLA                 Published SLA (platform fact)
kv-004  Private             Private endpoint connections exist
kv-005  SKU                 Vault SKU
kv-006  CAF                 Name starts with ``kv``
======  ==================  ==========================================
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from azure.mgmt.keyvault.models import Vault

from azqr.core.base_scanner import BaseScanner
from azqr.core.context import ScanScope
from azqr.core.rules import Rule, RuleKind, Severity, enum_text, format_bool

# Module logger
logger = logging.getLogger(__name__)

RESOURCE_TYPE = "Microsoft.KeyVault/vaults"
CAF_PREFIX = "kv"


class KeyVaultScanner(BaseScanner[Vault]):
    """
    Scanner for Azure Key Vaults.

    Parameters
    ----------
    azure_client : AzureClient
        Client factory used to reach the Key Vault management API.

    Examples
    --------
    >>> scanner = KeyVaultScanner(client)
    >>> sorted(scanner.get_rules())
    ['AvailabilityZones', 'CAF', 'DiagnosticSettings', 'Private', 'SKU', 'SLA']
    """

    def get_resource_type(self) -> str:
        return RESOURCE_TYPE

    def get_all_resources(self, scope: ScanScope) -> List[Vault]:
        """
        List vaults in the scope.

        Lists by resource group when the scope names one, otherwise across
        the whole subscription.
        """
        client = self.azure_client.get_keyvault_client(scope.subscription_id)
        if scope.resource_group:
            vaults = client.vaults.list_by_resource_group(scope.resource_group)
        else:
            vaults = client.vaults.list_by_subscription()
        return list(vaults)

    def build_rules(self) -> Dict[str, Rule]:
        return {
            "DiagnosticSettings": Rule(
                id="kv-001",
                category="Monitoring and Logging",
                subcategory="Diagnostic Logs",
                description="Key Vault should have diagnostic settings enabled",
                severity=Severity.MEDIUM,
                evaluate=self.check_diagnostic_settings,
                url="https://learn.microsoft.com/en-us/azure/key-vault/general/monitor-key-vault",
                resource_type=RESOURCE_TYPE,
            ),
            "AvailabilityZones": Rule(
                id="kv-002",
                category="High Availability and Resiliency",
                subcategory="Availability Zones",
                description="Key Vault should have availability zones enabled",
                severity=Severity.HIGH,
                # Zone redundancy is built into the service in every region
                evaluate=lambda vault, context: (False, format_bool(True)),
                url="https://learn.microsoft.com/en-us/azure/key-vault/general/disaster-recovery-guidance",
                resource_type=RESOURCE_TYPE,
                kind=RuleKind.INFORMATIONAL,
            ),
            "SLA": Rule(
                id="kv-003",
                category="High Availability and Resiliency",
                subcategory="SLA",
                description="Key Vault should have a SLA",
                severity=Severity.HIGH,
                evaluate=lambda vault, context: (False, "99.99%"),
                url="https://www.azure.cn/en-us/support/sla/key-vault/",
                resource_type=RESOURCE_TYPE,
                kind=RuleKind.INFORMATIONAL,
            ),
            "Private": Rule(
                id="kv-004",
                category="Security",
                subcategory="Networking",
                description="Key Vault should have private endpoints enabled",
                severity=Severity.HIGH,
                evaluate=_check_private_endpoints,
                url="https://learn.microsoft.com/en-us/azure/key-vault/general/private-link-service",
                resource_type=RESOURCE_TYPE,
            ),
            "SKU": Rule(
                id="kv-005",
                category="High Availability and Resiliency",
                subcategory="SKU",
                description="Key Vault SKU",
                severity=Severity.HIGH,
                evaluate=lambda vault, context: (False, enum_text(vault.properties.sku.name)),
                url="https://azure.microsoft.com/en-us/pricing/details/key-vault/",
                resource_type=RESOURCE_TYPE,
            ),
            "CAF": Rule(
                id="kv-006",
                category="Governance",
                subcategory="Naming Convention (CAF)",
                description="Key Vault Name should comply with naming conventions",
                severity=Severity.LOW,
                evaluate=lambda vault, context: self.check_name_prefix(vault.name, CAF_PREFIX),
                url="https://learn.microsoft.com/en-us/azure/cloud-adoption-framework/ready/azure-best-practices/resource-abbreviations",
                resource_type=RESOURCE_TYPE,
            ),
        }


def _check_private_endpoints(vault: Any, context: Any):
    connections = vault.properties.private_endpoint_connections or []
    has_private = len(connections) > 0
    return not has_private, format_bool(has_private)
