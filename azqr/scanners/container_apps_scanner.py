"""
Container Apps Scanner Module
=============================

Audits Azure Container Apps managed environments.

Classes
-------
ContainerAppsScanner
    Scanner for ``Microsoft.App/managedEnvironments``.

Rules
-----
=======  ==================  ==========================================
cae-001  DiagnosticSettings  Diagnostic settings enabled
cae-002  AvailabilityZones   Environment is zone redundant
cae-003  SLA                 Published SLA (platform fact)
cae-004  Private             Internal-only VNet integration
cae-005  CAF                 Name starts with ``cae``
=======  ==================  ==========================================
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from azure.mgmt.appcontainers.models import ManagedEnvironment

from azqr.core.base_scanner import BaseScanner
from azqr.core.context import ScanScope
from azqr.core.rules import Rule, RuleKind, Severity, format_bool

# Module logger
logger = logging.getLogger(__name__)

RESOURCE_TYPE = "Microsoft.App/managedEnvironments"
CAF_PREFIX = "cae"


class ContainerAppsScanner(BaseScanner[ManagedEnvironment]):
    """Scanner for Azure Container Apps managed environments."""

    def get_resource_type(self) -> str:
        return RESOURCE_TYPE

    def get_all_resources(self, scope: ScanScope) -> List[ManagedEnvironment]:
        client = self.azure_client.get_container_apps_client(scope.subscription_id)
        if scope.resource_group:
            environments = client.managed_environments.list_by_resource_group(
                scope.resource_group
            )
        else:
            environments = client.managed_environments.list_by_subscription()
        return list(environments)

    def build_rules(self) -> Dict[str, Rule]:
        return {
            "DiagnosticSettings": Rule(
                id="cae-001",
                category="Monitoring and Logging",
                subcategory="Diagnostic Logs",
                description="Container Apps Environment should have diagnostic settings enabled",
                severity=Severity.MEDIUM,
                evaluate=self.check_diagnostic_settings,
                url="https://learn.microsoft.com/en-us/azure/container-apps/log-options",
                resource_type=RESOURCE_TYPE,
            ),
            "AvailabilityZones": Rule(
                id="cae-002",
                category="High Availability and Resiliency",
                subcategory="Availability Zones",
                description="Container Apps Environment should have availability zones enabled",
                severity=Severity.HIGH,
                evaluate=_check_zone_redundant,
                url="https://learn.microsoft.com/en-us/azure/container-apps/disaster-recovery",
                resource_type=RESOURCE_TYPE,
            ),
            "SLA": Rule(
                id="cae-003",
                category="High Availability and Resiliency",
                subcategory="SLA",
                description="Container Apps Environment should have a SLA",
                severity=Severity.HIGH,
                evaluate=lambda environment, context: (False, "99.95%"),
                url="https://azure.microsoft.com/support/legal/sla/container-apps/v1_0/",
                resource_type=RESOURCE_TYPE,
                kind=RuleKind.INFORMATIONAL,
            ),
            "Private": Rule(
                id="cae-004",
                category="Security",
                subcategory="Networking",
                description="Container Apps Environment should have network isolation",
                severity=Severity.HIGH,
                evaluate=_check_internal,
                url="https://learn.microsoft.com/en-us/azure/container-apps/vnet-custom-internal",
                resource_type=RESOURCE_TYPE,
            ),
            "CAF": Rule(
                id="cae-005",
                category="Governance",
                subcategory="Naming Convention (CAF)",
                description="Container Apps Environment Name should comply with naming conventions",
                severity=Severity.LOW,
                evaluate=lambda environment, context: self.check_name_prefix(environment.name, CAF_PREFIX),
                url="https://learn.microsoft.com/en-us/azure/cloud-adoption-framework/ready/azure-best-practices/resource-abbreviations",
                resource_type=RESOURCE_TYPE,
            ),
        }


def _check_zone_redundant(environment: Any, context: Any):
    zone_redundant = bool(environment.zone_redundant)
    return not zone_redundant, format_bool(zone_redundant)


def _check_internal(environment: Any, context: Any):
    vnet = environment.vnet_configuration
    internal = bool(vnet and vnet.internal)
    return not internal, format_bool(internal)
