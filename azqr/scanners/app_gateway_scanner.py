"""
Application Gateway Scanner Module
==================================

Audits Azure Application Gateways against the gateway best-practice rules.

Classes
-------
ApplicationGatewayScanner
    Scanner for ``Microsoft.Network/applicationGateways``.

Rules
-----
=======  ==================  ==========================================
agw-001  DiagnosticSettings  Diagnostic settings enabled
agw-002  AvailabilityZones   Deployed across availability zones
agw-003  SLA                 Published SLA (platform fact)
agw-004  SKU                 Gateway SKU
agw-005  CAF                 Name starts with ``agw``
agw-006  WAF                 Web application firewall enabled
=======  ==================  ==========================================
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from azure.mgmt.network.models import ApplicationGateway

from azqr.core.base_scanner import BaseScanner
from azqr.core.context import ScanScope
from azqr.core.rules import Rule, RuleKind, Severity, enum_text, format_bool

# Module logger
logger = logging.getLogger(__name__)

RESOURCE_TYPE = "Microsoft.Network/applicationGateways"
CAF_PREFIX = "agw"


class ApplicationGatewayScanner(BaseScanner[ApplicationGateway]):
    """Scanner for Azure Application Gateways."""

    def get_resource_type(self) -> str:
        return RESOURCE_TYPE

    def get_all_resources(self, scope: ScanScope) -> List[ApplicationGateway]:
        client = self.azure_client.get_network_client(scope.subscription_id)
        if scope.resource_group:
            gateways = client.application_gateways.list(scope.resource_group)
        else:
            gateways = client.application_gateways.list_all()
        return list(gateways)

    def build_rules(self) -> Dict[str, Rule]:
        return {
            "DiagnosticSettings": Rule(
                id="agw-001",
                category="Monitoring and Logging",
                subcategory="Diagnostic Logs",
                description="Application Gateway should have diagnostic settings enabled",
                severity=Severity.MEDIUM,
                evaluate=self.check_diagnostic_settings,
                url="https://learn.microsoft.com/en-us/azure/application-gateway/application-gateway-diagnostics#diagnostic-logging",
                resource_type=RESOURCE_TYPE,
            ),
            "AvailabilityZones": Rule(
                id="agw-002",
                category="High Availability and Resiliency",
                subcategory="Availability Zones",
                description="Application Gateway should have availability zones enabled",
                severity=Severity.HIGH,
                evaluate=_check_zones,
                url="https://learn.microsoft.com/en-us/azure/application-gateway/application-gateway-autoscaling-zone-redundant",
                resource_type=RESOURCE_TYPE,
            ),
            "SLA": Rule(
                id="agw-003",
                category="High Availability and Resiliency",
                subcategory="SLA",
                description="Application Gateway should have a SLA",
                severity=Severity.HIGH,
                evaluate=lambda gateway, context: (False, "99.95%"),
                url="https://www.azure.cn/en-us/support/sla/application-gateway/",
                resource_type=RESOURCE_TYPE,
                kind=RuleKind.INFORMATIONAL,
            ),
            "SKU": Rule(
                id="agw-004",
                category="High Availability and Resiliency",
                subcategory="SKU",
                description="Application Gateway SKU",
                severity=Severity.HIGH,
                evaluate=lambda gateway, context: (False, enum_text(gateway.sku.name)),
                url="https://learn.microsoft.com/en-us/azure/application-gateway/understanding-pricing",
                resource_type=RESOURCE_TYPE,
            ),
            "CAF": Rule(
                id="agw-005",
                category="Governance",
                subcategory="Naming Convention (CAF)",
                description="Application Gateway Name should comply with naming conventions",
                severity=Severity.LOW,
                evaluate=lambda gateway, context: self.check_name_prefix(gateway.name, CAF_PREFIX),
                url="https://learn.microsoft.com/en-us/azure/cloud-adoption-framework/ready/azure-best-practices/resource-abbreviations",
                resource_type=RESOURCE_TYPE,
            ),
            "WAF": Rule(
                id="agw-006",
                category="Security",
                subcategory="Web Application Firewall",
                description="Application Gateway should have a web application firewall enabled",
                severity=Severity.HIGH,
                evaluate=_check_waf,
                url="https://learn.microsoft.com/en-us/azure/web-application-firewall/ag/ag-overview",
                resource_type=RESOURCE_TYPE,
            ),
        }


def _check_zones(gateway: Any, context: Any):
    zonal = len(gateway.zones or []) > 0
    return not zonal, format_bool(zonal)


def _check_waf(gateway: Any, context: Any):
    config = gateway.web_application_firewall_configuration
    enabled = gateway.firewall_policy is not None or bool(config and config.enabled)
    return not enabled, format_bool(enabled)
