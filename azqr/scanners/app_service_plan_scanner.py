"""
App Service Plan Scanner Module
===============================

Audits Azure App Service plans (``Microsoft.Web/serverfarms``).

Classes
-------
AppServicePlanScanner
    Scanner for App Service plans.

Rules
-----
========  ==================  ==========================================
plan-001  DiagnosticSettings  Diagnostic settings enabled
plan-002  AvailabilityZones   Plan is zone redundant
plan-003  SLA                 SLA of the plan's pricing tier
plan-004  SKU                 Plan SKU
plan-005  CAF                 Name starts with ``asp``
========  ==================  ==========================================

Notes
-----
Free and Shared tiers carry no SLA, so plan-003 is the one SLA rule that
depends on the resource.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from azure.mgmt.web.models import AppServicePlan

from azqr.core.base_scanner import BaseScanner
from azqr.core.context import ScanScope
from azqr.core.rules import Rule, Severity, enum_text, format_bool

# Module logger
logger = logging.getLogger(__name__)

RESOURCE_TYPE = "Microsoft.Web/serverfarms"
CAF_PREFIX = "asp"

TIERS_WITHOUT_SLA = ("free", "shared")


class AppServicePlanScanner(BaseScanner[AppServicePlan]):
    """Scanner for Azure App Service plans."""

    def get_resource_type(self) -> str:
        return RESOURCE_TYPE

    def get_all_resources(self, scope: ScanScope) -> List[AppServicePlan]:
        client = self.azure_client.get_web_client(scope.subscription_id)
        if scope.resource_group:
            plans = client.app_service_plans.list_by_resource_group(scope.resource_group)
        else:
            plans = client.app_service_plans.list()
        return list(plans)

    def build_rules(self) -> Dict[str, Rule]:
        return {
            "DiagnosticSettings": Rule(
                id="plan-001",
                category="Monitoring and Logging",
                subcategory="Diagnostic Logs",
                description="App Service Plan should have diagnostic settings enabled",
                severity=Severity.MEDIUM,
                evaluate=self.check_diagnostic_settings,
                url="https://learn.microsoft.com/en-us/azure/app-service/troubleshoot-diagnostic-logs",
                resource_type=RESOURCE_TYPE,
            ),
            "AvailabilityZones": Rule(
                id="plan-002",
                category="High Availability and Resiliency",
                subcategory="Availability Zones",
                description="App Service Plan should have availability zones enabled",
                severity=Severity.HIGH,
                evaluate=_check_zone_redundant,
                url="https://learn.microsoft.com/en-us/azure/reliability/migrate-app-service",
                resource_type=RESOURCE_TYPE,
            ),
            "SLA": Rule(
                id="plan-003",
                category="High Availability and Resiliency",
                subcategory="SLA",
                description="App Service Plan should have a SLA",
                severity=Severity.HIGH,
                evaluate=_check_sla,
                url="https://www.azure.cn/en-us/support/sla/app-service/",
                resource_type=RESOURCE_TYPE,
            ),
            "SKU": Rule(
                id="plan-004",
                category="High Availability and Resiliency",
                subcategory="SKU",
                description="App Service Plan SKU",
                severity=Severity.HIGH,
                evaluate=lambda plan, context: (False, enum_text(plan.sku.name)),
                url="https://learn.microsoft.com/en-us/azure/app-service/overview-hosting-plans",
                resource_type=RESOURCE_TYPE,
            ),
            "CAF": Rule(
                id="plan-005",
                category="Governance",
                subcategory="Naming Convention (CAF)",
                description="App Service Plan Name should comply with naming conventions",
                severity=Severity.LOW,
                evaluate=lambda plan, context: self.check_name_prefix(plan.name, CAF_PREFIX),
                url="https://learn.microsoft.com/en-us/azure/cloud-adoption-framework/ready/azure-best-practices/resource-abbreviations",
                resource_type=RESOURCE_TYPE,
            ),
        }


def _check_zone_redundant(plan: Any, context: Any):
    zone_redundant = bool(plan.zone_redundant)
    return not zone_redundant, format_bool(zone_redundant)


def _check_sla(plan: Any, context: Any):
    tier = enum_text(plan.sku.tier).lower()
    if tier in TIERS_WITHOUT_SLA:
        return True, "None"
    return False, "99.95%"
