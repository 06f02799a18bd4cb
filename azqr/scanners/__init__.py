"""
Resource Scanners
=================

This module provides scanner implementations for the Azure resource types
Azqr audits.

Each scanner owns one resource type: it enumerates the resources of that
type in a scope and evaluates its fixed rule catalog against each of them.

Available Scanners
------------------
KeyVaultScanner
    Audits Key Vaults (``kv``).
ApplicationGatewayScanner
    Audits Application Gateways (``agw``).
ContainerAppsScanner
    Audits Container Apps managed environments (``cae``).
AppServicePlanScanner
    Audits App Service plans (``plan``).

Example
-------
>>> from azqr.scanners import build_scanners
>>> from azqr.core import AzureClient, ScanOrchestrator, ScanScope
>>>
>>> client = AzureClient()
>>> scanners = build_scanners(client, ["kv", "plan"])
>>> orchestrator = ScanOrchestrator(client.has_diagnostic_settings)
>>> report = orchestrator.run(scanners, ScanScope(subscription_id))

Adding New Scanners
-------------------
To add a new scanner:

1. Create a new file in this directory (e.g., `redis_scanner.py`)
2. Implement a class extending `BaseScanner`
3. Implement the required abstract methods
4. Add it to ``SCANNERS`` below under its short service key

See Also
--------
azqr.core.base_scanner : Base class for all scanners.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Type

from azqr.core.base_scanner import BaseScanner
from azqr.scanners.app_gateway_scanner import ApplicationGatewayScanner
from azqr.scanners.app_service_plan_scanner import AppServicePlanScanner
from azqr.scanners.container_apps_scanner import ContainerAppsScanner
from azqr.scanners.keyvault_scanner import KeyVaultScanner

# Service key -> scanner class, in default invocation order
SCANNERS: Dict[str, Type[BaseScanner]] = {
    "kv": KeyVaultScanner,
    "agw": ApplicationGatewayScanner,
    "cae": ContainerAppsScanner,
    "plan": AppServicePlanScanner,
}


def build_scanners(
    azure_client: Any, keys: Optional[Sequence[str]] = None
) -> List[BaseScanner]:
    """
    Instantiate scanners for the selected services.

    Parameters
    ----------
    azure_client : AzureClient
        Client shared by every scanner.
    keys : sequence of str, optional
        Service keys from ``SCANNERS``, in the desired invocation order.
        All services, in registry order, when omitted.

    Returns
    -------
    list of BaseScanner
        One scanner per key. Repeated keys are instantiated once.

    Raises
    ------
    KeyError
        If a key names no known service.
    """
    selected = list(SCANNERS) if keys is None else list(dict.fromkeys(keys))
    unknown = [k for k in selected if k not in SCANNERS]
    if unknown:
        raise KeyError(f"Unknown service(s): {', '.join(unknown)}")
    return [SCANNERS[key](azure_client) for key in selected]


__all__ = [
    "SCANNERS",
    "build_scanners",
    "ApplicationGatewayScanner",
    "AppServicePlanScanner",
    "ContainerAppsScanner",
    "KeyVaultScanner",
]
