"""
Azqr: Azure Quick Review
========================

A modular tool that scans Azure subscriptions and reports, per resource,
whether it follows a catalog of best-practice rules (diagnostics,
availability zones, SLA, private networking, SKU, naming conventions).

Modules
-------
core
    Core infrastructure components (Azure client, rules, scan context,
    base scanner, orchestrator)
scanners
    Resource-type scanner implementations
reporters
    Output formatters (CLI, CSV, JSON)

Example
-------
>>> from azqr.core import AzureClient, ScanOrchestrator, ScanScope
>>> from azqr.scanners import build_scanners
>>>
>>> client = AzureClient()
>>> orchestrator = ScanOrchestrator(client.has_diagnostic_settings)
>>> report = orchestrator.run(build_scanners(client), ScanScope(subscription_id))
>>> print(f"Found {len(report.violated)} violations")

Notes
-----
Requires Azure credentials resolvable by ``DefaultAzureCredential``:
- Environment variables (AZURE_CLIENT_ID, AZURE_TENANT_ID, AZURE_CLIENT_SECRET)
- Managed identity (when running on Azure infrastructure)
- Azure CLI login (``az login``)

See Also
--------
azure-identity : Azure credential providers for Python
"""

__version__ = "0.1.0"
__author__ = "Azqr Team"
__license__ = "MIT"

# Public API
from azqr.core.azure_client import AzureClient
from azqr.core.base_scanner import BaseScanner, Result
from azqr.core.context import ScanContext, ScanScope
from azqr.core.exceptions import AzqrError, AzureClientError
from azqr.core.orchestrator import ScanOrchestrator, ScanReport

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Core classes
    "AzureClient",
    "AzureClientError",
    "AzqrError",
    "BaseScanner",
    "Result",
    "ScanContext",
    "ScanScope",
    "ScanOrchestrator",
    "ScanReport",
]
