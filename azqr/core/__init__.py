"""
Core Infrastructure Components
==============================

This module provides the foundational components for Azqr:

- :class:`AzureClient` - Manages the Azure credential and management clients
- :class:`BaseScanner` - Abstract base class for resource scanners
- :class:`ScanOrchestrator` - Runs scanners and aggregates their results
- Rule model, per-scan context, and the exception hierarchy

Classes
-------
AzureClient
    Thread-safe Azure client factory with retry settings and credential
    management.
Rule
    One best-practice check bound to a resource type.
RuleCatalog
    Registry of every rule, unique by id.
ScanScope
    Subscription and optional resource group to scan.
ScanContext
    Per-scan shared state: diagnostics cache and cancellation signal.
BaseScanner
    Abstract base class defining the scanner interface.
Result
    One evaluated (resource, rule) outcome.
ScanOrchestrator
    Runs scanners in parallel over one scope.
ScanReport
    Aggregated results of one scan.

Exceptions
----------
AzqrError
    Base exception for all Azqr errors.
AzureClientError
    Base exception for Azure client errors.
CredentialsError
    Raised when credentials are invalid or missing.
ServiceError
    Raised when a management API call fails.
ScannerError
    Base exception for scanner errors.
DiagnosticsLookupError
    Raised when the diagnostic settings query fails.
InvalidScopeError
    Raised when a scan scope is malformed.
RuleRegistrationError
    Raised when rule catalogs conflict.

Example
-------
>>> from azqr.core import AzureClient, ScanOrchestrator, ScanScope
>>>
>>> client = AzureClient()
>>> scope = ScanScope(subscription_id, resource_group="rg-prod")
>>> orchestrator = ScanOrchestrator(client.has_diagnostic_settings, max_workers=4)

See Also
--------
azqr.scanners : Resource scanner implementations.
azqr.reporters : Output formatters.
"""

from azqr.core.azure_client import AzureClient
from azqr.core.base_scanner import BaseScanner, Result
from azqr.core.context import DiagnosticsCache, ScanContext, ScanScope
from azqr.core.exceptions import (
    AzqrError,
    AzureClientError,
    CredentialsError,
    DiagnosticsLookupError,
    InvalidScopeError,
    ResourceFetchError,
    RuleRegistrationError,
    ScanCancelledError,
    ScannerError,
    ServiceError,
)
from azqr.core.orchestrator import ScanOrchestrator, ScanReport
from azqr.core.rules import Rule, RuleCatalog, RuleKind, Severity

__all__ = [
    # Client
    "AzureClient",
    # Rules
    "Rule",
    "RuleCatalog",
    "RuleKind",
    "Severity",
    # Scan state
    "ScanScope",
    "ScanContext",
    "DiagnosticsCache",
    # Scanner base
    "BaseScanner",
    "Result",
    # Orchestration
    "ScanOrchestrator",
    "ScanReport",
    # Exceptions - Base
    "AzqrError",
    # Exceptions - Azure Client
    "AzureClientError",
    "CredentialsError",
    "ServiceError",
    # Exceptions - Scanner
    "ScannerError",
    "ResourceFetchError",
    "ScanCancelledError",
    # Exceptions - Evaluation
    "DiagnosticsLookupError",
    "InvalidScopeError",
    "RuleRegistrationError",
]
