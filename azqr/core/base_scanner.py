"""
Base Scanner Module
===================

Provides the abstract base class for all resource-type scanners in Azqr
and the result row every rule evaluation produces.

A scanner owns one resource type: a fixed rule catalog and the call that
enumerates resources of that type in a scope. ``BaseScanner.scan`` applies
every rule to every resource and never drops a rule: failures inside a
rule become undetermined results carrying the error as evidence.

Classes
-------
Result
    One evaluated (resource, rule) outcome.
BaseScanner
    Abstract base class for resource-type scanners.

Example
-------
>>> from azqr.core.base_scanner import BaseScanner
>>>
>>> class RedisScanner(BaseScanner):
...     def get_resource_type(self) -> str:
...         return "Microsoft.Cache/redis"
...
...     def build_rules(self):
...         return {"SLA": Rule(id="redis-001", ...)}
...
...     def get_all_resources(self, scope):
...         client = self.azure_client.get_redis_client(scope.subscription_id)
...         return list(client.redis.list_by_subscription())

See Also
--------
KeyVaultScanner : Concrete implementation for Key Vault.
ScanOrchestrator : Runs several scanners and aggregates their results.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from azqr.core.context import ScanContext, ScanScope
from azqr.core.exceptions import (
    DiagnosticsLookupError,
    ResourceFetchError,
    ScanCancelledError,
)
from azqr.core.rules import Rule, RuleKind, Severity, format_bool

# Module logger
logger = logging.getLogger(__name__)

ResourceT = TypeVar("ResourceT")

_RESOURCE_GROUP_RE = re.compile(r"/resourceGroups/([^/]+)", re.IGNORECASE)


def parse_resource_group(resource_id: Optional[str]) -> str:
    """
    Extract the resource group name from an ARM resource id.

    Returns an empty string when the id is missing or has no resource
    group segment.
    """
    if not resource_id:
        return ""
    match = _RESOURCE_GROUP_RE.search(resource_id)
    return match.group(1) if match else ""


@dataclass(frozen=True)
class Result:
    """
    One evaluated (resource, rule) outcome.

    Produced by evaluation and never mutated afterwards; consumed by the
    reporters.

    Parameters
    ----------
    rule_id : str
        Id of the rule that was applied.
    category : str
        Rule category.
    subcategory : str
        Rule subcategory.
    description : str
        Rule description.
    severity : Severity
        Rule severity.
    resource_id : str
        ARM id of the evaluated resource (empty if the fetch returned none).
    resource_name : str
        Name of the evaluated resource.
    resource_type : str
        Resource type of the scanner.
    violated : bool
        True when the best practice is not met. Always False when
        ``undetermined`` is set.
    evidence : str
        Observed value backing the outcome, or the error that prevented
        evaluation.
    reference_url : str
        Documentation link of the rule.
    subscription_id : str, default=""
        Subscription the resource was enumerated in.
    resource_group : str, default=""
        Resource group parsed from the resource id.
    undetermined : bool, default=False
        True when the rule could not be evaluated.
    kind : RuleKind, default=RuleKind.COMPUTED
        Kind of the rule that produced the row.

    Examples
    --------
    >>> result = scanner.evaluate_rule(rule, vault, context, scope)
    >>> result.status
    'Violated'
    >>> result.evidence
    'false'
    """

    rule_id: str
    category: str
    subcategory: str
    description: str
    severity: Severity
    resource_id: str
    resource_name: str
    resource_type: str
    violated: bool
    evidence: str
    reference_url: str
    subscription_id: str = ""
    resource_group: str = ""
    undetermined: bool = False
    kind: RuleKind = RuleKind.COMPUTED

    @property
    def status(self) -> str:
        """One of ``Passed``, ``Violated`` or ``Undetermined``."""
        if self.undetermined:
            return "Undetermined"
        return "Violated" if self.violated else "Passed"

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the result to a dictionary for serialization.

        Returns
        -------
        dict
            Dictionary representation suitable for JSON serialization.
        """
        return {
            "rule_id": self.rule_id,
            "category": self.category,
            "subcategory": self.subcategory,
            "description": self.description,
            "severity": self.severity.value,
            "subscription_id": self.subscription_id,
            "resource_group": self.resource_group,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "resource_name": self.resource_name,
            "violated": self.violated,
            "undetermined": self.undetermined,
            "status": self.status,
            "evidence": self.evidence,
            "reference_url": self.reference_url,
            "kind": self.kind.value,
        }


class BaseScanner(ABC, Generic[ResourceT]):
    """
    Abstract base class for all resource-type scanners.

    Subclasses bind the scanner to one resource type, build its rule
    catalog, and enumerate resources through the Azure client. The rule
    evaluation loop lives here and is shared by every scanner.

    Parameters
    ----------
    azure_client : AzureClient
        Client factory used to reach the management APIs.

    Attributes
    ----------
    azure_client : AzureClient
        The Azure client instance.

    Methods
    -------
    get_resource_type()
        Return the ARM resource type identifier (abstract).
    build_rules()
        Build the rule catalog (abstract, called once).
    get_all_resources(scope)
        Enumerate resources in a scope (abstract).
    get_rules()
        Return the rule catalog.
    scan(scope, context)
        Evaluate every rule against every resource.

    Notes
    -----
    Scanners hold no state besides their client and fixed rule catalog;
    one instance can serve several scans, including concurrent ones.

    See Also
    --------
    Result : Row type produced by ``scan``.
    RuleCatalog : Validates rule ids across scanners.
    """

    def __init__(self, azure_client: Any) -> None:
        self.azure_client = azure_client
        self._rules: Optional[Dict[str, Rule]] = None
        logger.debug(f"Initialized {self.__class__.__name__}")

    @abstractmethod
    def get_resource_type(self) -> str:
        """
        Get the ARM resource type this scanner handles.

        Returns
        -------
        str
            Resource type, e.g. ``'Microsoft.KeyVault/vaults'``.
        """

    @abstractmethod
    def build_rules(self) -> Dict[str, Rule]:
        """
        Build the rule catalog, keyed by rule name.

        Called once per scanner instance; the result is returned by
        ``get_rules`` on every later call.
        """

    @abstractmethod
    def get_all_resources(self, scope: ScanScope) -> List[ResourceT]:
        """
        Enumerate resources of this type within a scope.

        Parameters
        ----------
        scope : ScanScope
            Subscription and optional resource group.

        Returns
        -------
        list
            Resources in the order the management API returned them.

        Raises
        ------
        ResourceFetchError
            If the management API call fails.
        """

    def get_rules(self) -> Dict[str, Rule]:
        """
        Return the rule catalog, keyed by rule name.

        Returns
        -------
        dict
            The same rules, in the same order, on every call.
        """
        if self._rules is None:
            self._rules = self.build_rules()
        return dict(self._rules)

    def get_resource_id(self, resource: ResourceT) -> str:
        """ARM id of a resource, or an empty string if the fetch omitted it."""
        return getattr(resource, "id", None) or ""

    def get_resource_name(self, resource: ResourceT) -> str:
        """Name of a resource, or an empty string if the fetch omitted it."""
        return getattr(resource, "name", None) or ""

    def check_diagnostic_settings(
        self, resource: ResourceT, context: ScanContext
    ) -> Tuple[bool, str]:
        """
        Shared evaluate body of every scanner's diagnostic settings rule.

        Violated when the resource has no diagnostic settings; the evidence
        is whether settings were found.
        """
        has_diagnostics = context.has_diagnostics(self.get_resource_id(resource))
        return not has_diagnostics, format_bool(has_diagnostics)

    @staticmethod
    def check_name_prefix(name: Optional[str], prefix: str) -> Tuple[bool, str]:
        """
        Shared evaluate body of the naming convention rules.

        Exact, case-sensitive prefix match.
        """
        compliant = bool(name) and name.startswith(prefix)
        return not compliant, format_bool(compliant)

    def evaluate_rule(
        self,
        rule: Rule,
        resource: ResourceT,
        context: ScanContext,
        scope: ScanScope,
    ) -> Result:
        """
        Apply one rule to one resource.

        Parameters
        ----------
        rule : Rule
            Rule to apply.
        resource : object
            Resource instance of this scanner's type.
        context : ScanContext
            Shared per-scan state.
        scope : ScanScope
            Scope the resource was enumerated in.

        Returns
        -------
        Result
            The outcome. Lookup failures and errors raised by the rule
            yield an undetermined result with the error as evidence.

        Raises
        ------
        ScanCancelledError
            If the scan was cancelled during a lookup.
        """
        resource_id = self.get_resource_id(resource)
        undetermined = False
        try:
            violated, evidence = rule.evaluate(resource, context)
        except ScanCancelledError:
            raise
        except DiagnosticsLookupError as e:
            logger.warning(f"Rule {rule.id} undetermined for {resource_id or '?'}: {e.message}")
            violated, evidence, undetermined = False, e.message, True
        except Exception as e:
            logger.warning(f"Rule {rule.id} failed for {resource_id or '?'}: {e}")
            violated, evidence, undetermined = (
                False,
                f"Evaluation failed: {type(e).__name__}: {e}",
                True,
            )

        return Result(
            rule_id=rule.id,
            category=rule.category,
            subcategory=rule.subcategory,
            description=rule.description,
            severity=rule.severity,
            resource_id=resource_id,
            resource_name=self.get_resource_name(resource),
            resource_type=self.get_resource_type(),
            violated=bool(violated),
            evidence=str(evidence),
            reference_url=rule.url,
            subscription_id=scope.subscription_id,
            resource_group=parse_resource_group(resource_id) or (scope.resource_group or ""),
            undetermined=undetermined,
            kind=rule.kind,
        )

    def scan(self, scope: ScanScope, context: ScanContext) -> List[Result]:
        """
        Evaluate every rule against every resource in a scope.

        This is the main entry point for scanning. It:
        1. Fetches all resources of this type
        2. Applies each rule of the catalog to each resource
        3. Orders rows by rule catalog position, then resource position

        Parameters
        ----------
        scope : ScanScope
            Subscription and optional resource group.
        context : ScanContext
            Shared per-scan state.

        Returns
        -------
        list of Result
            One row per (resource, rule) pair.

        Raises
        ------
        ResourceFetchError
            If enumerating resources failed.
        ScanCancelledError
            If the context was cancelled before the scan finished. Its
            ``partial_results`` holds the rows of every resource evaluated
            before the cancellation, in result order.
        """
        resource_type = self.get_resource_type()
        logger.info(f"Starting {resource_type} scan in {scope}")

        context.raise_if_cancelled(resource_type)
        try:
            resources = list(self.get_all_resources(scope))
        except (ResourceFetchError, ScanCancelledError):
            raise
        except Exception as e:
            raise ResourceFetchError(
                f"Failed to list {resource_type}: {e}",
                resource_type=resource_type,
                subscription_id=scope.subscription_id,
            ) from e
        logger.debug(f"Found {len(resources)} {resource_type} resources")

        rules = list(self.get_rules().values())
        rows: List[Tuple[int, int, Result]] = []
        try:
            for resource_index, resource in enumerate(resources):
                context.raise_if_cancelled(resource_type)
                if not self.get_resource_id(resource):
                    logger.warning(
                        f"{resource_type} '{self.get_resource_name(resource) or '?'}' "
                        f"has no resource id"
                    )
                # A resource's rows are kept only once all its rules have run
                resource_rows = [
                    (rule_index, resource_index,
                     self.evaluate_rule(rule, resource, context, scope))
                    for rule_index, rule in enumerate(rules)
                ]
                rows.extend(resource_rows)
        except ScanCancelledError as e:
            # The caught instance may be shared by single-flight waiters
            cancelled = ScanCancelledError(e.message, resource_type=resource_type)
            cancelled.partial_results = self._ordered(rows)
            logger.warning(
                f"{resource_type} scan cancelled with {len(rows)} results evaluated"
            )
            raise cancelled from e

        results = self._ordered(rows)

        violated = sum(1 for r in results if r.violated)
        logger.info(
            f"Scan complete: {len(resources)} {resource_type} resources, "
            f"{len(results)} results, {violated} violated"
        )
        return results

    @staticmethod
    def _ordered(rows: List[Tuple[int, int, Result]]) -> List[Result]:
        """Order rows by rule catalog position, then resource position."""
        return [row[2] for row in sorted(rows, key=lambda row: (row[0], row[1]))]

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"resource_type='{self.get_resource_type()}', "
            f"rules={len(self.get_rules())})"
        )
