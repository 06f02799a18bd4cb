"""
Rule Schema Module
==================

Defines the immutable rule value that every scanner populates and the
catalog that holds all rules of a process.

Classes
-------
Severity
    Rule severity levels.
RuleKind
    Whether a rule inspects the resource or reports a fixed platform fact.
Rule
    Named, versioned predicate with report metadata.
RuleCatalog
    Registry of every scanner's rules with global id uniqueness.

Functions
---------
format_bool
    Render a boolean as evidence text.
enum_text
    Render an SDK enum (or plain value) as evidence text.

Example
-------
>>> from azqr.core.rules import Rule, RuleKind, Severity, format_bool
>>>
>>> rule = Rule(
...     id="kv-006",
...     category="Governance",
...     subcategory="Naming Convention (CAF)",
...     description="Key Vault Name should comply with naming conventions",
...     severity=Severity.LOW,
...     evaluate=lambda vault, ctx: (
...         not vault.name.startswith("kv"),
...         format_bool(vault.name.startswith("kv")),
...     ),
...     url="https://learn.microsoft.com/...",
...     resource_type="Microsoft.KeyVault/vaults",
... )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, Optional, Tuple

from azqr.core.exceptions import RuleRegistrationError

if TYPE_CHECKING:
    from azqr.core.context import ScanContext

# Module logger
logger = logging.getLogger(__name__)

EvaluateFn = Callable[[Any, "ScanContext"], Tuple[bool, str]]


class Severity(str, Enum):
    """Rule severity levels."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    def __str__(self) -> str:
        return self.value


class RuleKind(str, Enum):
    """
    Distinguishes computed checks from platform facts.

    ``INFORMATIONAL`` rules return a fixed outcome regardless of the
    resource (published SLA, zone support of the service family). They are
    reported in the same shape as computed checks.
    """

    COMPUTED = "computed"
    INFORMATIONAL = "informational"

    def __str__(self) -> str:
        return self.value


def format_bool(value: bool) -> str:
    """
    Render a boolean as evidence text.

    Parameters
    ----------
    value : bool
        Observed value.

    Returns
    -------
    str
        ``"true"`` or ``"false"``.
    """
    return "true" if value else "false"


def enum_text(value: Any) -> str:
    """
    Render an SDK enum member, or any plain value, as evidence text.

    Azure SDK enums subclass ``str`` and ``Enum``; ``str()`` on them is not
    stable across Python versions, so the member value is used.
    """
    if value is None:
        return ""
    return str(getattr(value, "value", value))


@dataclass(frozen=True)
class Rule:
    """
    A named predicate plus metadata judging one compliance aspect.

    Parameters
    ----------
    id : str
        Globally unique, stable identifier (e.g. ``"kv-001"``).
    category : str
        Report category (e.g. ``"Security"``).
    subcategory : str
        Report subcategory (e.g. ``"Networking"``).
    description : str
        Human-readable statement of the best practice.
    severity : Severity
        Impact of a violation.
    evaluate : callable
        ``evaluate(resource, context) -> (violated, evidence)``. Must not
        mutate the resource or the context.
    url : str
        Reference documentation.
    resource_type : str
        Resource type of the scanner the rule belongs to.
    kind : RuleKind, default=RuleKind.COMPUTED
        Computed check or informational platform fact.

    Raises
    ------
    RuleRegistrationError
        If the id is empty or the severity is not a ``Severity``.
    """

    id: str
    category: str
    subcategory: str
    description: str
    severity: Severity
    evaluate: EvaluateFn = field(compare=False, repr=False)
    url: str
    resource_type: str
    kind: RuleKind = RuleKind.COMPUTED

    def __post_init__(self) -> None:
        if not self.id:
            raise RuleRegistrationError("Rule id must not be empty")
        if not isinstance(self.severity, Severity):
            raise RuleRegistrationError(
                f"Rule {self.id} has invalid severity {self.severity!r}",
                details={"rule_id": self.id},
            )

    @property
    def is_informational(self) -> bool:
        """True for rules whose outcome does not depend on the resource."""
        return self.kind is RuleKind.INFORMATIONAL

    def to_dict(self) -> Dict[str, Any]:
        """Rule metadata without the evaluate function."""
        return {
            "id": self.id,
            "category": self.category,
            "subcategory": self.subcategory,
            "description": self.description,
            "severity": self.severity.value,
            "url": self.url,
            "resource_type": self.resource_type,
            "kind": self.kind.value,
        }


class RuleCatalog:
    """
    Registry of every rule known to the process.

    Built once at startup from the selected scanners. Registration checks
    that rule ids are unique across the whole catalog and that every rule
    is bound to the resource type of the scanner that owns it, so a rule
    can never be evaluated against the wrong resource shape.

    Parameters
    ----------
    scanners : iterable of BaseScanner, optional
        Scanners whose rules are registered immediately.

    Examples
    --------
    >>> catalog = RuleCatalog.from_scanners(build_scanners(client))
    >>> catalog.get("kv-001").description
    'Key Vault should have diagnostic settings enabled'
    >>> len(catalog.for_resource_type("Microsoft.KeyVault/vaults"))
    6
    """

    def __init__(self, scanners: Optional[List[Any]] = None) -> None:
        self._rules: Dict[str, Rule] = {}
        self._names: Dict[str, str] = {}
        for scanner in scanners or []:
            self.register(scanner)

    @classmethod
    def from_scanners(cls, scanners: List[Any]) -> RuleCatalog:
        """Build a catalog from an ordered list of scanners."""
        return cls(scanners)

    def register(self, scanner: Any) -> None:
        """
        Register every rule of a scanner.

        Parameters
        ----------
        scanner : BaseScanner
            Scanner exposing ``get_rules()`` and ``get_resource_type()``.

        Raises
        ------
        RuleRegistrationError
            On a duplicate id, or a rule bound to another resource type.
        """
        resource_type = scanner.get_resource_type()
        for name, rule in scanner.get_rules().items():
            if rule.resource_type != resource_type:
                raise RuleRegistrationError(
                    f"Rule {rule.id} targets {rule.resource_type} but is "
                    f"registered under the {resource_type} scanner",
                    details={"rule_id": rule.id, "rule_name": name},
                )
            if rule.id in self._rules:
                raise RuleRegistrationError(
                    f"Duplicate rule id '{rule.id}'",
                    details={
                        "rule_id": rule.id,
                        "resource_types": [
                            self._rules[rule.id].resource_type,
                            resource_type,
                        ],
                    },
                )
            self._rules[rule.id] = rule
            self._names[rule.id] = name

        logger.debug(
            f"Registered {len(scanner.get_rules())} rules for {resource_type}"
        )

    def get(self, rule_id: str) -> Rule:
        """
        Look up a rule by id.

        Raises
        ------
        KeyError
            If no rule has this id.
        """
        return self._rules[rule_id]

    def name_of(self, rule_id: str) -> str:
        """Catalog key the owning scanner uses for the rule."""
        return self._names[rule_id]

    def for_resource_type(self, resource_type: str) -> List[Rule]:
        """Rules of one resource type, in registration order."""
        return [r for r in self._rules.values() if r.resource_type == resource_type]

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __repr__(self) -> str:
        return f"RuleCatalog(rules={len(self._rules)})"
