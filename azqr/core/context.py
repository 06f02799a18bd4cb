"""
Scan Context Module
===================

Per-scan shared state: the scope a scan runs in, the diagnostics lookup
cache, and the cancellation signal.

Classes
-------
ScanScope
    Subscription / resource-group boundary of a scan.
DiagnosticsCache
    Single-flight, memoizing "has diagnostic settings" lookup.
ScanContext
    Shared state passed to every rule evaluation of one scan.

Example
-------
>>> from azqr.core.context import ScanContext, ScanScope
>>>
>>> scope = ScanScope(subscription_id="00000000-0000-0000-0000-000000000000")
>>> context = ScanContext(diagnostics_lookup=client.has_diagnostic_settings)
>>> context.has_diagnostics(vault.id)
True

Notes
-----
A ``ScanContext`` is created fresh for each scan invocation and dropped
once the report is returned. It is never shared between scans.
"""

from __future__ import annotations

import logging
import re
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from azqr.core.exceptions import (
    DiagnosticsLookupError,
    InvalidScopeError,
    ScanCancelledError,
)

# Module logger
logger = logging.getLogger(__name__)

SUBSCRIPTION_ID_PATTERN = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)
# Resource group names: 1-90 chars, no trailing period
RESOURCE_GROUP_PATTERN = re.compile(r"[-\w._()]{0,89}[-\w_()]")

DiagnosticsLookup = Callable[[str], bool]


@dataclass(frozen=True)
class ScanScope:
    """
    The subscription / resource-group boundary of a scan.

    Parameters
    ----------
    subscription_id : str
        Subscription GUID.
    resource_group : str, optional
        Resource group name. When omitted the whole subscription is scanned.

    Raises
    ------
    InvalidScopeError
        If the subscription id is not a GUID or the resource group name
        is malformed.

    Example
    -------
    >>> ScanScope("00000000-0000-0000-0000-000000000000", "rg-prod")
    ScanScope(subscription_id='00000000-...', resource_group='rg-prod')
    """

    subscription_id: str
    resource_group: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.subscription_id or not SUBSCRIPTION_ID_PATTERN.fullmatch(
            self.subscription_id
        ):
            raise InvalidScopeError(
                "Subscription id must be a GUID",
                details={"subscription_id": self.subscription_id},
            )
        if self.resource_group is not None and not RESOURCE_GROUP_PATTERN.fullmatch(
            self.resource_group
        ):
            raise InvalidScopeError(
                f"Invalid resource group name '{self.resource_group}'",
                details={"resource_group": self.resource_group},
            )

    @property
    def is_resource_group(self) -> bool:
        """True when the scope is narrowed to one resource group."""
        return self.resource_group is not None

    def __str__(self) -> str:
        if self.resource_group:
            return f"{self.subscription_id}/{self.resource_group}"
        return self.subscription_id


class DiagnosticsCache:
    """
    Memoizing lookup of whether a resource has diagnostic settings.

    The first call for a resource id performs the remote query; later calls
    return the stored value. Concurrent first calls for the same id share a
    single in-flight query. Reads of ids already cached take no lock.

    Parameters
    ----------
    lookup : callable
        ``lookup(resource_id) -> bool`` performing the remote query.
    cancel_event : threading.Event, optional
        When set, cache misses raise ``ScanCancelledError`` instead of
        issuing a remote query.

    Attributes
    ----------
    lookup_count : int
        Number of remote queries issued so far.

    Notes
    -----
    Resource ids are compared case-insensitively, as Azure treats them.
    Failed queries are not memoized: every caller waiting on the failed
    query receives the same ``DiagnosticsLookupError``, and a later call
    queries again.

    Example
    -------
    >>> cache = DiagnosticsCache(client.has_diagnostic_settings)
    >>> cache.has_diagnostics(vault_id)   # remote query
    False
    >>> cache.has_diagnostics(vault_id)   # cached
    False
    >>> cache.lookup_count
    1
    """

    def __init__(
        self,
        lookup: DiagnosticsLookup,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self._lookup = lookup
        self._cancel_event = cancel_event
        self._entries: Dict[str, bool] = {}
        self._in_flight: Dict[str, Future] = {}
        self._lock = threading.Lock()
        self._lookup_count = 0

    @property
    def lookup_count(self) -> int:
        return self._lookup_count

    def has_diagnostics(self, resource_id: str) -> bool:
        """
        Whether the resource has at least one diagnostic setting.

        Parameters
        ----------
        resource_id : str
            Full ARM resource id.

        Returns
        -------
        bool
            True if diagnostic settings exist for the resource.

        Raises
        ------
        DiagnosticsLookupError
            If the resource id is empty or the remote query failed.
        ScanCancelledError
            If the scan was cancelled before the query was issued.
        """
        if not resource_id:
            raise DiagnosticsLookupError(
                "Incomplete resource metadata: missing resource id"
            )

        key = resource_id.lower()
        cached = self._entries.get(key)
        if cached is not None:
            logger.debug(f"Diagnostics cache hit for {resource_id}")
            return cached

        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                return cached
            future = self._in_flight.get(key)
            is_owner = future is None
            if is_owner:
                future = Future()
                self._in_flight[key] = future

        if not is_owner:
            logger.debug(f"Waiting on in-flight diagnostics query for {resource_id}")
            return future.result()

        try:
            value = self._query(resource_id)
        except (DiagnosticsLookupError, ScanCancelledError) as e:
            with self._lock:
                del self._in_flight[key]
            future.set_exception(e)
            raise

        with self._lock:
            self._entries[key] = value
            del self._in_flight[key]
        future.set_result(value)
        return value

    def _query(self, resource_id: str) -> bool:
        """Issue the remote query, translating failures."""
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise ScanCancelledError(
                "Scan cancelled before diagnostics query",
                details={"resource_id": resource_id},
            )

        with self._lock:
            self._lookup_count += 1

        logger.debug(f"Diagnostics cache miss for {resource_id}, querying")
        try:
            return bool(self._lookup(resource_id))
        except DiagnosticsLookupError:
            raise
        except Exception as e:
            raise DiagnosticsLookupError(
                f"Failed to query diagnostic settings: {e}",
                resource_id=resource_id,
            ) from e

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return (
            f"DiagnosticsCache(entries={len(self._entries)}, "
            f"lookups={self._lookup_count})"
        )


class ScanContext:
    """
    Shared, read-mostly state for every rule evaluation in one scan.

    Parameters
    ----------
    diagnostics_lookup : callable
        Remote query backing the diagnostics cache.
    cancel_event : threading.Event, optional
        Cancellation signal. A private event is created if omitted.

    Attributes
    ----------
    diagnostics : DiagnosticsCache
        The per-scan diagnostics cache.
    cancel_event : threading.Event
        Set to abort in-flight fetches and lookups.

    Example
    -------
    >>> context = ScanContext(client.has_diagnostic_settings)
    >>> context.has_diagnostics(resource_id)
    """

    def __init__(
        self,
        diagnostics_lookup: DiagnosticsLookup,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.cancel_event = cancel_event or threading.Event()
        self.diagnostics = DiagnosticsCache(
            diagnostics_lookup, cancel_event=self.cancel_event
        )

    def has_diagnostics(self, resource_id: str) -> bool:
        """Delegate to the diagnostics cache."""
        return self.diagnostics.has_diagnostics(resource_id)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        """Signal every scanner sharing this context to stop."""
        self.cancel_event.set()

    def raise_if_cancelled(self, resource_type: Optional[str] = None) -> None:
        """
        Raise if the cancellation signal is set.

        Raises
        ------
        ScanCancelledError
            If the scan has been cancelled.
        """
        if self.cancel_event.is_set():
            raise ScanCancelledError("Scan cancelled", resource_type=resource_type)

    def __repr__(self) -> str:
        return f"ScanContext(diagnostics={self.diagnostics!r}, cancelled={self.cancelled})"
