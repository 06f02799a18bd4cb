"""
Scan Orchestrator Module
========================

Runs a caller-selected list of scanners over one scope and aggregates
their results into a single, order-stable report.

This module handles:
- Creation of the per-scan ``ScanContext`` (shared caches, cancellation)
- Parallel execution of scanners on daemon threads, bounded by max_workers
- Deterministic ordering of the aggregated results
- Isolation of per-scanner failures, timeouts and cancellation

Classes
-------
ScanReport
    Aggregated results of one scan invocation.
ScanOrchestrator
    Runs scanners and builds the report.

Example
-------
>>> from azqr.core.orchestrator import ScanOrchestrator
>>> from azqr.scanners import build_scanners
>>>
>>> orchestrator = ScanOrchestrator(
...     diagnostics_lookup=client.has_diagnostic_settings, max_workers=4
... )
>>> report = orchestrator.run(build_scanners(client), scope)
>>> print(f"{len(report.violated)} violations in {len(report.results)} results")

Notes
-----
Results are ordered by scanner invocation order, then by rule catalog
position, then by resource enumeration position, regardless of which
scanner thread finishes first.

See Also
--------
BaseScanner : Scanner interface.
ScanContext : Per-scan shared state.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from azqr.core.base_scanner import BaseScanner, Result
from azqr.core.context import DiagnosticsLookup, ScanContext, ScanScope
from azqr.core.exceptions import ScanCancelledError, ScannerError
from azqr.core.rules import RuleCatalog

# Module logger
logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str], None]
# (resource type, results, error message, cancelled)
ScanOutcome = Tuple[str, List[Result], Optional[str], bool]

# Seconds a timed-out scanner gets to stop on its own before it is abandoned
CANCEL_GRACE_SECONDS = 0.2


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ScanReport:
    """
    Aggregated results from one scan invocation.

    Parameters
    ----------
    scope : ScanScope
        Scope that was scanned.
    scanners : list of str
        Resource types in invocation order.
    results : list of Result
        All result rows, in the stable order described in the module notes.
    errors : dict, optional
        Mapping of resource type to error messages.
    incomplete : list of str, optional
        Resource types whose scanner did not finish (cancelled or timed out).
    scan_time : datetime, optional
        When the scan started.

    Examples
    --------
    >>> report = orchestrator.run(scanners, scope)
    >>> for result in report.violated:
    ...     print(f"{result.rule_id} {result.resource_name}: {result.evidence}")

    >>> if report.has_errors:
    ...     for resource_type, messages in report.errors.items():
    ...         print(f"{resource_type}: {messages}")
    """

    scope: ScanScope
    scanners: List[str]
    results: List[Result]
    errors: Dict[str, List[str]] = field(default_factory=dict)
    incomplete: List[str] = field(default_factory=list)
    scan_time: datetime = field(default_factory=_utcnow)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    @property
    def is_complete(self) -> bool:
        """True when every scanner finished, successfully or not."""
        return not self.incomplete

    @property
    def violated(self) -> List[Result]:
        return [r for r in self.results if r.violated]

    @property
    def undetermined(self) -> List[Result]:
        return [r for r in self.results if r.undetermined]

    @property
    def successful_scanners(self) -> List[str]:
        """Resource types whose scanner finished without a recorded error."""
        return [
            s for s in self.scanners
            if s not in self.errors and s not in self.incomplete
        ]

    def get_summary(self) -> Dict[str, Dict[str, int]]:
        """
        Get counts per resource type.

        Returns
        -------
        dict
            Mapping of resource type to ``resources``, ``results``,
            ``violated`` and ``undetermined`` counts.
        """
        summary: Dict[str, Dict[str, int]] = {}
        for resource_type in self.scanners:
            rows = [r for r in self.results if r.resource_type == resource_type]
            summary[resource_type] = {
                "resources": len({r.resource_id or r.resource_name for r in rows}),
                "results": len(rows),
                "violated": sum(1 for r in rows if r.violated),
                "undetermined": sum(1 for r in rows if r.undetermined),
            }
        return summary

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary for serialization.

        Returns
        -------
        dict
            Dictionary representation suitable for JSON serialization.
        """
        return {
            "subscription_id": self.scope.subscription_id,
            "resource_group": self.scope.resource_group,
            "scanners": self.scanners,
            "scan_time": self.scan_time.isoformat(),
            "total_results": len(self.results),
            "total_violated": len(self.violated),
            "total_undetermined": len(self.undetermined),
            "summary": self.get_summary(),
            "results": [r.to_dict() for r in self.results],
            "errors": self.errors,
            "incomplete": self.incomplete,
        }

    def __repr__(self) -> str:
        return (
            f"ScanReport(scope='{self.scope}', "
            f"scanners={len(self.scanners)}, "
            f"results={len(self.results)}, "
            f"violated={len(self.violated)})"
        )


class ScanOrchestrator:
    """
    Runs scanners over a scope and aggregates their results.

    Parameters
    ----------
    diagnostics_lookup : callable
        Remote query backing each scan's diagnostics cache,
        ``lookup(resource_id) -> bool``.
    max_workers : int, default=4
        Maximum number of scanners running in parallel.

    Attributes
    ----------
    max_workers : int
        Maximum parallel scanners.

    Examples
    --------
    Basic scan:

    >>> orchestrator = ScanOrchestrator(client.has_diagnostic_settings)
    >>> report = orchestrator.run([KeyVaultScanner(client)], scope)

    With a deadline and progress tracking:

    >>> def on_progress(resource_type, status):
    ...     print(f"{resource_type}: {status}")
    ...
    >>> report = orchestrator.run(
    ...     scanners, scope, timeout=300, progress_callback=on_progress
    ... )
    >>> report.incomplete
    []

    Notes
    -----
    A fresh ``ScanContext`` is created for every ``run`` call; caches never
    outlive the scan that filled them.
    """

    def __init__(
        self,
        diagnostics_lookup: DiagnosticsLookup,
        max_workers: int = 4,
    ) -> None:
        self.diagnostics_lookup = diagnostics_lookup
        self.max_workers = max(1, max_workers)
        logger.debug(f"Initialized ScanOrchestrator with max_workers={self.max_workers}")

    def _scan_one(
        self,
        scanner: BaseScanner,
        scope: ScanScope,
        context: ScanContext,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Tuple[str, List[Result], Optional[str], bool]:
        """
        Run a single scanner (internal method).

        Returns
        -------
        tuple
            (resource type, results, error message or None, cancelled flag).
            A cancelled scanner carries the results it finished.
        """
        resource_type = scanner.get_resource_type()
        try:
            if progress_callback:
                progress_callback(resource_type, "scanning")

            results = scanner.scan(scope, context)

            if progress_callback:
                progress_callback(resource_type, "complete")
            return (resource_type, results, None, False)

        except ScanCancelledError as e:
            logger.warning(f"Scan of {resource_type} cancelled")
            if progress_callback:
                progress_callback(resource_type, "cancelled")
            return (resource_type, e.partial_results, None, True)

        except ScannerError as e:
            logger.error(f"Error scanning {resource_type}: {e.message}")
            if progress_callback:
                progress_callback(resource_type, "error")
            return (resource_type, [], e.message, False)

        except Exception as e:
            logger.exception(f"Unexpected error scanning {resource_type}")
            if progress_callback:
                progress_callback(resource_type, "error")
            return (resource_type, [], f"Unexpected error: {e}", False)

    def _start_workers(
        self,
        scanners: Sequence[BaseScanner],
        scope: ScanScope,
        context: ScanContext,
        slots: List[Optional[ScanOutcome]],
        progress_callback: Optional[ProgressCallback],
    ) -> List[threading.Thread]:
        """
        Start one daemon thread per scanner, at most ``max_workers`` scanning
        at a time. Each thread stores its outcome in ``slots[index]``.

        Daemon threads never hold up interpreter exit, so a scanner stuck in
        a remote call after a timeout does not keep the process alive.
        """
        workers = threading.BoundedSemaphore(self.max_workers)

        def work(index: int, scanner: BaseScanner) -> None:
            with workers:
                slots[index] = self._scan_one(scanner, scope, context, progress_callback)

        threads = []
        for index, scanner in enumerate(scanners):
            thread = threading.Thread(
                target=work,
                args=(index, scanner),
                name=f"azqr-scan-{scanner.get_resource_type()}",
                daemon=True,
            )
            thread.start()
            threads.append(thread)
        return threads

    @staticmethod
    def _join(threads: List[threading.Thread], deadline: Optional[float]) -> List[threading.Thread]:
        """Join threads until ``deadline`` (monotonic); return those still alive."""
        for thread in threads:
            if deadline is None:
                thread.join()
            else:
                thread.join(max(0.0, deadline - time.monotonic()))
        return [t for t in threads if t.is_alive()]

    def run(
        self,
        scanners: Sequence[BaseScanner],
        scope: ScanScope,
        cancel_event: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ScanReport:
        """
        Run every scanner over the scope.

        Parameters
        ----------
        scanners : sequence of BaseScanner
            Scanners in the order their results should appear.
        scope : ScanScope
            Subscription and optional resource group.
        cancel_event : threading.Event, optional
            Caller-owned cancellation signal. Setting it aborts in-flight
            scanners; their resource types are reported as incomplete.
        timeout : float, optional
            Seconds to wait for all scanners before cancelling the rest.
        progress_callback : callable, optional
            Called with (resource_type, status), status being one of
            'scanning', 'complete', 'error', 'cancelled'.

        Returns
        -------
        ScanReport
            Aggregated, ordered results plus per-scanner errors. Scanners
            that stopped early are listed in ``incomplete``; the results
            they finished are kept.

        Raises
        ------
        RuleRegistrationError
            If the scanners' rule catalogs conflict.
        """
        RuleCatalog.from_scanners(list(scanners))

        context = ScanContext(self.diagnostics_lookup, cancel_event=cancel_event)
        resource_types = [s.get_resource_type() for s in scanners]

        logger.info(f"Starting scan of {len(scanners)} resource types in {scope}")

        results_by_index: Dict[int, List[Result]] = {}
        errors: Dict[str, List[str]] = {}
        incomplete: List[str] = []
        scan_time = _utcnow()

        slots: List[Optional[ScanOutcome]] = [None] * len(scanners)
        try:
            threads = self._start_workers(
                scanners, scope, context, slots, progress_callback
            )
            deadline = None if timeout is None else time.monotonic() + timeout
            running = self._join(threads, deadline)
            if running:
                logger.warning(
                    f"Timed out after {timeout}s with {len(running)} scanner(s) "
                    f"still running, cancelling"
                )
                context.cancel()
                # Scanners that observe the signal promptly still report
                # what they finished; the rest are abandoned
                self._join(running, time.monotonic() + CANCEL_GRACE_SECONDS)
        except KeyboardInterrupt:
            logger.warning("Scan interrupted, cancelling running scanners")
            context.cancel()
            raise

        for index, resource_type in enumerate(resource_types):
            outcome = slots[index]
            if outcome is None:
                incomplete.append(resource_type)
                continue
            _, results, error, cancelled = outcome
            if cancelled:
                incomplete.append(resource_type)
                results_by_index[index] = results
            elif error:
                errors.setdefault(resource_type, []).append(error)
            else:
                results_by_index[index] = results

        report = ScanReport(
            scope=scope,
            scanners=resource_types,
            results=[
                result
                for index in sorted(results_by_index)
                for result in results_by_index[index]
            ],
            errors=errors,
            incomplete=[t for t in resource_types if t in incomplete],
            scan_time=scan_time,
        )

        logger.info(
            f"Scan complete: {len(report.results)} results, "
            f"{len(report.violated)} violated, {len(report.undetermined)} undetermined, "
            f"{len(errors)} scanner error(s), {len(report.incomplete)} incomplete"
        )
        return report

    def __repr__(self) -> str:
        return f"ScanOrchestrator(max_workers={self.max_workers})"
