"""
Tests for the scan scope, diagnostics cache and scan context.
"""

import threading
import time

import pytest

from azqr.core.context import DiagnosticsCache, ScanContext, ScanScope
from azqr.core.exceptions import (
    DiagnosticsLookupError,
    InvalidScopeError,
    ScanCancelledError,
)

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000000"
VAULT_ID = (
    f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/rg-prod"
    "/providers/Microsoft.KeyVault/vaults/kv-prod-01"
)


class CountingLookup:
    """Lookup that records calls and can block or fail."""

    def __init__(self, value=True, error=None, delay=0.0):
        self.value = value
        self.error = error
        self.delay = delay
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, resource_id):
        with self._lock:
            self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return self.value


class TestScanScope:
    """Tests for ScanScope validation."""

    def test_subscription_scope(self):
        scope = ScanScope(SUBSCRIPTION_ID)
        assert not scope.is_resource_group
        assert str(scope) == SUBSCRIPTION_ID

    def test_resource_group_scope(self):
        scope = ScanScope(SUBSCRIPTION_ID, "rg-prod.eu_(1)")
        assert scope.is_resource_group
        assert str(scope) == f"{SUBSCRIPTION_ID}/rg-prod.eu_(1)"

    @pytest.mark.parametrize(
        "subscription_id", ["", "not-a-guid", SUBSCRIPTION_ID + "0", SUBSCRIPTION_ID + "\n"]
    )
    def test_invalid_subscription(self, subscription_id):
        with pytest.raises(InvalidScopeError):
            ScanScope(subscription_id)

    @pytest.mark.parametrize(
        "resource_group", ["", "rg.", "rg/prod", "x" * 91, "rg-prod\n"]
    )
    def test_invalid_resource_group(self, resource_group):
        with pytest.raises(InvalidScopeError):
            ScanScope(SUBSCRIPTION_ID, resource_group)


class TestDiagnosticsCache:
    """Tests for DiagnosticsCache class."""

    def test_memoizes_result(self):
        """Sequential calls return the same value with one remote query."""
        lookup = CountingLookup(value=False)
        cache = DiagnosticsCache(lookup)

        assert cache.has_diagnostics(VAULT_ID) is False
        assert cache.has_diagnostics(VAULT_ID) is False
        assert lookup.calls == 1
        assert cache.lookup_count == 1
        assert len(cache) == 1

    def test_ids_compared_case_insensitively(self):
        lookup = CountingLookup()
        cache = DiagnosticsCache(lookup)

        cache.has_diagnostics(VAULT_ID)
        cache.has_diagnostics(VAULT_ID.upper())

        assert lookup.calls == 1

    def test_single_flight_under_concurrency(self):
        """Concurrent first callers share one remote query."""
        lookup = CountingLookup(value=True, delay=0.2)
        cache = DiagnosticsCache(lookup)
        barrier = threading.Barrier(8)
        results = []
        results_lock = threading.Lock()

        def worker():
            barrier.wait()
            value = cache.has_diagnostics(VAULT_ID)
            with results_lock:
                results.append(value)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert lookup.calls == 1
        assert results == [True] * 8

    def test_failure_shared_by_waiters_and_not_memoized(self):
        """Waiters see the same error; a later call queries again."""
        lookup = CountingLookup(error=RuntimeError("throttled"), delay=0.2)
        cache = DiagnosticsCache(lookup)
        barrier = threading.Barrier(4)
        errors = []
        errors_lock = threading.Lock()

        def worker():
            barrier.wait()
            try:
                cache.has_diagnostics(VAULT_ID)
            except DiagnosticsLookupError as e:
                with errors_lock:
                    errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(errors) == 4
        assert lookup.calls == 1
        assert all("throttled" in e.message for e in errors)

        lookup.error = None
        assert cache.has_diagnostics(VAULT_ID) is True
        assert lookup.calls == 2

    def test_missing_resource_id(self):
        lookup = CountingLookup()
        cache = DiagnosticsCache(lookup)

        with pytest.raises(DiagnosticsLookupError, match="missing resource id"):
            cache.has_diagnostics("")
        assert lookup.calls == 0

    def test_cancelled_cache_does_not_query(self):
        cancel_event = threading.Event()
        cancel_event.set()
        lookup = CountingLookup()
        cache = DiagnosticsCache(lookup, cancel_event=cancel_event)

        with pytest.raises(ScanCancelledError):
            cache.has_diagnostics(VAULT_ID)
        assert lookup.calls == 0

    def test_cached_values_survive_cancellation(self):
        cancel_event = threading.Event()
        cache = DiagnosticsCache(CountingLookup(value=True), cancel_event=cancel_event)

        cache.has_diagnostics(VAULT_ID)
        cancel_event.set()

        assert cache.has_diagnostics(VAULT_ID) is True


class TestScanContext:
    """Tests for ScanContext class."""

    def test_delegates_to_cache(self):
        lookup = CountingLookup(value=True)
        context = ScanContext(lookup)

        assert context.has_diagnostics(VAULT_ID) is True
        assert context.diagnostics.lookup_count == 1

    def test_cancel(self):
        context = ScanContext(CountingLookup())
        context.raise_if_cancelled("Microsoft.KeyVault/vaults")

        context.cancel()

        assert context.cancelled
        with pytest.raises(ScanCancelledError) as exc_info:
            context.raise_if_cancelled("Microsoft.KeyVault/vaults")
        assert exc_info.value.resource_type == "Microsoft.KeyVault/vaults"

    def test_contexts_do_not_share_cache(self):
        lookup = CountingLookup()
        ScanContext(lookup).has_diagnostics(VAULT_ID)
        ScanContext(lookup).has_diagnostics(VAULT_ID)

        assert lookup.calls == 2
