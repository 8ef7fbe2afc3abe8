"""
Unit tests for reconciliation driver module.

Tests chunked matching, cooperative yielding, ordering and re-runs.
"""

import asyncio
import contextlib

import pytest
from prometheus_client import CollectorRegistry

from src.monitoring.metrics import ReconciliationMetrics
from src.reconciliation.driver import ChunkedReconciliationDriver, ReconciliationSession
from src.reconciliation.indexer import build_supplier_index
from src.reconciliation.models import Scope
from src.reconciliation.normalizer import normalize_identifier


class TestChunkedReconciliationDriver:
    """Test the POS pass of a reconciliation run."""

    @pytest.fixture
    def driver(self):
        """Create a driver with default slice settings."""
        return ChunkedReconciliationDriver()

    def test_matches_sample_catalogs(self, driver, supplier_records, pos_records):
        """Test matching, promotion and drift on the sample catalogs."""
        index = build_supplier_index(supplier_records)

        matched = asyncio.run(driver.run(pos_records, index, "all"))

        assert [p.normalized_id for p in matched] == ["12345", "222", "333"]

        cola, chips, water = matched
        assert cola.price_updated is True
        assert cola.updated_fields == ("BASE_UNIT_COST",)
        assert cola.updated_record["Cost"] == 10
        assert cola.pos_record["Cost"] == 9

        assert chips.has_promotion is True
        assert chips.price_updated is False

        assert water.price_updated is False
        assert water.updated_fields == ()

    def test_run_stats(self, driver, supplier_records, pos_records):
        """Test counters for unmatched and identifier-less rows."""
        index = build_supplier_index(supplier_records)

        driver.run_sync(pos_records, index)

        stats = driver.last_stats
        assert stats.pos_records == 5
        assert stats.matched == 3
        assert stats.unmatched == 1
        assert stats.without_identifier == 1

    def test_pos_row_without_identifier_excluded(self, driver, supplier_records):
        """Test that a POS row with no barcode produces no output."""
        index = build_supplier_index(supplier_records)

        matched = driver.run_sync([{"Cost": 1, "Price": 1}], index)

        assert matched == []

    def test_matched_pairs_share_normalized_identifier(self, driver, large_catalogs):
        """Test that every pair joins on equal normalized identifiers."""
        supplier, pos = large_catalogs
        index = build_supplier_index(supplier)

        matched = driver.run_sync(pos, index)

        assert matched
        for product in matched:
            assert normalize_identifier(product.supplier_record["UPC"]) == product.normalized_id
            assert normalize_identifier(product.pos_record["Barcode"]) == product.normalized_id

    def test_unmatched_pos_rows_dropped(self, driver, large_catalogs):
        """Test that only POS rows with a supplier counterpart are returned."""
        supplier, pos = large_catalogs
        index = build_supplier_index(supplier)

        matched = driver.run_sync(pos, index)

        expected = [str(i) for i in range(1, 4201) if i % 3 and i <= 3500]
        assert [p.normalized_id for p in matched] == expected

    @pytest.mark.parametrize("chunk_size", [1, 7, 999, 1000, 5000])
    def test_order_independent_of_chunk_size(self, large_catalogs, chunk_size):
        """Test that output order and content do not depend on slicing."""
        supplier, pos = large_catalogs
        index = build_supplier_index(supplier)

        reference = ChunkedReconciliationDriver(chunk_size=1000).run_sync(pos, index)
        matched = ChunkedReconciliationDriver(chunk_size=chunk_size).run_sync(pos, index)

        assert matched == reference

    def test_promotion_exemption_at_scale(self, driver, large_catalogs):
        """Test that TPR products are never price-updated."""
        supplier, pos = large_catalogs
        index = build_supplier_index(supplier)

        matched = driver.run_sync(pos, index)

        promoted = [p for p in matched if p.has_promotion]
        assert promoted
        assert all(not p.price_updated and p.updated_fields == () for p in promoted)

    def test_scope_restriction(self, driver):
        """Test that scope limits the reported fields across a run."""
        supplier = [{"UPC": str(i), "BASE_UNIT_COST": i + 1, "BASE_RETAIL": i + 2} for i in range(1, 50)]
        pos = [{"Barcode": str(i), "Cost": i, "Price": i} for i in range(1, 50)]
        index = build_supplier_index(supplier)

        cost_only = driver.run_sync(pos, index, Scope.COST)
        retail_only = driver.run_sync(pos, index, Scope.RETAIL)

        assert all("BASE_RETAIL" not in p.updated_fields for p in cost_only)
        assert all("BASE_UNIT_COST" not in p.updated_fields for p in retail_only)
        assert all(p.price_updated for p in cost_only + retail_only)

    def test_yields_every_five_slices(self):
        """Test that other tasks run while a long pass is in progress."""
        supplier = [{"UPC": str(i), "BASE_UNIT_COST": 1} for i in range(1, 101)]
        pos = [{"Barcode": str(i), "Cost": 1} for i in range(1, 101)]
        index = build_supplier_index(supplier)

        progress = []
        driver = ChunkedReconciliationDriver(
            chunk_size=10,
            yield_every=5,
            progress_callback=lambda done, total: progress.append((done, total))
        )

        async def scenario():
            observed = []

            async def ticker():
                while True:
                    observed.append(len(progress))
                    await asyncio.sleep(0)

            task = asyncio.create_task(ticker())
            matched = await driver.run(pos, index)
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            return matched, observed

        matched, observed = asyncio.run(scenario())

        assert len(matched) == 100
        assert 5 in observed
        assert driver.last_stats.slices == 10
        assert driver.last_stats.yields == 2
        assert progress[0] == (10, 100)
        assert progress[-1] == (100, 100)
        assert len(progress) == 10

    def test_empty_pos_input(self, driver, supplier_records):
        """Test a run over no POS records."""
        index = build_supplier_index(supplier_records)

        assert driver.run_sync([], index) == []
        assert driver.last_stats.slices == 0

    @pytest.mark.parametrize("kwargs", [{"chunk_size": 0}, {"yield_every": 0}])
    def test_invalid_slice_settings(self, kwargs):
        """Test that non-positive slice settings are rejected."""
        with pytest.raises(ValueError):
            ChunkedReconciliationDriver(**kwargs)


class TestReconciliationSession:
    """Test re-triggerable reconciliation sessions."""

    def test_reconcile_sync(self, supplier_records, pos_records):
        """Test a full run through the session."""
        session = ReconciliationSession(supplier_records, pos_records)

        matched = session.reconcile_sync()

        assert len(matched) == 3
        assert session.matched_products is matched
        assert session.index_stats.indexed == 3
        assert session.run_stats.unmatched == 1
        assert session.scope is Scope.ALL

    def test_rerun_replaces_result(self, supplier_records, pos_records):
        """Test that a re-run with a new scope recomputes from scratch."""
        session = ReconciliationSession(supplier_records, pos_records)

        first = session.reconcile_sync("cost")
        second = session.reconcile_sync("retail")

        assert any(p.price_updated for p in first)
        assert not any(p.price_updated for p in second)
        assert session.matched_products is second
        assert session.scope is Scope.RETAIL

    def test_empty_input_is_noop(self, supplier_records):
        """Test that a missing dataset yields an empty result."""
        session = ReconciliationSession(supplier_records, [])

        assert session.reconcile_sync() == []
        assert session.run_stats.pos_records == 0

    def test_async_reconcile(self, supplier_records, pos_records):
        """Test awaiting the session inside an event loop."""
        session = ReconciliationSession(supplier_records, pos_records, chunk_size=2, yield_every=1)

        matched = asyncio.run(session.reconcile(Scope.ALL))

        assert [p.normalized_id for p in matched] == ["12345", "222", "333"]

    def test_records_metrics(self, supplier_records, pos_records):
        """Test that a successful run is recorded in the metrics registry."""
        registry = CollectorRegistry()
        metrics = ReconciliationMetrics(registry=registry)
        session = ReconciliationSession(supplier_records, pos_records, metrics=metrics)

        session.reconcile_sync("all")

        assert registry.get_sample_value(
            "catalog_reconciliation_runs_total", {"scope": "all", "status": "success"}
        ) == 1.0
        assert registry.get_sample_value("catalog_matched_products", {"scope": "all"}) == 3.0
        assert registry.get_sample_value("catalog_updated_products", {"scope": "all"}) == 1.0

    def test_invalid_scope_rejected(self, supplier_records, pos_records):
        """Test that an unknown scope fails before any work is done."""
        session = ReconciliationSession(supplier_records, pos_records)

        with pytest.raises(ValueError):
            session.reconcile_sync("everything")

    def test_empty_input_recorded_in_metrics(self, supplier_records):
        """Test that a run with nothing to reconcile still counts as a run."""
        registry = CollectorRegistry()
        metrics = ReconciliationMetrics(registry=registry)
        session = ReconciliationSession(supplier_records, [], metrics=metrics)

        session.reconcile_sync("cost")

        assert registry.get_sample_value(
            "catalog_reconciliation_runs_total", {"scope": "cost", "status": "success"}
        ) == 1.0
        assert registry.get_sample_value("catalog_matched_products", {"scope": "cost"}) == 0.0
        assert registry.get_sample_value(
            "catalog_rows_processed_total", {"dataset": "supplier"}
        ) == 4.0
