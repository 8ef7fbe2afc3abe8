"""
Chunked Reconciliation Driver

Matches POS records against the supplier index in fixed-size slices and
hands control back to the event loop every few slices, so an interactive
host stays responsive during large runs. Output order always follows the
POS input order, whatever the slice size.

Usage:
    session = ReconciliationSession(supplier_records, pos_records)
    matched = session.reconcile_sync(scope="cost")

    # or, inside an event loop
    matched = await session.reconcile(scope="all")
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Union

from src.reconciliation.differ import PriceDiffer
from src.reconciliation.indexer import IndexStats, SupplierIndexBuilder
from src.reconciliation.models import FieldMapping, MatchedProduct, RawRecord, Scope
from src.reconciliation.normalizer import extract_identifier

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_YIELD_EVERY = 5

ProgressCallback = Callable[[int, int], None]


@dataclass
class RunStats:
    """Counters for a single driver run."""

    pos_records: int = 0
    without_identifier: int = 0
    unmatched: int = 0
    matched: int = 0
    slices: int = 0
    yields: int = 0


class ChunkedReconciliationDriver:
    """
    Drives the POS pass of a reconciliation run.

    Records without an identifier and records with no supplier match are
    dropped from the output; they are counted, not reported as errors.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        yield_every: int = DEFAULT_YIELD_EVERY,
        differ: Optional[PriceDiffer] = None,
        mapping: Optional[FieldMapping] = None,
        progress_callback: Optional[ProgressCallback] = None
    ):
        """
        Initialize the driver.

        Args:
            chunk_size: Number of POS records per slice
            yield_every: Slices processed between yields to the event loop
            differ: Price differ (built from mapping if not given)
            mapping: Column names for supplier and POS fields
            progress_callback: Called with (processed, total) after each slice

        Raises:
            ValueError: If chunk_size or yield_every is not positive
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if yield_every < 1:
            raise ValueError(f"yield_every must be positive, got {yield_every}")

        self.chunk_size = chunk_size
        self.yield_every = yield_every
        self.mapping = mapping or (differ.mapping if differ else FieldMapping())
        self.differ = differ or PriceDiffer(self.mapping)
        self.progress_callback = progress_callback
        self.last_stats = RunStats()

        logger.debug(
            f"Initialized ChunkedReconciliationDriver "
            f"(chunk_size={chunk_size}, yield_every={yield_every})"
        )

    async def run(
        self,
        pos_records: Sequence[RawRecord],
        supplier_index: Dict[str, RawRecord],
        scope: Union[Scope, str] = Scope.ALL
    ) -> List[MatchedProduct]:
        """
        Match every POS record against the supplier index.

        Args:
            pos_records: POS records in upload order
            supplier_index: Normalized identifier to supplier record
            scope: Which price fields to compare

        Returns:
            Matched products in POS input order
        """
        scope = Scope.parse(scope)
        stats = RunStats(pos_records=len(pos_records))
        matched: List[MatchedProduct] = []
        total = len(pos_records)

        for start in range(0, total, self.chunk_size):
            chunk = pos_records[start:start + self.chunk_size]

            for pos_record in chunk:
                product = self._match_record(pos_record, supplier_index, scope, stats)
                if product is not None:
                    matched.append(product)

            stats.slices += 1
            processed = min(start + self.chunk_size, total)
            logger.debug(f"Processed slice {stats.slices} ({processed}/{total} POS records)")

            if self.progress_callback is not None:
                self.progress_callback(processed, total)

            if stats.slices % self.yield_every == 0:
                stats.yields += 1
                await asyncio.sleep(0)

        stats.matched = len(matched)
        self.last_stats = stats

        logger.info(
            f"Matched {stats.matched} of {stats.pos_records} POS records "
            f"({stats.unmatched} unmatched, {stats.without_identifier} without identifier)"
        )
        return matched

    def run_sync(
        self,
        pos_records: Sequence[RawRecord],
        supplier_index: Dict[str, RawRecord],
        scope: Union[Scope, str] = Scope.ALL
    ) -> List[MatchedProduct]:
        """Run the driver to completion on a fresh event loop."""
        return asyncio.run(self.run(pos_records, supplier_index, scope))

    def _match_record(
        self,
        pos_record: RawRecord,
        supplier_index: Dict[str, RawRecord],
        scope: Scope,
        stats: RunStats
    ) -> Optional[MatchedProduct]:
        key = extract_identifier(pos_record, self.mapping.pos_id_fields)
        if key is None:
            stats.without_identifier += 1
            return None

        supplier_record = supplier_index.get(key)
        if supplier_record is None:
            stats.unmatched += 1
            return None

        diff = self.differ.reconcile(pos_record, supplier_record, scope)

        return MatchedProduct(
            normalized_id=key,
            supplier_record=supplier_record,
            pos_record=pos_record,
            updated_record=diff.updated_record,
            has_promotion=diff.has_promotion,
            price_updated=diff.price_updated,
            updated_fields=diff.updated_fields
        )


class ReconciliationSession:
    """
    Owns the two uploaded datasets and the latest reconciliation result.

    Each call to reconcile() rebuilds the supplier index and recomputes
    the matched products from scratch, replacing the previous result.
    """

    def __init__(
        self,
        supplier_records: Sequence[RawRecord],
        pos_records: Sequence[RawRecord],
        mapping: Optional[FieldMapping] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        yield_every: int = DEFAULT_YIELD_EVERY,
        metrics=None,
        progress_callback: Optional[ProgressCallback] = None
    ):
        """
        Initialize the session.

        Args:
            supplier_records: Supplier catalog rows
            pos_records: POS catalog rows
            mapping: Column names for supplier and POS fields
            chunk_size: Number of POS records per slice
            yield_every: Slices processed between yields
            metrics: Optional ReconciliationMetrics to record runs into
            progress_callback: Called with (processed, total) after each slice
        """
        self.supplier_records = supplier_records
        self.pos_records = pos_records
        self.mapping = mapping or FieldMapping()
        self.metrics = metrics
        self.index_builder = SupplierIndexBuilder(self.mapping.supplier_id_fields)
        self.driver = ChunkedReconciliationDriver(
            chunk_size=chunk_size,
            yield_every=yield_every,
            mapping=self.mapping,
            progress_callback=progress_callback
        )

        self.scope = Scope.ALL
        self.matched_products: List[MatchedProduct] = []
        self.index_stats = IndexStats()
        self.run_stats = RunStats()
        self.duration_seconds = 0.0

    async def reconcile(self, scope: Union[Scope, str] = Scope.ALL) -> List[MatchedProduct]:
        """
        Run a full reconciliation pass.

        Args:
            scope: Which price fields to compare

        Returns:
            Matched products in POS input order
        """
        scope = Scope.parse(scope)
        start_time = time.monotonic()

        if not self.supplier_records or not self.pos_records:
            logger.info(
                f"Nothing to reconcile: {len(self.supplier_records or [])} supplier rows, "
                f"{len(self.pos_records or [])} POS rows"
            )
            self.scope = scope
            self.matched_products = []
            self.index_stats = IndexStats(records_seen=len(self.supplier_records or []))
            self.run_stats = RunStats(pos_records=len(self.pos_records or []))
            self.duration_seconds = time.monotonic() - start_time

            if self.metrics is not None:
                self.metrics.record_reconciliation_run(
                    scope=scope.value,
                    status="success",
                    duration_seconds=self.duration_seconds,
                    matched_products=self.matched_products,
                    index_stats=self.index_stats,
                    run_stats=self.run_stats
                )
            return self.matched_products

        logger.info(
            f"Starting reconciliation (scope={scope.value}) of "
            f"{len(self.supplier_records)} supplier rows and {len(self.pos_records)} POS rows",
            extra={"scope": scope.value}
        )

        try:
            index, index_stats = self.index_builder.build(self.supplier_records)
            matched = await self.driver.run(self.pos_records, index, scope)
        except Exception:
            if self.metrics is not None:
                self.metrics.record_failed_run(scope.value)
            raise

        self.scope = scope
        self.matched_products = matched
        self.index_stats = index_stats
        self.run_stats = self.driver.last_stats
        self.duration_seconds = time.monotonic() - start_time

        logger.info(
            f"Reconciliation completed in {self.duration_seconds:.2f}s",
            extra={
                "scope": scope.value,
                "duration": self.duration_seconds,
                "matched": len(matched)
            }
        )

        if self.metrics is not None:
            self.metrics.record_reconciliation_run(
                scope=scope.value,
                status="success",
                duration_seconds=self.duration_seconds,
                matched_products=matched,
                index_stats=index_stats,
                run_stats=self.run_stats
            )

        return matched

    def reconcile_sync(self, scope: Union[Scope, str] = Scope.ALL) -> List[MatchedProduct]:
        """Run reconcile() to completion on a fresh event loop."""
        return asyncio.run(self.reconcile(scope))
