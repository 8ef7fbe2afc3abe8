"""
Prometheus Metrics for Catalog Reconciliation

Custom metrics for tracking reconciliation runs, match rates and price
drift. Runs are short batch jobs, so metrics are pushed to a Prometheus
Pushgateway at the end of a run rather than scraped.
"""

import logging
from typing import Any, Optional, Sequence

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    push_to_gateway,
)

logger = logging.getLogger(__name__)

DEFAULT_JOB_NAME = "catalog_reconciliation"


class ReconciliationMetrics:
    """Prometheus metrics for reconciliation runs."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize reconciliation metrics.

        Args:
            registry: Prometheus registry (a private one is created if not provided)
        """
        self.registry = registry or CollectorRegistry()

        # Reconciliation run counter
        self.reconciliation_runs_total = Counter(
            'catalog_reconciliation_runs_total',
            'Total number of reconciliation runs',
            ['scope', 'status'],
            registry=self.registry
        )

        # Rows read per dataset
        self.rows_processed_total = Counter(
            'catalog_rows_processed_total',
            'Total rows processed during reconciliation',
            ['dataset'],
            registry=self.registry
        )

        # Supplier identifiers replaced under last-write-wins
        self.duplicate_supplier_ids_total = Counter(
            'catalog_duplicate_supplier_ids_total',
            'Supplier identifiers seen more than once',
            registry=self.registry
        )

        # Reconciliation duration
        self.reconciliation_duration_seconds = Histogram(
            'catalog_reconciliation_duration_seconds',
            'Duration of reconciliation runs in seconds',
            ['scope'],
            buckets=[0.1, 0.5, 1, 2, 5, 10, 30, 60],
            registry=self.registry
        )

        # Latest run results
        self.matched_products = Gauge(
            'catalog_matched_products',
            'Matched products in the latest run',
            ['scope'],
            registry=self.registry
        )

        self.promotion_products = Gauge(
            'catalog_promotion_products',
            'Matched products with an active TPR in the latest run',
            ['scope'],
            registry=self.registry
        )

        self.updated_products = Gauge(
            'catalog_updated_products',
            'Non-promotional products with price drift in the latest run',
            ['scope'],
            registry=self.registry
        )

        self.match_rate_percentage = Gauge(
            'catalog_match_rate_percentage',
            'Share of POS rows matched to a supplier row (0-100)',
            ['scope'],
            registry=self.registry
        )

        logger.info("ReconciliationMetrics initialized")

    def record_reconciliation_run(
        self,
        scope: str,
        status: str,
        duration_seconds: float,
        matched_products: Sequence[Any],
        index_stats: Any,
        run_stats: Any
    ) -> None:
        """
        Record a completed reconciliation run.

        Args:
            scope: Run scope (cost/retail/all)
            status: Run status (success/failure)
            duration_seconds: Duration in seconds
            matched_products: Matched products of the run
            index_stats: IndexStats from the supplier index
            run_stats: RunStats from the driver
        """
        self.reconciliation_runs_total.labels(scope=scope, status=status).inc()
        self.reconciliation_duration_seconds.labels(scope=scope).observe(duration_seconds)

        self.rows_processed_total.labels(dataset='supplier').inc(index_stats.records_seen)
        self.rows_processed_total.labels(dataset='pos').inc(run_stats.pos_records)
        self.duplicate_supplier_ids_total.inc(index_stats.duplicate_count)

        promotion = sum(1 for p in matched_products if p.has_promotion)
        updated = sum(1 for p in matched_products if p.price_updated)

        self.matched_products.labels(scope=scope).set(len(matched_products))
        self.promotion_products.labels(scope=scope).set(promotion)
        self.updated_products.labels(scope=scope).set(updated)

        if run_stats.pos_records > 0:
            rate = len(matched_products) / run_stats.pos_records * 100
            self.match_rate_percentage.labels(scope=scope).set(rate)

        logger.debug(
            f"Recorded reconciliation metrics: scope={scope}, status={status}, "
            f"duration={duration_seconds}s, matched={len(matched_products)}"
        )

    def record_failed_run(self, scope: str) -> None:
        """Record a run that raised before completing."""
        self.reconciliation_runs_total.labels(scope=scope, status='failure').inc()

    def push(self, gateway: str, job: str = DEFAULT_JOB_NAME) -> bool:
        """
        Push metrics to a Prometheus Pushgateway.

        Args:
            gateway: Pushgateway address, e.g. "localhost:9091"
            job: Job name

        Returns:
            True if the push succeeded
        """
        try:
            push_to_gateway(gateway, job=job, registry=self.registry)
            logger.info(f"Pushed metrics to {gateway} (job={job})")
            return True
        except OSError as e:
            logger.warning(f"Failed to push metrics to {gateway}: {e}")
            return False
