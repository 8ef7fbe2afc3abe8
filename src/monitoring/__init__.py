"""
Monitoring Module for Catalog Reconciliation

This module provides Prometheus metrics for reconciliation runs.

Usage:
    from src.monitoring import ReconciliationMetrics

    metrics = ReconciliationMetrics()
    session = ReconciliationSession(supplier_rows, pos_rows, metrics=metrics)
    session.reconcile_sync()
    metrics.push("localhost:9091")
"""

from src.monitoring.metrics import ReconciliationMetrics

__all__ = [
    "ReconciliationMetrics",
]

__version__ = "1.0.0"
