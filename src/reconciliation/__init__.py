"""
Reconciliation Module for Supplier / POS Catalogs

This module matches a supplier catalog against a point-of-sale catalog by
normalized UPC, detects price drift, and classifies products by
temporary-price-reduction (TPR) status.

Main components:
- normalizer: Identifier normalization
- indexer: Supplier index construction
- comparer: Numeric price comparison
- differ: Promotion detection and price drift
- driver: Chunked, cooperative reconciliation runs
- partitioner: Result views and export projections
- labels: Shelf label data

Usage:
    from src.reconciliation import ReconciliationSession, ResultPartitioner

    session = ReconciliationSession(supplier_rows, pos_rows)
    matched = session.reconcile_sync(scope="all")

    partitioner = ResultPartitioner(matched)
    updated = partitioner.updated_only()
"""

from src.reconciliation.comparer import PriceComparer
from src.reconciliation.differ import DiffResult, PriceDiffer
from src.reconciliation.driver import ChunkedReconciliationDriver, ReconciliationSession
from src.reconciliation.indexer import IndexStats, SupplierIndexBuilder, build_supplier_index
from src.reconciliation.labels import LabelData, build_labels
from src.reconciliation.models import FieldMapping, MatchedProduct, Scope
from src.reconciliation.normalizer import normalize_identifier
from src.reconciliation.partitioner import ExportSheet, ResultPartitioner

__all__ = [
    "PriceComparer",
    "DiffResult",
    "PriceDiffer",
    "ChunkedReconciliationDriver",
    "ReconciliationSession",
    "IndexStats",
    "SupplierIndexBuilder",
    "build_supplier_index",
    "LabelData",
    "build_labels",
    "FieldMapping",
    "MatchedProduct",
    "Scope",
    "normalize_identifier",
    "ExportSheet",
    "ResultPartitioner",
]

__version__ = "1.0.0"
