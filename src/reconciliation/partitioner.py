"""
Result Partitioner and Export Projector

Derives the views users export after a reconciliation run: promotional
products, non-promotional products, and the price-updated subset, plus
flat export records and a run summary.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from src.reconciliation.models import MatchedProduct, Scalar

logger = logging.getLogger(__name__)

STATUS_FIELD = "STATUS"
UPDATED_FIELDS_FIELD = "UPDATED_FIELDS"

STATUS_UPDATED = "Updated"
STATUS_NO_CHANGE = "No Change"
STATUS_PROMOTION = "TPR"

NO_FIELDS_MARKER = "-"

PROMOTION_EXPORT = "tpr_products"
NON_PROMOTION_EXPORT = "non_tpr_products"

PROMOTION_SHEET = "TPR Products"
UPDATED_SHEET = "Non-TPR Products Filtered"
NON_PROMOTION_SHEET = "Non-TPR Products"


@dataclass
class ExportSheet:
    """A named, ordered sequence of flat records for tabular serialization."""

    name: str
    records: List[Dict[str, Scalar]] = field(default_factory=list)


class ResultPartitioner:
    """
    Read-only views over a collection of matched products.

    All methods are pure: the matched products are never modified and
    every view preserves the collection order.
    """

    def __init__(self, matched_products: Sequence[MatchedProduct]):
        """
        Initialize the partitioner.

        Args:
            matched_products: Output of a reconciliation run
        """
        self.matched_products = list(matched_products)

    def with_promotion(self) -> List[MatchedProduct]:
        """Products whose supplier record carries a promotional price."""
        return [p for p in self.matched_products if p.has_promotion]

    def without_promotion(self) -> List[MatchedProduct]:
        """Products without a promotional price."""
        return [p for p in self.matched_products if not p.has_promotion]

    def updated_only(self) -> List[MatchedProduct]:
        """Non-promotional products whose POS prices drifted."""
        return [p for p in self.without_promotion() if p.price_updated]

    @staticmethod
    def export_record(product: MatchedProduct) -> Dict[str, Scalar]:
        """
        Flatten a matched product into one export row.

        Supplier fields come first, POS fields override same-named keys,
        and the status fields are added last.

        Args:
            product: Matched product

        Returns:
            Flat record
        """
        record: Dict[str, Scalar] = dict(product.supplier_record)
        record.update(product.pos_record)

        if product.has_promotion:
            status = STATUS_PROMOTION
        elif product.price_updated:
            status = STATUS_UPDATED
        else:
            status = STATUS_NO_CHANGE

        record[STATUS_FIELD] = status
        record[UPDATED_FIELDS_FIELD] = ", ".join(product.updated_fields) or NO_FIELDS_MARKER
        return record

    def export_records(self, products: Sequence[MatchedProduct]) -> List[Dict[str, Scalar]]:
        """Flatten a sequence of matched products."""
        return [self.export_record(p) for p in products]

    def promotion_sheets(self) -> List[ExportSheet]:
        """Sheets for the promotional-products export."""
        return [
            ExportSheet(PROMOTION_SHEET, self.export_records(self.with_promotion())),
        ]

    def non_promotion_sheets(self) -> List[ExportSheet]:
        """Sheets for the non-promotional export: updated-only view, then full view."""
        return [
            ExportSheet(UPDATED_SHEET, self.export_records(self.updated_only())),
            ExportSheet(NON_PROMOTION_SHEET, self.export_records(self.without_promotion())),
        ]

    def export_sets(self) -> Dict[str, List[ExportSheet]]:
        """
        All export projections keyed by file base name.

        Returns:
            {"tpr_products": [...], "non_tpr_products": [...]}
        """
        return {
            PROMOTION_EXPORT: self.promotion_sheets(),
            NON_PROMOTION_EXPORT: self.non_promotion_sheets(),
        }

    def summary(
        self,
        total_supplier_rows: int = 0,
        total_pos_rows: int = 0,
        index_stats: Optional[Any] = None
    ) -> Dict[str, Any]:
        """
        Summary statistics of a reconciliation run.

        Args:
            total_supplier_rows: Rows in the supplier upload
            total_pos_rows: Rows in the POS upload
            index_stats: Optional IndexStats from the supplier index

        Returns:
            Summary dictionary with counts and match percentage
        """
        matched = len(self.matched_products)
        promotion = len(self.with_promotion())
        updated = len(self.updated_only())

        summary = {
            "total_supplier_rows": total_supplier_rows,
            "total_pos_rows": total_pos_rows,
            "indexed_supplier_ids": index_stats.indexed if index_stats else None,
            "duplicate_supplier_ids": index_stats.duplicate_count if index_stats else None,
            "matched_count": matched,
            "unmatched_pos_count": max(total_pos_rows - matched, 0),
            "promotion_count": promotion,
            "non_promotion_count": matched - promotion,
            "updated_count": updated,
            "match_percentage": self.calculate_match_percentage(matched, total_pos_rows),
        }

        logger.debug(f"Reconciliation summary: {summary}")
        return summary

    @staticmethod
    def calculate_match_percentage(matched: int, total_pos_rows: int) -> float:
        """
        Percentage of POS rows that found a supplier match.

        Returns:
            Match percentage (0-100), 100.0 when there are no POS rows
        """
        if total_pos_rows == 0:
            return 100.0
        return round(matched / total_pos_rows * 100.0, 2)
