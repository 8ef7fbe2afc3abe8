"""
Price Differ for Catalog Reconciliation

Determines the promotion status of a matched supplier/POS pair and
computes which POS price fields drifted from the supplier catalog.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from src.reconciliation.comparer import PriceComparer
from src.reconciliation.models import (
    COST_FIELD,
    RETAIL_FIELD,
    FieldMapping,
    RawRecord,
    Scalar,
    Scope,
)

logger = logging.getLogger(__name__)


@dataclass
class DiffResult:
    """Outcome of reconciling one POS record against its supplier record."""

    has_promotion: bool
    updated_record: Dict[str, Scalar]
    price_updated: bool = False
    updated_fields: Tuple[str, ...] = field(default_factory=tuple)


class PriceDiffer:
    """
    Detects price drift between a supplier record and a POS record.

    Products on a temporary price reduction are exempt: their POS price
    is expected to diverge while the promotion runs, so no fields are
    compared. Otherwise unit cost and retail price are compared in that
    order, subject to the run scope.
    """

    def __init__(
        self,
        mapping: Optional[FieldMapping] = None,
        comparer: Optional[PriceComparer] = None
    ):
        """
        Initialize the price differ.

        Args:
            mapping: Column names for supplier and POS fields
            comparer: Price comparer (default: exact numeric equality)
        """
        self.mapping = mapping or FieldMapping()
        self.comparer = comparer or PriceComparer()
        logger.debug("Initialized PriceDiffer")

    def has_promotion(self, supplier_record: RawRecord) -> bool:
        """
        Check whether a supplier record carries an active promotional price.

        Any non-blank value counts, including a numeric 0. Shelf labels use
        truthiness instead (see labels.detect_tpr), so 0 is not TPR there.

        Args:
            supplier_record: Supplier record

        Returns:
            True if the promotional field is present and non-blank
        """
        value = supplier_record.get(self.mapping.promotion_field)
        if value is None:
            return False
        if isinstance(value, float) and value != value:
            return False
        return str(value).strip() != ""

    def reconcile(
        self,
        pos_record: RawRecord,
        supplier_record: RawRecord,
        scope: Union[Scope, str] = Scope.ALL
    ) -> DiffResult:
        """
        Reconcile a POS record against its supplier record.

        Args:
            pos_record: POS record (never mutated)
            supplier_record: Supplier record (never mutated)
            scope: Which price fields to compare

        Returns:
            DiffResult with a derived copy of the POS record
        """
        scope = Scope.parse(scope)
        updated_record = dict(pos_record)

        if self.has_promotion(supplier_record):
            return DiffResult(has_promotion=True, updated_record=updated_record)

        updated_fields: List[str] = []
        checks = (
            (scope.includes_cost, self.mapping.supplier_cost_field,
             self.mapping.pos_cost_field, COST_FIELD),
            (scope.includes_retail, self.mapping.supplier_retail_field,
             self.mapping.pos_price_field, RETAIL_FIELD),
        )

        for in_scope, supplier_field, pos_field, canonical_name in checks:
            if not in_scope:
                continue
            if self._apply_field(
                updated_record,
                supplier_record,
                pos_record,
                supplier_field,
                pos_field
            ):
                updated_fields.append(canonical_name)

        return DiffResult(
            has_promotion=False,
            updated_record=updated_record,
            price_updated=bool(updated_fields),
            updated_fields=tuple(updated_fields)
        )

    def _apply_field(
        self,
        updated_record: Dict[str, Scalar],
        supplier_record: RawRecord,
        pos_record: RawRecord,
        supplier_field: str,
        pos_field: str
    ) -> bool:
        """Overwrite a drifted POS field with the supplier price. Returns True if changed."""
        if not (
            self.comparer.is_present(supplier_record, supplier_field)
            and self.comparer.is_present(pos_record, pos_field)
        ):
            return False

        supplier_value = supplier_record[supplier_field]
        equal = self.comparer.compare_field(supplier_value, pos_record[pos_field])
        if equal is None or equal:
            return False

        updated_record[pos_field] = self.comparer.coerce_number(supplier_value)
        return True
