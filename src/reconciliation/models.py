"""
Data Model for Catalog Price Reconciliation

Defines the record shapes shared by the reconciliation components:
raw records, the run scope, the configurable field mapping and the
matched product produced by a reconciliation run.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# A cell value as delivered by the ingestion boundary
Scalar = Union[str, int, float, None]
RawRecord = Mapping[str, Scalar]

# Canonical names reported in MatchedProduct.updated_fields
COST_FIELD = "BASE_UNIT_COST"
RETAIL_FIELD = "BASE_RETAIL"


class Scope(Enum):
    """Which price fields participate in diffing."""

    COST = "cost"
    RETAIL = "retail"
    ALL = "all"

    @classmethod
    def parse(cls, value: Union[str, "Scope", None]) -> "Scope":
        """
        Parse a scope selector.

        Args:
            value: "cost", "retail", "all", a Scope, or None for the default

        Returns:
            Scope member

        Raises:
            ValueError: If the value is not a recognized scope
        """
        if value is None:
            return cls.ALL
        if isinstance(value, cls):
            return value

        text = str(value).strip().lower()
        for member in cls:
            if member.value == text:
                return member

        raise ValueError(
            f"Unknown scope '{value}'. "
            f"Expected one of: {', '.join(m.value for m in cls)}"
        )

    @property
    def includes_cost(self) -> bool:
        return self in (Scope.COST, Scope.ALL)

    @property
    def includes_retail(self) -> bool:
        return self in (Scope.RETAIL, Scope.ALL)


@dataclass(frozen=True)
class FieldMapping:
    """
    Column names used to read supplier and POS records.

    Identifier fields are ordered alternates: the first column holding a
    non-empty value is used.
    """

    supplier_id_fields: Tuple[str, ...] = ("UPC",)
    pos_id_fields: Tuple[str, ...] = ("Barcode",)
    promotion_field: str = "TPR_RETAIL"
    supplier_cost_field: str = COST_FIELD
    supplier_retail_field: str = RETAIL_FIELD
    pos_cost_field: str = "Cost"
    pos_price_field: str = "Price"

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FieldMapping":
        """Build a mapping from a config dictionary, keeping defaults for missing keys."""
        if not data:
            return cls()

        values = dict(data)
        for key in ("supplier_id_fields", "pos_id_fields"):
            if key in values:
                raw = values[key]
                values[key] = (raw,) if isinstance(raw, str) else tuple(raw)

        unknown = set(values) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown field mapping keys: {sorted(unknown)}")

        return cls(**values)


@dataclass(frozen=True)
class MatchedProduct:
    """One supplier record paired with one POS record sharing a normalized identifier."""

    normalized_id: str
    supplier_record: RawRecord
    pos_record: RawRecord
    updated_record: Dict[str, Scalar]
    has_promotion: bool
    price_updated: bool
    updated_fields: Tuple[str, ...] = field(default_factory=tuple)
