"""
Shelf Label Projector

Turns product rows (a supplier catalog, or an exported reconciliation
sheet) into shelf-label data. Column names differ between exports, so
each label field falls back through a short list of alternate columns.
Rendering the labels is left to the caller.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

from src.reconciliation.comparer import PriceComparer
from src.reconciliation.models import RawRecord

logger = logging.getLogger(__name__)

DESCRIPTION_FIELDS = ("DESCRIPTION", "Item Name")
PRICE_FIELDS = ("BASE_RETAIL", "Price", "RETAIL")
ORIGINAL_PRICE_FIELDS = ("BASE_RETAIL", "Price")
UPC_FIELDS = ("UPC", "Barcode", "Code")

DEFAULT_DESCRIPTION = "Product Description"
DEFAULT_UPC = "000000000000"
TPR_INDICATOR_VALUES = {"Y", "1"}


@dataclass
class LabelData:
    """Data printed on one shelf label."""

    id: str
    description: str
    price: str
    upc: str
    is_tpr: bool
    original_price: Optional[str] = None


def detect_tpr(record: RawRecord) -> bool:
    """Return True if the row is on a temporary price reduction."""
    if _truthy(record.get("TPR_RETAIL")):
        return True
    return str(record.get("TPR_INDICATOR", "")).strip() in TPR_INDICATOR_VALUES


def format_price(value: Any) -> str:
    """Format a price cell as "$0.00"; missing or non-numeric values print as $0.00."""
    number = PriceComparer.coerce_number(value) if _truthy(value) else None
    return f"${number or 0:.2f}"


def build_label(record: RawRecord, position: int) -> LabelData:
    """
    Build the label for one product row.

    Args:
        record: Product row
        position: Row position, used for the label id

    Returns:
        LabelData
    """
    is_tpr = detect_tpr(record)

    if is_tpr and _truthy(record.get("TPR_RETAIL")):
        price = format_price(record.get("TPR_RETAIL"))
    else:
        price = format_price(_first(record, PRICE_FIELDS))

    upc = _first(record, UPC_FIELDS)

    return LabelData(
        id=f"label-{position}",
        description=str(_first(record, DESCRIPTION_FIELDS) or DEFAULT_DESCRIPTION),
        price=price,
        upc=str(upc) if upc is not None else DEFAULT_UPC,
        is_tpr=is_tpr,
        original_price=format_price(_first(record, ORIGINAL_PRICE_FIELDS)) if is_tpr else None
    )


def build_labels(records: Sequence[RawRecord]) -> List[LabelData]:
    """
    Build labels for every product row, in order.

    Args:
        records: Product rows

    Returns:
        List of LabelData
    """
    labels = [build_label(record, i) for i, record in enumerate(records)]
    tpr_count = sum(1 for label in labels if label.is_tpr)
    logger.info(f"Built {len(labels)} labels ({tpr_count} TPR)")
    return labels


def labels_to_records(labels: Sequence[LabelData]) -> List[Dict[str, Any]]:
    """Flatten labels into export rows."""
    return [asdict(label) for label in labels]


def _first(record: RawRecord, fields: Sequence[str]) -> Any:
    for name in fields:
        value = record.get(name)
        if _truthy(value):
            return value
    return None


def _truthy(value: Any) -> bool:
    # Blank cells arrive as "" and NaN
    if value is None or value == "" or value == 0:
        return False
    if isinstance(value, float) and value != value:
        return False
    return bool(value)
