"""
Price Comparer for Catalog Reconciliation

Provides field-level comparison of price cells between supplier and POS
records. Spreadsheet cells arrive as text or numbers; both sides are
coerced to numbers and compared numerically, so "20.00" equals 20.
"""

import logging
import math
from decimal import Decimal
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

Number = Union[int, float]


class PriceComparer:
    """
    Compares price values from supplier and POS records.

    A value that cannot be coerced to a finite number makes the field
    not comparable; such fields are skipped rather than reported.
    """

    def __init__(self, tolerance: float = 0.0):
        """
        Initialize the price comparer.

        Args:
            tolerance: Absolute difference below which two prices are equal
        """
        self.tolerance = tolerance
        logger.debug(f"Initialized PriceComparer (tolerance={tolerance})")

    @staticmethod
    def is_present(record: Any, field_name: str) -> bool:
        """
        Check whether a record carries a value for a field.

        Args:
            record: Raw record
            field_name: Column name

        Returns:
            True if the key exists and its value is not None
        """
        return record.get(field_name) is not None

    @staticmethod
    def coerce_number(value: Any) -> Optional[Number]:
        """
        Coerce a cell value to a number.

        Handles:
        - int/float cells (booleans are rejected)
        - Decimal values
        - numeric text with surrounding whitespace, e.g. " 9.99 "

        Args:
            value: Cell value

        Returns:
            int or float, or None if the value is not a finite number
        """
        if value is None or isinstance(value, bool):
            return None

        if isinstance(value, Decimal):
            value = float(value)

        if isinstance(value, int):
            return value

        if isinstance(value, float):
            return value if math.isfinite(value) else None

        text = str(value).strip()
        if not text:
            return None

        try:
            return int(text)
        except ValueError:
            pass

        try:
            number = float(text)
        except ValueError:
            logger.debug(f"Value {value!r} is not numeric")
            return None

        return number if math.isfinite(number) else None

    def compare_field(
        self,
        supplier_value: Any,
        pos_value: Any
    ) -> Optional[bool]:
        """
        Compare a supplier price with a POS price.

        Args:
            supplier_value: Supplier cell value
            pos_value: POS cell value

        Returns:
            True if equal, False if different, None if not comparable
        """
        supplier_number = self.coerce_number(supplier_value)
        pos_number = self.coerce_number(pos_value)

        if supplier_number is None or pos_number is None:
            return None

        return self.values_equal(supplier_number, pos_number)

    def values_equal(self, value1: Number, value2: Number) -> bool:
        """
        Compare two coerced numbers.

        Args:
            value1: First number
            value2: Second number

        Returns:
            True if the values are numerically equal
        """
        if self.tolerance:
            return abs(value1 - value2) <= self.tolerance
        return value1 == value2
