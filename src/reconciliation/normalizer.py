"""
Identifier Normalizer for Catalog Reconciliation

Canonicalizes UPC/barcode values so that identifiers exported by
different systems compare equal: "0012345", " 12-345 " and 12345 all
normalize to "12345".
"""

import logging
import math
import re
from typing import Any, Optional, Sequence

from src.reconciliation.models import RawRecord

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_NON_DIGIT = re.compile(r"\D", re.ASCII)


def normalize_identifier(raw: Any) -> Any:
    """
    Normalize a raw product identifier into a join key.

    Removes whitespace, removes every non-digit character, then strips
    leading zeros. Never raises: if normalization fails the original
    input is returned unchanged.

    Args:
        raw: Identifier as read from a spreadsheet cell

    Returns:
        Digit-only identifier without leading zeros
    """
    try:
        text = _as_text(raw)
        text = _WHITESPACE.sub("", text)
        text = _NON_DIGIT.sub("", text)
        return text.lstrip("0")
    except Exception as e:
        logger.debug(f"Could not normalize identifier {raw!r}: {e}")
        return raw


def extract_identifier(
    record: RawRecord,
    id_fields: Sequence[str]
) -> Optional[str]:
    """
    Read and normalize the identifier of a record.

    Args:
        record: Raw record
        id_fields: Candidate identifier columns, in priority order

    Returns:
        Normalized identifier, or None if the record has no usable identifier
    """
    for field_name in id_fields:
        value = record.get(field_name)
        if is_blank(value):
            continue

        key = normalize_identifier(value)
        if isinstance(key, str) and key:
            return key
        return None

    return None


def is_blank(value: Any) -> bool:
    """Return True for absent cells: None, NaN or whitespace-only text."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def _as_text(raw: Any) -> str:
    # Spreadsheet readers hand back 12345.0 for integer UPC cells
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    return str(raw)
