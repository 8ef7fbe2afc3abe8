"""
Supplier Index Builder for Catalog Reconciliation

Builds the lookup table used during matching: normalized identifier to
supplier record. Duplicate identifiers follow a last-write-wins policy;
they are counted and logged, never rejected.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from src.reconciliation.models import RawRecord
from src.reconciliation.normalizer import extract_identifier

logger = logging.getLogger(__name__)

DUPLICATE_SAMPLE_SIZE = 5


@dataclass
class IndexStats:
    """Counters collected while building a supplier index."""

    records_seen: int = 0
    indexed: int = 0
    skipped: int = 0
    duplicate_keys: List[str] = field(default_factory=list)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicate_keys)


class SupplierIndexBuilder:
    """
    Indexes supplier records by normalized identifier.

    Records without a usable identifier are skipped. When two records
    share a normalized identifier the later one replaces the earlier one.
    """

    def __init__(self, id_fields: Sequence[str] = ("UPC",)):
        """
        Initialize the index builder.

        Args:
            id_fields: Identifier columns, in priority order
        """
        self.id_fields = tuple(id_fields)
        logger.debug(f"Initialized SupplierIndexBuilder on fields {self.id_fields}")

    def build(
        self,
        records: Sequence[RawRecord]
    ) -> Tuple[Dict[str, RawRecord], IndexStats]:
        """
        Build the supplier index in a single pass.

        Args:
            records: Supplier records in upload order

        Returns:
            Tuple of (index, stats)
        """
        index: Dict[str, RawRecord] = {}
        stats = IndexStats()
        seen_duplicates = set()

        for record in records:
            stats.records_seen += 1

            key = extract_identifier(record, self.id_fields)
            if key is None:
                stats.skipped += 1
                continue

            if key in index and key not in seen_duplicates:
                seen_duplicates.add(key)
                stats.duplicate_keys.append(key)

            index[key] = record

        stats.indexed = len(index)

        if stats.duplicate_keys:
            sample = ", ".join(stats.duplicate_keys[:DUPLICATE_SAMPLE_SIZE])
            logger.warning(
                f"Found {stats.duplicate_count} duplicate supplier identifiers; "
                f"later rows replace earlier ones (e.g. {sample})"
            )

        logger.info(
            f"Indexed {stats.indexed} supplier identifiers from "
            f"{stats.records_seen} rows ({stats.skipped} without identifier)"
        )
        return index, stats


def build_supplier_index(
    records: Sequence[RawRecord],
    id_fields: Sequence[str] = ("UPC",)
) -> Dict[str, RawRecord]:
    """
    Build a normalized-identifier index over supplier records.

    Args:
        records: Supplier records
        id_fields: Identifier columns, in priority order

    Returns:
        Dictionary mapping normalized identifier to the last supplier record
        carrying it
    """
    index, _ = SupplierIndexBuilder(id_fields).build(records)
    return index
