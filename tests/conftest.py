"""
Pytest configuration and shared fixtures for unit and integration tests.

Provides small supplier and POS catalogs covering the common cases:
a price update, a TPR product, an unchanged product, an unmatched POS
row and a POS row without a barcode.
"""

import importlib.util
import logging
from pathlib import Path

import pytest


@pytest.fixture
def supplier_records():
    """Sample supplier catalog rows."""
    return [
        {"UPC": "012345", "DESCRIPTION": "Cola 12pk", "BASE_UNIT_COST": 10, "BASE_RETAIL": 20, "TPR_RETAIL": ""},
        {"UPC": "0000222", "DESCRIPTION": "Chips", "BASE_UNIT_COST": 1.5, "BASE_RETAIL": 2.99, "TPR_RETAIL": "2.49"},
        {"UPC": "333", "DESCRIPTION": "Water", "BASE_UNIT_COST": "0.50", "BASE_RETAIL": "1.00", "TPR_RETAIL": ""},
        {"UPC": "", "DESCRIPTION": "No UPC", "BASE_UNIT_COST": 1, "BASE_RETAIL": 2, "TPR_RETAIL": ""},
    ]


@pytest.fixture
def pos_records():
    """Sample POS catalog rows."""
    return [
        {"Barcode": "0012345", "Item Name": "COLA 12PK", "Cost": 9, "Price": 20},
        {"Barcode": "222", "Item Name": "CHIPS", "Cost": 1.0, "Price": 3.49},
        {"Barcode": "999", "Item Name": "UNKNOWN", "Cost": 1, "Price": 1},
        {"Item Name": "NO BARCODE", "Cost": 1, "Price": 1},
        {"Barcode": "333", "Item Name": "WATER", "Cost": 0.5, "Price": "1"},
    ]


@pytest.fixture
def large_catalogs():
    """
    Supplier and POS catalogs with a few thousand rows.

    Every third POS row has no supplier match; every fifth supplier row
    is on TPR; even-numbered products have drifted cost.
    """
    supplier = []
    pos = []
    for i in range(1, 3501):
        supplier.append({
            "UPC": f"{i:012d}",
            "BASE_UNIT_COST": i,
            "BASE_RETAIL": i * 2,
            "TPR_RETAIL": "0.99" if i % 5 == 0 else "",
        })
    for i in range(1, 4201):
        barcode = str(i) if i % 3 else str(100000 + i)
        pos.append({
            "Barcode": barcode,
            "Cost": i + 1 if i % 2 == 0 else i,
            "Price": i * 2,
        })
    return supplier, pos


@pytest.fixture
def restore_logging():
    """Remove handlers installed by configure_logging() and restore the root level."""
    from src.utils.run_context import RunIdFilter

    root = logging.getLogger()
    level = root.level

    yield root

    for handler in list(root.handlers):
        if any(isinstance(f, RunIdFilter) for f in handler.filters):
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def reconcile_cli():
    """The scripts/reconcile.py command line tool loaded as a module."""
    script = Path(__file__).resolve().parent.parent / "scripts" / "reconcile.py"
    module_spec = importlib.util.spec_from_file_location("reconcile_cli", script)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module
