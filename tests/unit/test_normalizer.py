"""
Unit tests for reconciliation normalizer module.

Tests UPC/barcode normalization and identifier extraction.
"""

import pytest

from src.reconciliation.normalizer import extract_identifier, is_blank, normalize_identifier


class TestNormalizeIdentifier:
    """Test identifier normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("0012345", "12345"),
        ("012345", "12345"),
        ("00012345", "12345"),
        ("12345", "12345"),
        (" 12 345\t", "12345"),
        ("UPC-00123", "123"),
        ("0-12-34-5", "12345"),
        ("000", ""),
        ("", ""),
        ("ABC", ""),
    ])
    def test_normalizes_strings(self, raw, expected):
        """Test whitespace, non-digit and leading-zero stripping."""
        assert normalize_identifier(raw) == expected

    def test_normalizes_integers(self):
        """Test that integer cells are coerced to text."""
        assert normalize_identifier(12345) == "12345"

    def test_normalizes_integral_floats(self):
        """Test that spreadsheet floats like 12345.0 keep their digits."""
        assert normalize_identifier(12345.0) == "12345"
        assert normalize_identifier(1012345.0) == "1012345"

    def test_only_ascii_digits_are_kept(self):
        """Test that non-ASCII digit characters are discarded."""
        assert normalize_identifier("12٣٤") == "12"

    @pytest.mark.parametrize("raw", [
        "0012345", " 00 12 ", "UPC-0001", "abc", "", "0", 12345, 12345.0, "١٢٣"
    ])
    def test_idempotent(self, raw):
        """Test that normalizing twice gives the same result as once."""
        once = normalize_identifier(raw)
        assert normalize_identifier(once) == once

    def test_supplier_and_pos_forms_match(self):
        """Test that differently padded identifiers normalize to the same key."""
        assert normalize_identifier("00012345") == normalize_identifier("12345") == "12345"

    def test_fails_open_on_bad_input(self):
        """Test that a value which cannot be coerced is returned unchanged."""
        class Unprintable:
            def __str__(self):
                raise RuntimeError("boom")

        value = Unprintable()

        assert normalize_identifier(value) is value


class TestExtractIdentifier:
    """Test identifier extraction from records."""

    def test_extracts_and_normalizes(self):
        """Test reading the identifier column."""
        assert extract_identifier({"UPC": "0042"}, ("UPC",)) == "42"

    @pytest.mark.parametrize("record", [
        {},
        {"UPC": None},
        {"UPC": ""},
        {"UPC": "   "},
        {"UPC": float("nan")},
    ])
    def test_absent_identifier_returns_none(self, record):
        """Test that missing or empty identifiers are not usable."""
        assert extract_identifier(record, ("UPC",)) is None

    def test_identifier_without_digits_returns_none(self):
        """Test that identifiers normalizing to empty are not usable."""
        assert extract_identifier({"UPC": "N/A"}, ("UPC",)) is None
        assert extract_identifier({"UPC": "0000"}, ("UPC",)) is None

    def test_alternate_columns(self):
        """Test falling back to the next identifier column."""
        record = {"Barcode": "", "UPC": "0099"}

        assert extract_identifier(record, ("Barcode", "UPC")) == "99"

    def test_first_present_column_wins(self):
        """Test that the first non-empty column is used."""
        record = {"Barcode": "11", "UPC": "22"}

        assert extract_identifier(record, ("Barcode", "UPC")) == "11"


class TestIsBlank:
    """Test blank cell detection."""

    @pytest.mark.parametrize("value", [None, "", "  ", float("nan")])
    def test_blank_values(self, value):
        assert is_blank(value) is True

    @pytest.mark.parametrize("value", [0, "0", "x", 1.5])
    def test_non_blank_values(self, value):
        assert is_blank(value) is False
