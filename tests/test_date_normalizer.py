"""
tests/test_date_normalizer.py

Pytest unit tests for the invoice date fallback chain.

Coverage
--------
- Empty cells
- 1900 date-system serials, including the phantom 1900-02-29
- Epoch-offset fallback for serials the decomposition rejects
- General text parsing (ISO-8601 and fixed formats)
- YYYY/M/D pattern extraction from free text
- Unparseable values degrade to None, never raise
"""

from __future__ import annotations

import pytest

from app.domain.invoice_aggregate import EMPTY, NumberCell, TextCell
from app.validators.date_normalizer import DateNormalizer, normalize_invoice_date


class TestEmptyValues:
    def test_empty_cell_has_no_date(self) -> None:
        assert normalize_invoice_date(EMPTY) is None

    def test_blank_text_has_no_date(self) -> None:
        assert normalize_invoice_date(TextCell("   ")) is None


class TestSerialNumbers:
    @pytest.mark.parametrize(
        "serial, expected",
        [
            (42000, "2014-12-27"),
            (42005, "2015-01-01"),
            (40513, "2010-12-01"),
            (40513.35138888889, "2010-12-01"),
            (1, "1900-01-01"),
            (59, "1900-02-28"),
            (60, "1900-02-29"),
            (61, "1900-03-01"),
            (2958465, "9999-12-31"),
        ],
    )
    def test_serial_decomposition(self, serial: float, expected: str) -> None:
        assert normalize_invoice_date(NumberCell(serial)) == expected

    def test_fraction_just_below_midnight_rolls_to_next_day(self) -> None:
        assert normalize_invoice_date(NumberCell(40513.99999999999)) == "2010-12-02"

    def test_zero_falls_back_to_epoch_offset(self) -> None:
        assert DateNormalizer.from_serial(0) is None
        assert normalize_invoice_date(NumberCell(0)) == "1899-12-30"

    def test_negative_serial_falls_back_to_epoch_offset(self) -> None:
        assert normalize_invoice_date(NumberCell(-1)) == "1899-12-29"

    def test_epoch_offset_matches_unix_epoch(self) -> None:
        assert DateNormalizer.from_epoch_offset(25569) == "1970-01-01"

    @pytest.mark.parametrize("serial", [1e305, -1e305])
    def test_out_of_calendar_number_has_no_date(self, serial: float) -> None:
        assert DateNormalizer.from_epoch_offset(serial) is None
        assert normalize_invoice_date(NumberCell(serial)) is None

    def test_non_finite_number_has_no_date(self) -> None:
        assert normalize_invoice_date(NumberCell(float("nan"))) is None
        assert normalize_invoice_date(NumberCell(float("inf"))) is None


class TestTextValues:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("2011/3/4", "2011-03-04"),
            ("2011-3-4", "2011-03-04"),
            ("2010-12-01", "2010-12-01"),
            ("2011-12-09T12:50:00Z", "2011-12-09"),
            ("2011-12-09 12:50:00", "2011-12-09"),
            ("12/1/2010 8:26", "2010-12-01"),
            ("12/9/2011", "2011-12-09"),
            ("1 Dec 2010", "2010-12-01"),
            ("December 1, 2010", "2010-12-01"),
        ],
    )
    def test_general_text_parse(self, raw: str, expected: str) -> None:
        assert normalize_invoice_date(TextCell(raw)) == expected

    def test_pattern_found_inside_free_text(self) -> None:
        assert normalize_invoice_date(TextCell("Invoice 2011-3-4 #536365")) == "2011-03-04"

    def test_pattern_path_zero_pads(self) -> None:
        assert DateNormalizer.from_pattern("booked 2011/7/8 late") == "2011-07-08"

    @pytest.mark.parametrize("raw", ["not a date", "13/45/2011", "N/A"])
    def test_unrecognised_text_has_no_date(self, raw: str) -> None:
        assert normalize_invoice_date(TextCell(raw)) is None


class TestCanonicalForm:
    def test_results_sort_chronologically(self) -> None:
        raw = [
            TextCell("2011/10/2"),
            TextCell("2011/9/30"),
            NumberCell(40513),
            TextCell("2/1/2011"),
        ]
        days = [normalize_invoice_date(cell) for cell in raw]

        assert sorted(days) == ["2010-12-01", "2011-02-01", "2011-09-30", "2011-10-02"]

    def test_is_deterministic(self) -> None:
        normalizer = DateNormalizer()
        cell = TextCell("12/1/2010 8:26")
        assert {normalizer.normalize(cell) for _ in range(5)} == {"2010-12-01"}
