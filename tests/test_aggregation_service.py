"""
tests/test_aggregation_service.py

Pytest unit tests for InvoiceAggregator and the shared aggregation stream.

All tests are pure Python: rows are built from tagged cells directly, no
workbook decoding involved.
"""

from __future__ import annotations

import pytest

from app.domain.invoice_aggregate import (
    EMPTY,
    AggregationResult,
    NumberCell,
    ProgressMessage,
    ResultMessage,
    TextCell,
    derive_month_counts,
)
from app.mappers.column_resolver import resolve_header_index
from app.services.aggregation_service import (
    InvoiceAggregator,
    iter_aggregation,
    rank_countries,
    sorted_date_items,
    sorted_month_items,
)

HEADER = (TextCell("InvoiceNo"), TextCell("Country"), TextCell("CustomerID"), TextCell("InvoiceDate"))


def _row(invoice: str, country, customer, invoice_date) -> tuple:
    return (TextCell(invoice), country, customer, invoice_date)


ROWS = [
    _row("536365", TextCell("United Kingdom"), NumberCell(17850), TextCell("12/1/2010 8:26")),
    _row("536366", TextCell("United Kingdom"), NumberCell(17850.0), TextCell("12/1/2010 8:28")),
    _row("536367", TextCell("United Kingdom"), NumberCell(13047), NumberCell(40514)),
    _row("536368", TextCell("France"), TextCell("12583"), TextCell("2010-12-02")),
    _row("536369", TextCell("France"), EMPTY, TextCell("garbage")),
    _row("536370", TextCell(" Germany "), TextCell("  "), TextCell("2011/1/5")),
    _row("536371", EMPTY, NumberCell(99999), TextCell("2011-01-05")),
]


@pytest.fixture()
def aggregator() -> InvoiceAggregator:
    return InvoiceAggregator(resolve_header_index(HEADER))


class TestInvoiceAggregator:
    def test_counts_distinct_customers_per_country(self, aggregator: InvoiceAggregator) -> None:
        for row in ROWS:
            aggregator.ingest(row)

        result = aggregator.finalize()

        assert dict(result.country_customer_counts) == {
            "United Kingdom": 2,
            "France": 1,
            "Germany": 0,
        }

    def test_duplicate_customers_do_not_inflate_counts(self, aggregator: InvoiceAggregator) -> None:
        for _ in range(5):
            aggregator.ingest(_row("1", TextCell("Spain"), TextCell("42"), EMPTY))

        assert aggregator.finalize().country_customer_counts == {"Spain": 1}

    def test_counts_rows_per_day(self, aggregator: InvoiceAggregator) -> None:
        for row in ROWS:
            aggregator.ingest(row)

        assert dict(aggregator.finalize().date_counts) == {
            "2010-12-01": 2,
            "2010-12-02": 2,
            "2011-01-05": 2,
        }

    def test_undated_rows_are_dropped_but_counted_as_processed(self, aggregator: InvoiceAggregator) -> None:
        for row in ROWS:
            aggregator.ingest(row)

        assert aggregator.rows_processed == len(ROWS)
        assert aggregator.undated_rows == 1

    def test_short_rows_read_as_empty(self, aggregator: InvoiceAggregator) -> None:
        aggregator.ingest((TextCell("536380"), TextCell("Norway")))

        result = aggregator.finalize()
        assert result.country_customer_counts == {"Norway": 0}
        assert result.date_counts == {}

    def test_absent_country_column_yields_no_countries(self) -> None:
        aggregator = InvoiceAggregator(resolve_header_index((TextCell("CustomerID"), TextCell("InvoiceDate"))))
        aggregator.ingest((TextCell("1"), TextCell("2011-01-01")))

        result = aggregator.finalize()
        assert result.country_customer_counts == {}
        assert result.date_counts == {"2011-01-01": 1}

    def test_finalized_result_is_read_only(self, aggregator: InvoiceAggregator) -> None:
        aggregator.ingest(ROWS[0])
        result = aggregator.finalize()

        with pytest.raises(TypeError):
            result.date_counts["2099-01-01"] = 1  # type: ignore[index]


class TestMonthCounts:
    def test_month_is_exact_sum_of_its_days(self) -> None:
        date_counts = {"2011-01-31": 4, "2010-12-01": 2, "2011-01-01": 3, "2010-12-31": 1}

        months = derive_month_counts(date_counts)

        assert months == {"2010-12": 3, "2011-01": 7}
        assert list(months) == ["2010-12", "2011-01"]
        assert sum(months.values()) == sum(date_counts.values())

    def test_result_exposes_derived_months(self) -> None:
        result = AggregationResult(
            country_customer_counts={},
            date_counts={"2011-02-01": 1, "2011-02-02": 5},
        )

        assert dict(result.month_counts) == {"2011-02": 6}


class TestIterAggregation:
    def test_progress_then_single_result(self) -> None:
        messages = list(iter_aggregation([HEADER, *ROWS]))

        assert all(isinstance(message, ProgressMessage) for message in messages[:-1])
        assert isinstance(messages[-1], ResultMessage)
        percents = [message.percent for message in messages[:-1]]
        assert percents == sorted(percents)
        assert percents[-1] == 100

    def test_header_only_table_is_empty_not_an_error(self) -> None:
        messages = list(iter_aggregation([HEADER]))

        assert messages == [
            ProgressMessage(percent=100),
            ResultMessage(country_customer_counts={}, date_counts={}, rows_processed=0),
        ]
        assert messages[-1].to_result().no_data

    def test_no_rows_at_all_is_empty(self) -> None:
        messages = list(iter_aggregation([]))

        assert isinstance(messages[-1], ResultMessage)
        assert messages[-1].date_counts == {}

    def test_reports_every_five_percent(self) -> None:
        rows = [HEADER] + [_row(str(i), TextCell("Spain"), TextCell(str(i)), EMPTY) for i in range(200)]

        percents = [
            message.percent
            for message in iter_aggregation(rows)
            if isinstance(message, ProgressMessage)
        ]

        assert percents == [1, *range(5, 101, 5)]


class TestPresentationOrdering:
    def test_countries_rank_by_count_then_encounter_order(self) -> None:
        ranked = rank_countries({"France": 2, "Spain": 3, "Germany": 2, "Italy": 1})

        assert ranked == [("Spain", 3), ("France", 2), ("Germany", 2), ("Italy", 1)]

    def test_dates_and_months_sort_ascending(self) -> None:
        assert sorted_date_items({"2011-01-02": 1, "2010-12-31": 2}) == [("2010-12-31", 2), ("2011-01-02", 1)]
        assert sorted_month_items({"2011-10": 1, "2011-09": 2}) == [("2011-09", 2), ("2011-10", 1)]
