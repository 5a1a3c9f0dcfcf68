"""
app/services/aggregation_service.py

Streaming aggregation of invoice rows.

Aggregates
----------
Each run builds, from scratch:

    country -> set of distinct customer ids
    YYYY-MM-DD -> number of rows invoiced that day

Month totals are never stored; they are derived from the day counts when a
result is finalized, so a month always equals the exact sum of its days.

The same ``iter_aggregation`` generator drives both execution strategies in
``app.services.execution``. Strategies differ only in where the generator runs
and how its messages reach the caller.
"""

from __future__ import annotations

import logging
from typing import Iterator, Mapping, Sequence

from app.domain.invoice_aggregate import (
    EMPTY,
    AggregationResult,
    CellValue,
    HeaderIndex,
    ProgressMessage,
    RawRow,
    ResultMessage,
    RunMessage,
    cell_text,
)
from app.mappers.column_resolver import resolve_header_index
from app.services.progress import DEFAULT_PROGRESS_STEPS, ProgressReporter
from app.validators.date_normalizer import DateNormalizer

logger = logging.getLogger(__name__)


def _cell_at(row: Sequence[CellValue], position: int | None) -> CellValue:
    if position is None or position >= len(row):
        return EMPTY
    return row[position]


class InvoiceAggregator:
    """
    Consumes rows strictly in input order and keeps running aggregates.

    Parameters
    ----------
    header_index:
        Resolved positions of ``Country``, ``CustomerID`` and ``InvoiceDate``.
    normalizer:
        Date normalizer; a default chain is used when omitted.
    """

    def __init__(
        self,
        header_index: HeaderIndex,
        *,
        normalizer: DateNormalizer | None = None,
    ) -> None:
        self._index = header_index
        self._normalizer = normalizer or DateNormalizer()
        self._country_customers: dict[str, set[str]] = {}
        self._date_counts: dict[str, int] = {}
        self._rows_processed = 0
        self._undated_rows = 0

    @property
    def rows_processed(self) -> int:
        return self._rows_processed

    @property
    def undated_rows(self) -> int:
        return self._undated_rows

    def ingest(self, row: Sequence[CellValue]) -> None:
        country = cell_text(_cell_at(row, self._index.country)).strip()
        customer = cell_text(_cell_at(row, self._index.customer_id)).strip()

        if country:
            customers = self._country_customers.setdefault(country, set())
            if customer:
                customers.add(customer)

        day = self._normalizer.normalize(_cell_at(row, self._index.invoice_date))
        if day is not None:
            self._date_counts[day] = self._date_counts.get(day, 0) + 1
        else:
            self._undated_rows += 1

        self._rows_processed += 1

    def finalize(self) -> AggregationResult:
        """
        Freeze the running state into an immutable result.
        """

        return AggregationResult(
            country_customer_counts={
                country: len(customers)
                for country, customers in self._country_customers.items()
            },
            date_counts=dict(self._date_counts),
            rows_processed=self._rows_processed,
        )


def iter_aggregation(
    rows: Sequence[RawRow],
    *,
    progress_steps: int = DEFAULT_PROGRESS_STEPS,
    normalizer: DateNormalizer | None = None,
) -> Iterator[RunMessage]:
    """
    Aggregate a decoded sheet, yielding progress messages then one result.

    ``rows[0]`` is the header. Every progress message is also a point where
    control returns to whoever drives the generator.
    """

    if not rows:
        yield ProgressMessage(percent=100)
        yield ResultMessage(country_customer_counts={}, date_counts={}, rows_processed=0)
        return

    header_index = resolve_header_index(rows[0])
    if header_index.missing_fields:
        logger.info(
            "Header is missing fields=%s; they are read as empty",
            ",".join(header_index.missing_fields),
        )

    data_rows = rows[1:]
    aggregator = InvoiceAggregator(header_index, normalizer=normalizer)
    reporter = ProgressReporter(len(data_rows), steps=progress_steps)

    yield ProgressMessage(percent=reporter.start())
    for rows_processed, row in enumerate(data_rows, start=1):
        aggregator.ingest(row)
        percent = reporter.advance(rows_processed)
        if percent is not None:
            yield ProgressMessage(percent=percent)

    result = aggregator.finalize()
    logger.debug(
        "Aggregated rows=%d countries=%d days=%d undated_rows=%d",
        result.rows_processed,
        len(result.country_customer_counts),
        len(result.date_counts),
        aggregator.undated_rows,
    )
    yield ResultMessage.from_result(result)


# ---------------------------------------------------------------------------
# Presentation ordering
# ---------------------------------------------------------------------------


def rank_countries(country_customer_counts: Mapping[str, int]) -> list[tuple[str, int]]:
    """
    Countries by descending customer count; ties keep encounter order.
    """

    return sorted(country_customer_counts.items(), key=lambda item: -item[1])


def sorted_date_items(date_counts: Mapping[str, int]) -> list[tuple[str, int]]:
    return sorted(date_counts.items())


def sorted_month_items(month_counts: Mapping[str, int]) -> list[tuple[str, int]]:
    return sorted(month_counts.items())
