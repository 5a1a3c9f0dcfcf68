"""
app/domain/invoice_aggregate.py

Domain models used by the invoice workbook aggregation flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Union

FIELD_COUNTRY = "Country"
FIELD_CUSTOMER_ID = "CustomerID"
FIELD_INVOICE_DATE = "InvoiceDate"

REQUIRED_FIELDS: tuple[str, ...] = (
    FIELD_COUNTRY,
    FIELD_CUSTOMER_ID,
    FIELD_INVOICE_DATE,
)


# ---------------------------------------------------------------------------
# Cell values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextCell:
    """
    Decoded text cell.
    """

    value: str


@dataclass(frozen=True)
class NumberCell:
    """
    Decoded numeric cell (spreadsheet dates arrive here as serials).
    """

    value: int | float


@dataclass(frozen=True)
class EmptyCell:
    """
    Blank or missing cell.
    """


EMPTY = EmptyCell()

CellValue = Union[TextCell, NumberCell, EmptyCell]
RawRow = tuple[CellValue, ...]


def format_number(value: int | float) -> str:
    """
    Render a number in its shortest form; integral floats drop the fraction.
    """

    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def cell_text(cell: CellValue) -> str:
    """
    Stringify one cell the way text fields are read.
    """

    if isinstance(cell, TextCell):
        return cell.value
    if isinstance(cell, NumberCell):
        return format_number(cell.value)
    return ""


# ---------------------------------------------------------------------------
# Header index
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HeaderIndex:
    """
    Positions of the logical fields inside the header row.

    ``None`` marks a field the header does not contain.
    """

    country: int | None
    customer_id: int | None
    invoice_date: int | None

    @property
    def missing_fields(self) -> tuple[str, ...]:
        missing: list[str] = []
        if self.country is None:
            missing.append(FIELD_COUNTRY)
        if self.customer_id is None:
            missing.append(FIELD_CUSTOMER_ID)
        if self.invoice_date is None:
            missing.append(FIELD_INVOICE_DATE)
        return tuple(missing)


# ---------------------------------------------------------------------------
# Aggregation result
# ---------------------------------------------------------------------------


def derive_month_counts(date_counts: Mapping[str, int]) -> dict[str, int]:
    """
    Sum day counts into ``YYYY-MM`` buckets, keys in ascending order.
    """

    months: dict[str, int] = {}
    for day in sorted(date_counts):
        month = day[:7]
        months[month] = months.get(month, 0) + date_counts[day]
    return months


@dataclass(frozen=True)
class AggregationResult:
    """
    Final, read-only output of one aggregation run.
    """

    country_customer_counts: Mapping[str, int]
    date_counts: Mapping[str, int]
    rows_processed: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "country_customer_counts",
            MappingProxyType(dict(self.country_customer_counts)),
        )
        object.__setattr__(self, "date_counts", MappingProxyType(dict(self.date_counts)))

    @property
    def month_counts(self) -> Mapping[str, int]:
        return MappingProxyType(derive_month_counts(self.date_counts))

    @property
    def no_data(self) -> bool:
        return self.rows_processed == 0

    def to_dict(self) -> dict[str, object]:
        return {
            "country_customer_counts": dict(self.country_customer_counts),
            "date_counts": dict(self.date_counts),
            "month_counts": dict(self.month_counts),
            "rows_processed": self.rows_processed,
        }


# ---------------------------------------------------------------------------
# Run messages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProgressMessage:
    """
    Completion percentage in [0, 100].
    """

    percent: int


@dataclass(frozen=True)
class ResultMessage:
    """
    Terminal message carrying the aggregates.
    """

    country_customer_counts: dict[str, int]
    date_counts: dict[str, int]
    rows_processed: int = 0

    @classmethod
    def from_result(cls, result: AggregationResult) -> "ResultMessage":
        return cls(
            country_customer_counts=dict(result.country_customer_counts),
            date_counts=dict(result.date_counts),
            rows_processed=result.rows_processed,
        )

    def to_result(self) -> AggregationResult:
        return AggregationResult(
            country_customer_counts=self.country_customer_counts,
            date_counts=self.date_counts,
            rows_processed=self.rows_processed,
        )


@dataclass(frozen=True)
class ErrorMessage:
    """
    Terminal message reporting a processing fault.
    """

    message: str
    error_type: str = "RuntimeError"


RunMessage = Union[ProgressMessage, ResultMessage, ErrorMessage]


@dataclass(frozen=True)
class RunOutcome:
    """
    Everything a consumer receives from one completed run.
    """

    result: AggregationResult
    progress: list[int] = field(default_factory=list)
    strategy: str = "foreground"
    advisory: str | None = None
