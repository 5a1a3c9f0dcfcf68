"""
app/domain package marker.
"""

from app.domain.invoice_aggregate import (
    AggregationResult,
    CellValue,
    EmptyCell,
    HeaderIndex,
    NumberCell,
    RunOutcome,
    TextCell,
)

__all__ = [
    "AggregationResult",
    "CellValue",
    "EmptyCell",
    "HeaderIndex",
    "NumberCell",
    "RunOutcome",
    "TextCell",
]
