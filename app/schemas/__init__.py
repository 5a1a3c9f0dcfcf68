"""
app/schemas package marker.
"""

from app.schemas.workbook_aggregation import (
    CountryCustomersResponse,
    MonthDetailResponse,
    PeriodShareResponse,
    WorkbookAggregationResponse,
)

__all__ = [
    "CountryCustomersResponse",
    "MonthDetailResponse",
    "PeriodShareResponse",
    "WorkbookAggregationResponse",
]
