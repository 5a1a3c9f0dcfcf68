"""
app/services package marker.
"""

from app.services.workbook_aggregation_service import (
    WorkbookAggregationError,
    WorkbookAggregationService,
    get_workbook_aggregation_service,
)

__all__ = [
    "WorkbookAggregationError",
    "WorkbookAggregationService",
    "get_workbook_aggregation_service",
]
