"""
app/api/routers package marker.
"""

from app.api.routers.workbook_aggregation import router as workbook_aggregation_router

__all__ = [
    "workbook_aggregation_router",
]
