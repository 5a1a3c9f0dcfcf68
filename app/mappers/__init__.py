"""
app/mappers package marker.
"""

from app.mappers.column_resolver import resolve_header_index

__all__ = [
    "resolve_header_index",
]
