"""
app/readers package marker.
"""

from app.readers.workbook_reader import WorkbookFormatError, read_workbook_rows

__all__ = [
    "WorkbookFormatError",
    "read_workbook_rows",
]
