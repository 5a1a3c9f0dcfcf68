"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from fastapi import File, HTTPException, UploadFile, status

WORKBOOK_EXTENSIONS = (".xlsx", ".xlsm", ".csv")

WORKBOOK_CONTENT_TYPES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel.sheet.macroenabled.12",
    "text/csv",
    "application/csv",
}


def get_workbook_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a workbook or CSV by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_workbook_filename = filename.endswith(WORKBOOK_EXTENSIONS)
    is_workbook_content_type = content_type in WORKBOOK_CONTENT_TYPES

    if not is_workbook_filename and not is_workbook_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only .xlsx, .xlsm or .csv files are allowed.",
        )

    return file


def read_upload_bytes(file: UploadFile, *, max_bytes: int) -> bytes:
    """
    Read the whole upload once, rejecting payloads above ``max_bytes``.
    """

    try:
        data = file.file.read(max_bytes + 1)
    finally:
        file.file.close()

    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Upload exceeds the {max_bytes} byte limit.",
        )
    return data
