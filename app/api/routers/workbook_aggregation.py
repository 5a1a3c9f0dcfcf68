"""
app/api/routers/workbook_aggregation.py

Workbook aggregation HTTP endpoints.
"""

from __future__ import annotations

from typing import Iterator, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status
from fastapi.responses import StreamingResponse

from app.api.dependencies import get_workbook_upload, read_upload_bytes
from app.config import WorkbookAggregationSettings, get_workbook_aggregation_settings
from app.domain.invoice_aggregate import AggregationResult
from app.schemas.workbook_aggregation import (
    MonthDetailResponse,
    PeriodShareResponse,
    WorkbookAggregationResponse,
    to_run_event,
)
from app.services.execution import AggregationRun
from app.services.view_projection import MonthDrilldown, UnknownMonthError
from app.services.workbook_aggregation_service import (
    WorkbookAggregationError,
    WorkbookAggregationService,
    get_workbook_aggregation_service,
)

router = APIRouter(tags=["aggregation"])

ExecutionMode = Literal["auto", "background", "foreground"]


def _month_detail(result: AggregationResult, month: str) -> MonthDetailResponse:
    drilldown = MonthDrilldown(result)
    drilldown.select(month)
    index = drilldown.selected_index or 0
    months = drilldown.months

    return MonthDetailResponse(
        month=month,
        total=result.month_counts[month],
        days=[PeriodShareResponse.from_share(share) for share in drilldown.daily_shares()],
        previous_month=months[index - 1] if index > 0 else None,
        next_month=months[index + 1] if index + 1 < len(months) else None,
    )


@router.post("/aggregate-workbook", response_model=WorkbookAggregationResponse)
def aggregate_workbook(
    file: UploadFile = Depends(get_workbook_upload),
    month: str | None = Query(default=None, description="Optional YYYY-MM month to break down by day"),
    mode: ExecutionMode | None = Query(default=None, description="Optional execution mode override"),
    settings: WorkbookAggregationSettings = Depends(get_workbook_aggregation_settings),
    aggregation_service: WorkbookAggregationService = Depends(get_workbook_aggregation_service),
) -> WorkbookAggregationResponse:
    """
    Aggregate one workbook into country, day and month counts.
    """

    data = read_upload_bytes(file, max_bytes=settings.max_upload_bytes)
    try:
        outcome = aggregation_service.aggregate(data, execution_mode=mode)
    except WorkbookAggregationError as exc:
        raise HTTPException(
            status_code=(
                status.HTTP_400_BAD_REQUEST
                if exc.is_format_error
                else status.HTTP_500_INTERNAL_SERVER_ERROR
            ),
            detail=exc.to_dict(),
        ) from exc

    month_detail: MonthDetailResponse | None = None
    if month is not None:
        try:
            month_detail = _month_detail(outcome.result, month)
        except UnknownMonthError as exc:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=str(exc),
            ) from exc

    return WorkbookAggregationResponse.from_outcome(outcome, month_detail=month_detail)


@router.post("/aggregate-workbook/stream")
def stream_workbook_aggregation(
    file: UploadFile = Depends(get_workbook_upload),
    mode: ExecutionMode | None = Query(default=None, description="Optional execution mode override"),
    settings: WorkbookAggregationSettings = Depends(get_workbook_aggregation_settings),
    aggregation_service: WorkbookAggregationService = Depends(get_workbook_aggregation_service),
) -> StreamingResponse:
    """
    Stream progress events then one result or error event as NDJSON.
    """

    data = read_upload_bytes(file, max_bytes=settings.max_upload_bytes)
    run = aggregation_service.start(data, execution_mode=mode)

    def _events(active_run: AggregationRun) -> Iterator[str]:
        try:
            for message in active_run:
                yield to_run_event(message).model_dump_json() + "\n"
        finally:
            active_run.close()

    headers = {"X-Aggregation-Strategy": run.strategy}
    if run.advisory:
        headers["X-Aggregation-Advisory"] = run.advisory
    return StreamingResponse(_events(run), media_type="application/x-ndjson", headers=headers)
