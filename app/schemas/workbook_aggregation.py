"""
app/schemas/workbook_aggregation.py

Response schemas for workbook aggregation endpoints.
"""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, Field

from app.domain.invoice_aggregate import (
    AggregationResult,
    ErrorMessage,
    ProgressMessage,
    ResultMessage,
    RunMessage,
    RunOutcome,
)
from app.services.aggregation_service import rank_countries, sorted_date_items
from app.services.view_projection import (
    DailySeries,
    MonthDrilldown,
    PeriodShare,
    project_daily_series,
)


class CountryCustomersResponse(BaseModel):
    """
    One country with its distinct-customer count.
    """

    country: str
    customers: int = Field(..., ge=0)


class PeriodShareResponse(BaseModel):
    """
    Count of one day (``YYYY-MM-DD``) or month (``YYYY-MM``) with its
    percentage share.
    """

    period: str
    count: int = Field(..., ge=0)
    percent: float = Field(..., ge=0, le=100)

    @classmethod
    def from_share(cls, share: PeriodShare) -> "PeriodShareResponse":
        return cls(period=share.period, count=share.count, percent=share.percent)


class DailySeriesResponse(BaseModel):
    """
    Day counts as displayed: rolled up by month or cut to the recent window.
    """

    granularity: Literal["day", "month"]
    truncated: bool = False
    points: list[PeriodShareResponse] = Field(default_factory=list)

    @classmethod
    def from_series(cls, series: DailySeries) -> "DailySeriesResponse":
        return cls(
            granularity=series.granularity,
            truncated=series.truncated,
            points=[PeriodShareResponse.from_share(point) for point in series.points],
        )


class MonthDetailResponse(BaseModel):
    """
    Daily breakdown of one selected month.
    """

    month: str
    total: int = Field(..., ge=0)
    days: list[PeriodShareResponse] = Field(default_factory=list)
    previous_month: str | None = None
    next_month: str | None = None


class WorkbookAggregationResponse(BaseModel):
    """
    API response model for one completed aggregation run.
    """

    rows_processed: int = Field(..., ge=0)
    no_data: bool
    strategy: str
    advisory: str | None = None
    progress: list[int] = Field(default_factory=list)
    country_customer_counts: dict[str, int] = Field(default_factory=dict)
    date_counts: dict[str, int] = Field(default_factory=dict)
    month_counts: dict[str, int] = Field(default_factory=dict)
    country_ranking: list[CountryCustomersResponse] = Field(default_factory=list)
    month_shares: list[PeriodShareResponse] = Field(default_factory=list)
    daily_series: DailySeriesResponse | None = None
    month_detail: MonthDetailResponse | None = None

    @classmethod
    def from_outcome(
        cls,
        outcome: RunOutcome,
        *,
        month_detail: MonthDetailResponse | None = None,
    ) -> "WorkbookAggregationResponse":
        result = outcome.result
        return cls(
            rows_processed=result.rows_processed,
            no_data=result.no_data,
            strategy=outcome.strategy,
            advisory=outcome.advisory,
            progress=list(outcome.progress),
            country_customer_counts=dict(result.country_customer_counts),
            date_counts=dict(sorted_date_items(result.date_counts)),
            month_counts=dict(result.month_counts),
            country_ranking=[
                CountryCustomersResponse(country=country, customers=customers)
                for country, customers in rank_countries(result.country_customer_counts)
            ],
            month_shares=[
                PeriodShareResponse.from_share(share)
                for share in MonthDrilldown(result).month_shares()
            ],
            daily_series=DailySeriesResponse.from_series(project_daily_series(result.date_counts)),
            month_detail=month_detail,
        )


# ---------------------------------------------------------------------------
# Stream messages
# ---------------------------------------------------------------------------


class ProgressEvent(BaseModel):
    type: Literal["progress"] = "progress"
    percent: int = Field(..., ge=0, le=100)


class ResultEvent(BaseModel):
    type: Literal["result"] = "result"
    rows_processed: int = Field(..., ge=0)
    country_customer_counts: dict[str, int] = Field(default_factory=dict)
    date_counts: dict[str, int] = Field(default_factory=dict)
    month_counts: dict[str, int] = Field(default_factory=dict)


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str
    error_type: str


RunEvent = Union[ProgressEvent, ResultEvent, ErrorEvent]


def to_run_event(message: RunMessage) -> RunEvent:
    """
    Convert one run message into its wire schema.
    """

    if isinstance(message, ProgressMessage):
        return ProgressEvent(percent=message.percent)
    if isinstance(message, ResultMessage):
        result: AggregationResult = message.to_result()
        return ResultEvent(
            rows_processed=result.rows_processed,
            country_customer_counts=dict(result.country_customer_counts),
            date_counts=dict(sorted_date_items(result.date_counts)),
            month_counts=dict(result.month_counts),
        )
    if isinstance(message, ErrorMessage):
        return ErrorEvent(message=message.message, error_type=message.error_type)
    raise TypeError(f"Unknown run message: {message!r}")
