"""
app/services/view_projection.py

Month drill-down state for a finished aggregation result.

The state machine lives apart from the aggregator: new data never moves it,
and a fresh result always starts (or restarts) on the overview.

Share helpers turn the same counts into display percentages.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Union

from app.domain.invoice_aggregate import AggregationResult

# Above this many days the daily series is rolled up by month.
DAILY_SERIES_MONTHLY_THRESHOLD = 90
# Above this many days (and up to the threshold) only the most recent are kept.
DAILY_SERIES_RECENT_DAYS = 30

GRANULARITY_DAY = "day"
GRANULARITY_MONTH = "month"


class UnknownMonthError(ValueError):
    """
    Raised when selecting a month the result does not contain.
    """


@dataclass(frozen=True)
class Overview:
    """
    No month selected.
    """


@dataclass(frozen=True)
class MonthDetail:
    """
    One month selected for its daily breakdown.
    """

    month: str


ViewState = Union[Overview, MonthDetail]

OVERVIEW = Overview()


@dataclass(frozen=True)
class PeriodShare:
    """
    Count of one day or month with its share of a total, in percent.
    """

    period: str
    count: int
    percent: float


@dataclass(frozen=True)
class DailySeries:
    """
    Day counts prepared for display.

    ``granularity`` is ``"month"`` when the days were rolled up; ``truncated``
    is set when only the most recent days are kept.
    """

    granularity: str
    points: tuple[PeriodShare, ...]
    truncated: bool = False


def share_percent(count: int, total: int) -> float:
    """
    ``count`` as a percentage of ``total`` rounded to two decimals.

    An empty total divides by one, so every share is then zero.
    """

    return round(count * 100 / (total or 1), 2)


def _shares(items: list[tuple[str, int]], total: int) -> tuple[PeriodShare, ...]:
    return tuple(
        PeriodShare(period=period, count=count, percent=share_percent(count, total))
        for period, count in items
    )


def project_daily_series(date_counts: Mapping[str, int]) -> DailySeries:
    """
    Ascending day counts, each as a share of all dated invoices.

    More than ``DAILY_SERIES_MONTHLY_THRESHOLD`` days are rolled up by month;
    more than ``DAILY_SERIES_RECENT_DAYS`` keeps only the most recent days.
    """

    total = sum(date_counts.values())
    days = sorted(date_counts.items())

    if len(days) > DAILY_SERIES_MONTHLY_THRESHOLD:
        months: dict[str, int] = {}
        for day, count in days:
            months[day[:7]] = months.get(day[:7], 0) + count
        return DailySeries(
            granularity=GRANULARITY_MONTH,
            points=_shares(list(months.items()), total),
        )

    truncated = len(days) > DAILY_SERIES_RECENT_DAYS
    if truncated:
        days = days[-DAILY_SERIES_RECENT_DAYS:]
    return DailySeries(
        granularity=GRANULARITY_DAY,
        points=_shares(days, total),
        truncated=truncated,
    )


class MonthDrilldown:
    """
    Overview / month-detail navigation over one aggregation result.

    ``previous`` and ``next`` clamp at the first and last month; they are
    no-ops on the overview.
    """

    def __init__(self, result: AggregationResult) -> None:
        self._result = result
        self._months: tuple[str, ...] = tuple(sorted(result.month_counts))
        self._state: ViewState = OVERVIEW

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def months(self) -> tuple[str, ...]:
        return self._months

    @property
    def selected_index(self) -> int | None:
        if isinstance(self._state, MonthDetail):
            return self._months.index(self._state.month)
        return None

    def reset(self, result: AggregationResult) -> ViewState:
        """
        Adopt a new result and return to the overview.
        """

        self._result = result
        self._months = tuple(sorted(result.month_counts))
        self._state = OVERVIEW
        return self._state

    def select(self, month: str) -> ViewState:
        if month not in self._months:
            raise UnknownMonthError(f"Month '{month}' is not present in the result.")
        self._state = MonthDetail(month=month)
        return self._state

    def select_index(self, index: int) -> ViewState:
        if not 0 <= index < len(self._months):
            raise UnknownMonthError(f"Month index {index} is out of range.")
        return self.select(self._months[index])

    def previous(self) -> ViewState:
        return self._step(-1)

    def next(self) -> ViewState:
        return self._step(1)

    def back(self) -> ViewState:
        self._state = OVERVIEW
        return self._state

    def daily_breakdown(self) -> list[tuple[str, int]]:
        """
        Ascending ``(day, count)`` pairs of the selected month; empty on overview.
        """

        if not isinstance(self._state, MonthDetail):
            return []
        month = self._state.month
        return sorted(
            (day, count)
            for day, count in self._result.date_counts.items()
            if day[:7] == month
        )

    def month_shares(self) -> list[PeriodShare]:
        """
        Every month with its share of all dated invoices.
        """

        month_counts = self._result.month_counts
        total = sum(month_counts.values())
        return list(_shares([(month, month_counts[month]) for month in self._months], total))

    def daily_shares(self) -> list[PeriodShare]:
        """
        ``daily_breakdown`` with each day's share of the selected month.
        """

        days = self.daily_breakdown()
        return list(_shares(days, sum(count for _, count in days)))

    def _step(self, offset: int) -> ViewState:
        index = self.selected_index
        if index is None:
            return self._state
        target = min(max(index + offset, 0), len(self._months) - 1)
        self._state = MonthDetail(month=self._months[target])
        return self._state
