"""
app/services/workbook_aggregation_service.py

Service layer for workbook aggregation runs.

One call covers the whole flow:

    1. read the source bytes once (scoped open -> read -> close)
    2. dispatch the bytes to a background worker, or run them on the
       calling thread when no worker can be used
    3. collect progress messages and the single terminal message

A terminal ``ErrorMessage`` is raised as ``WorkbookAggregationError``; no
partial result is returned. Nothing is retried.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Callable

from app.config import get_workbook_aggregation_settings
from app.domain.invoice_aggregate import (
    AggregationResult,
    ErrorMessage,
    ProgressMessage,
    ResultMessage,
    RunOutcome,
)
from app.logging_utils import log_event, timed_event
from app.services.execution import AggregationRun, InputBuffer, dispatch

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class WorkbookAggregationError(RuntimeError):
    """
    Raised when a run ends with an error message instead of a result.
    """

    def __init__(self, message: str, *, error_type: str = "RuntimeError") -> None:
        super().__init__(message)
        self.error_type = error_type

    @property
    def is_format_error(self) -> bool:
        return self.error_type == "WorkbookFormatError"

    def to_dict(self) -> dict[str, object]:
        return {"message": str(self), "error_type": self.error_type}


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class WorkbookAggregationService:
    """
    Coordinates reading, dispatching and collecting one aggregation run.
    """

    def __init__(
        self,
        *,
        execution_mode: str = "auto",
        progress_steps: int = 20,
        background_start_method: str | None = None,
    ) -> None:
        self._execution_mode = execution_mode
        self._progress_steps = max(1, progress_steps)
        self._background_start_method = background_start_method

    def start(self, data: bytes, *, execution_mode: str | None = None) -> AggregationRun:
        """
        Dispatch the bytes and return the in-flight run without consuming it.
        """

        return dispatch(
            InputBuffer(data),
            mode=execution_mode or self._execution_mode,
            progress_steps=self._progress_steps,
            start_method=self._background_start_method,
        )

    def aggregate(
        self,
        data: bytes,
        *,
        on_progress: ProgressCallback | None = None,
        execution_mode: str | None = None,
    ) -> RunOutcome:
        """
        Run one aggregation to completion.

        Args:
            data:           Complete source document bytes.
            on_progress:    Optional callback receiving each percentage.
            execution_mode: Per-call override of the configured mode.
        """
        with timed_event(logger, "aggregation_run_timed", input_bytes=len(data)) as timing:
            run = self.start(data, execution_mode=execution_mode)
            timing["strategy"] = run.strategy
            return self.collect(run, on_progress=on_progress)

    def aggregate_file(
        self,
        path: Path,
        *,
        on_progress: ProgressCallback | None = None,
        execution_mode: str | None = None,
    ) -> RunOutcome:
        with path.open("rb") as handle:
            data = handle.read()
        return self.aggregate(data, on_progress=on_progress, execution_mode=execution_mode)

    def collect(
        self,
        run: AggregationRun,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> RunOutcome:
        progress: list[int] = []
        result: AggregationResult | None = None

        for message in run:
            if isinstance(message, ProgressMessage):
                progress.append(message.percent)
                if on_progress is not None:
                    on_progress(message.percent)
            elif isinstance(message, ResultMessage):
                result = message.to_result()
            elif isinstance(message, ErrorMessage):
                log_event(
                    logger,
                    logging.ERROR,
                    "aggregation_run_failed",
                    strategy=run.strategy,
                    error_type=message.error_type,
                    error=message.message,
                )
                raise WorkbookAggregationError(message.message, error_type=message.error_type)
            else:
                raise TypeError(f"Unknown run message: {message!r}")

        if result is None:
            raise WorkbookAggregationError("Run ended without a result message.")

        log_event(
            logger,
            logging.INFO,
            "aggregation_run_completed",
            strategy=run.strategy,
            rows_processed=result.rows_processed,
            countries=len(result.country_customer_counts),
            days=len(result.date_counts),
            no_data=result.no_data,
        )
        return RunOutcome(
            result=result,
            progress=progress,
            strategy=run.strategy,
            advisory=run.advisory,
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_workbook_aggregation_service() -> WorkbookAggregationService:
    """
    Build and cache the aggregation service with env-driven settings.
    """
    settings = get_workbook_aggregation_settings()
    return WorkbookAggregationService(
        execution_mode=settings.execution_mode,
        progress_steps=settings.progress_steps,
        background_start_method=settings.background_start_method,
    )
