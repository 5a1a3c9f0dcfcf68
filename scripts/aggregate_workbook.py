"""
Aggregate one invoice workbook from CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from app.config import get_workbook_aggregation_settings
from app.services.aggregation_service import rank_countries
from app.services.view_projection import MonthDrilldown
from app.services.workbook_aggregation_service import (
    WorkbookAggregationError,
    WorkbookAggregationService,
)


def _print_progress(percent: int) -> None:
    print(f"progress {percent}%", file=sys.stderr)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Aggregate customers per country and invoices per day.")
    parser.add_argument("path", type=Path, help="Path to an .xlsx or .csv export.")
    parser.add_argument(
        "--mode",
        dest="mode",
        choices=("auto", "background", "foreground"),
        default=None,
        help="Optional execution mode override.",
    )
    parser.add_argument(
        "--month",
        dest="month",
        default=None,
        help="Optional YYYY-MM month to break down by day.",
    )
    parser.add_argument("--quiet", action="store_true", help="Do not print progress.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s [%(name)s] %(message)s")

    settings = get_workbook_aggregation_settings()
    service = WorkbookAggregationService(
        execution_mode=settings.execution_mode,
        progress_steps=settings.progress_steps,
        background_start_method=settings.background_start_method,
    )

    try:
        outcome = service.aggregate_file(
            args.path,
            on_progress=None if args.quiet else _print_progress,
            execution_mode=args.mode,
        )
    except FileNotFoundError:
        print(f"File not found: {args.path}", file=sys.stderr)
        return 2
    except WorkbookAggregationError as exc:
        print(f"Aggregation failed ({exc.error_type}): {exc}", file=sys.stderr)
        return 1

    if outcome.advisory:
        print(outcome.advisory, file=sys.stderr)

    result = outcome.result
    drilldown = MonthDrilldown(result)
    payload: dict[str, object] = {
        "strategy": outcome.strategy,
        "rows_processed": result.rows_processed,
        "no_data": result.no_data,
        "country_ranking": [
            {"country": country, "customers": customers}
            for country, customers in rank_countries(result.country_customer_counts)
        ],
        "month_counts": dict(result.month_counts),
        "month_shares": [
            {"month": share.period, "count": share.count, "percent": share.percent}
            for share in drilldown.month_shares()
        ],
        "date_counts": dict(sorted(result.date_counts.items())),
    }

    if args.month:
        if args.month not in drilldown.months:
            print(f"Month {args.month} has no invoices.", file=sys.stderr)
            return 2
        drilldown.select(args.month)
        payload["month_detail"] = {
            "month": args.month,
            "days": [
                {"date": share.period, "count": share.count, "percent": share.percent}
                for share in drilldown.daily_shares()
            ],
        }

    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
