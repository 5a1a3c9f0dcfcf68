from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate workbook aggregation settings at startup.

    Raises RuntimeError naming the invalid variable so the operator can fix
    it before any upload is accepted.
    """

    from app.config import get_workbook_aggregation_settings

    get_workbook_aggregation_settings()


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Log the execution strategy the service will try first."""
    from app.config import get_workbook_aggregation_settings
    from app.services.execution import background_available

    settings = get_workbook_aggregation_settings()
    logging.getLogger(__name__).info(
        "Workbook aggregation ready mode=%s background_available=%s",
        settings.execution_mode,
        background_available(),
    )
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Invoice Workbook Aggregation API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import workbook_aggregation_router

    application.include_router(workbook_aggregation_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
