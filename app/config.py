"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

_ALLOWED_EXECUTION_MODES = {"auto", "background", "foreground"}
_ALLOWED_START_METHODS = {"fork", "forkserver", "spawn"}
DEFAULT_START_METHOD = "spawn"


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    for filename in (".env", ".env.local"):
        env_path = PROJECT_ROOT / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _require_execution_mode() -> str:
    """
    Read and validate WORKBOOK_EXECUTION_MODE.

    An unknown value raises RuntimeError rather than silently picking a
    strategy the operator did not ask for.
    """

    raw = _get_str_env("WORKBOOK_EXECUTION_MODE", "auto")
    mode = raw.lower()
    if mode not in _ALLOWED_EXECUTION_MODES:
        raise RuntimeError(
            f"WORKBOOK_EXECUTION_MODE '{raw}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_EXECUTION_MODES)}."
        )
    return mode


def _require_start_method() -> str:
    """
    Read and validate WORKBOOK_BACKGROUND_START_METHOD.

    Defaults to ``spawn``: workers never inherit the state of a threaded
    server process.
    """

    raw = _get_str_env("WORKBOOK_BACKGROUND_START_METHOD", DEFAULT_START_METHOD)
    method = raw.lower()
    if method not in _ALLOWED_START_METHODS:
        raise RuntimeError(
            f"WORKBOOK_BACKGROUND_START_METHOD '{raw}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_START_METHODS)}."
        )
    return method


@dataclass(frozen=True)
class WorkbookAggregationSettings:
    """
    Runtime settings for workbook aggregation runs.
    """

    execution_mode: str = "auto"
    progress_steps: int = 20
    max_upload_bytes: int = 50 * 1024 * 1024
    background_start_method: str = DEFAULT_START_METHOD


@lru_cache(maxsize=1)
def get_workbook_aggregation_settings() -> WorkbookAggregationSettings:
    """
    Return cached workbook aggregation settings from environment variables.

    Raises RuntimeError if an execution mode or start method is not recognised.
    """

    return WorkbookAggregationSettings(
        execution_mode=_require_execution_mode(),
        progress_steps=max(1, _get_int_env("WORKBOOK_PROGRESS_STEPS", 20)),
        max_upload_bytes=max(1, _get_int_env("WORKBOOK_MAX_UPLOAD_BYTES", 50 * 1024 * 1024)),
        background_start_method=_require_start_method(),
    )
