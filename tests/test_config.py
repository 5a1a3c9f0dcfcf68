from __future__ import annotations

import pytest

from app import config
from app.config import WorkbookAggregationSettings, get_workbook_aggregation_settings


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(config, "load_env_files", lambda: None)
    for name in (
        "WORKBOOK_EXECUTION_MODE",
        "WORKBOOK_PROGRESS_STEPS",
        "WORKBOOK_MAX_UPLOAD_BYTES",
        "WORKBOOK_BACKGROUND_START_METHOD",
    ):
        monkeypatch.delenv(name, raising=False)
    get_workbook_aggregation_settings.cache_clear()
    yield
    get_workbook_aggregation_settings.cache_clear()


def test_defaults() -> None:
    settings = get_workbook_aggregation_settings()

    assert settings == WorkbookAggregationSettings()
    assert settings.execution_mode == "auto"
    assert settings.background_start_method == "spawn"


def test_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORKBOOK_EXECUTION_MODE", " Foreground ")
    monkeypatch.setenv("WORKBOOK_PROGRESS_STEPS", "10")
    monkeypatch.setenv("WORKBOOK_MAX_UPLOAD_BYTES", "1024")
    monkeypatch.setenv("WORKBOOK_BACKGROUND_START_METHOD", "forkserver")

    settings = get_workbook_aggregation_settings()

    assert settings.execution_mode == "foreground"
    assert settings.progress_steps == 10
    assert settings.max_upload_bytes == 1024
    assert settings.background_start_method == "forkserver"


def test_malformed_integers_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORKBOOK_PROGRESS_STEPS", "many")
    monkeypatch.setenv("WORKBOOK_MAX_UPLOAD_BYTES", "0")

    settings = get_workbook_aggregation_settings()

    assert settings.progress_steps == 20
    assert settings.max_upload_bytes == 1


def test_invalid_execution_mode_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORKBOOK_EXECUTION_MODE", "threads")

    with pytest.raises(RuntimeError, match="WORKBOOK_EXECUTION_MODE"):
        get_workbook_aggregation_settings()


def test_invalid_start_method_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORKBOOK_BACKGROUND_START_METHOD", "threads")

    with pytest.raises(RuntimeError, match="WORKBOOK_BACKGROUND_START_METHOD"):
        get_workbook_aggregation_settings()
