"""
specdelta — unit tests for observability logging

Purpose
- Validate JSON-lines output, correlation metadata propagation, structlog routing,
  and shutdown behavior.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest
import structlog

from specdelta.observability.logging import (
    LoggingConfig,
    correlation_scope,
    get_active_logging_handle,
    get_correlation_context,
    setup_structured_logging,
    shutdown_logging,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _cleanup_logging() -> Iterator[None]:
    yield
    shutdown_logging()


def _logger_name() -> str:
    return f"specdelta.tests.logging.{uuid4().hex}"


def _read_json_lines(path: Path) -> list[dict[str, object]]:
    lines = path.read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines]


@pytest.mark.unit
def test_records_are_json_lines_with_correlation(tmp_path: Path) -> None:
    name = _logger_name()
    handle = setup_structured_logging(
        LoggingConfig(run_id="run-1", base_log_dir=tmp_path, logger_name=name)
    )
    logger = logging.getLogger(f"{name}.child")

    with correlation_scope(change_id="add-logout", capability="auth"):
        logger.info("merging", extra={"added": 2})
    logger.info("outside")
    handle.flush()

    assert handle.log_path == tmp_path / "run-1" / "specdelta.jsonl"
    first, second = _read_json_lines(handle.log_path)
    assert first["message"] == "merging"
    assert first["run_id"] == "run-1"
    assert first["change_id"] == "add-logout"
    assert first["capability"] == "auth"
    assert first["fields"] == {"added": 2}
    assert "change_id" not in second
    assert str(first["timestamp"]).endswith("Z")


@pytest.mark.unit
def test_structlog_events_land_in_the_same_file(tmp_path: Path) -> None:
    handle = setup_structured_logging(LoggingConfig(run_id="run-2", base_log_dir=tmp_path))

    structlog.get_logger("specdelta.archive.transaction").info(
        "archive_committed", change_id="c", totals={"added": 1}
    )
    handle.flush()

    (event,) = _read_json_lines(handle.log_path)
    assert event["message"] == "archive_committed"
    assert event["logger"] == "specdelta.archive.transaction"
    assert event["fields"] == {"change_id": "c", "totals": {"added": 1}}


@pytest.mark.unit
def test_level_filters_records(tmp_path: Path) -> None:
    name = _logger_name()
    handle = setup_structured_logging(
        LoggingConfig(run_id="run-3", base_log_dir=tmp_path, logger_name=name, level="WARNING")
    )
    logger = logging.getLogger(name)
    logger.info("dropped")
    logger.warning("kept")
    handle.flush()

    assert [event["message"] for event in _read_json_lines(handle.log_path)] == ["kept"]


@pytest.mark.unit
def test_correlation_scope_restores_previous_values() -> None:
    with correlation_scope(change_id="outer"):
        with correlation_scope(capability="auth"):
            assert get_correlation_context() == {"change_id": "outer", "capability": "auth"}
        assert get_correlation_context() == {"change_id": "outer"}
    assert get_correlation_context() == {}


@pytest.mark.unit
def test_unknown_correlation_key_is_rejected() -> None:
    with pytest.raises(ValueError, match="unsupported correlation key"):
        with correlation_scope(user="nobody"):
            pass


@pytest.mark.unit
def test_shutdown_clears_active_handle(tmp_path: Path) -> None:
    handle = setup_structured_logging(LoggingConfig(run_id="run-4", base_log_dir=tmp_path))
    assert get_active_logging_handle() is handle

    shutdown_logging()

    assert get_active_logging_handle() is None
    assert handle.is_shutdown


@pytest.mark.unit
@pytest.mark.parametrize("bad", ["", "nested/name.jsonl"])
def test_invalid_configuration_is_rejected(tmp_path: Path, bad: str) -> None:
    with pytest.raises(ValueError):
        setup_structured_logging(
            LoggingConfig(run_id="run-5", base_log_dir=tmp_path, log_filename=bad)
        )
