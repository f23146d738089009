"""Tests for logging configuration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from loguru import logger

from tenant_sync.logging import (
    LogContext,
    bind_data_source,
    bind_script,
    get_logger,
    is_configured,
    reset_logging,
    setup_logging,
)

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def _reset_logging_state() -> Generator[None, None, None]:
    """Reset loguru state before and after each test."""
    reset_logging()
    yield
    reset_logging()


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_default_level(self) -> None:
        setup_logging(level="INFO")
        assert is_configured()

    def test_setup_logging_verbose_overrides_level(self) -> None:
        """Verbose flag sets DEBUG level."""
        messages: list[str] = []
        setup_logging(level="WARNING", verbose=True)

        handler_id = logger.add(lambda msg: messages.append(str(msg)))
        try:
            logger.bind(name="test").debug("debug message")
            assert any("debug message" in msg for msg in messages)
        finally:
            logger.remove(handler_id)

    def test_setup_logging_with_file(self, tmp_path: Path) -> None:
        """File logging writes bound records to disk."""
        log_file = tmp_path / "sync.log"
        setup_logging(level="INFO", log_file=log_file)

        logger.bind(name="test").info("Batch finished")
        logger.complete()

        assert log_file.exists()
        assert "Batch finished" in log_file.read_text()

    def test_reset_clears_configured_flag(self) -> None:
        setup_logging(level="INFO")
        reset_logging()
        assert not is_configured()


class TestInterceptHandler:
    """Tests for stdlib logging interception."""

    def test_intercept_stdlib_logging(self) -> None:
        """stdlib logging is routed to loguru."""
        messages: list[str] = []
        setup_logging(level="DEBUG")

        handler_id = logger.add(lambda msg: messages.append(str(msg)))
        try:
            logging.getLogger("test_stdlib_intercept").warning("Hello from stdlib")
            assert any("Hello from stdlib" in msg for msg in messages)
        finally:
            logger.remove(handler_id)

    def test_sqlalchemy_logging_controlled(self) -> None:
        """SQLAlchemy engine logs are suppressed above DEBUG."""
        setup_logging(level="INFO")
        assert logging.getLogger("sqlalchemy.engine").level >= logging.WARNING


class TestContextBinding:
    """Tests for logger context helpers."""

    def _capture(self) -> tuple[list[dict], int]:
        records: list[dict] = []
        handler_id = logger.add(lambda msg: records.append(msg.record["extra"]), level="DEBUG")
        return records, handler_id

    def test_get_logger_binds_name(self) -> None:
        records, handler_id = self._capture()
        try:
            get_logger("tenant_sync.sync.executor").info("hello")
        finally:
            logger.remove(handler_id)
        assert records[0]["name"] == "tenant_sync.sync.executor"

    def test_bind_data_source(self) -> None:
        records, handler_id = self._capture()
        try:
            bind_data_source("tenant-1", "ds-1").info("hello")
        finally:
            logger.remove(handler_id)
        assert records[0]["tenant"] == "tenant-1"
        assert records[0]["data_source"] == "ds-1"

    def test_bind_script(self) -> None:
        records, handler_id = self._capture()
        try:
            bind_script("ds-1", "github:commit").info("hello")
        finally:
            logger.remove(handler_id)
        assert records[0]["script"] == "github:commit"

    def test_log_context_is_temporary(self) -> None:
        records, handler_id = self._capture()
        try:
            with LogContext(batch_id="batch-1"):
                get_logger("test").info("inside")
            get_logger("test").info("outside")
        finally:
            logger.remove(handler_id)
        assert records[0]["batch_id"] == "batch-1"
        assert "batch_id" not in records[1]
