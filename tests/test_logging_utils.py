"""Tests for CLI logging configuration behavior."""

from __future__ import annotations

import logging
from pathlib import Path

from engage_feature_access.logging_utils import configure_logging


def test_configure_logging_overwrites_previous_run_log(tmp_path: Path) -> None:
    """Each configure call should start a fresh log file for the new run."""
    log_path = tmp_path / "engage-access.log"

    first_logger = configure_logging(log_file=log_path, verbose=False)
    first_logger.info("from first run")

    second_logger = configure_logging(log_file=log_path, verbose=False)
    second_logger.info("from second run")

    content = log_path.read_text(encoding="utf-8")

    assert "from second run" in content
    assert "from first run" not in content


def test_module_loggers_reach_the_log_file(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "run.log"
    configure_logging(log_file=log_path, verbose=True)
    logging.getLogger("engage_feature_access.access.upsert").debug("planned create")
    assert "planned create" in log_path.read_text(encoding="utf-8")


def test_reconfiguring_does_not_stack_handlers() -> None:
    configure_logging(log_file=None, verbose=False)
    logger = configure_logging(log_file=None, verbose=True)
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False

