from __future__ import annotations

import logging

import pytest

from lead_import.logging import init as log_init
from lead_import.logging.init import SUMMARY_LEVEL, get_logger, log_summary, reset_logging, setup_logging


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()


def test_setup_logging_is_idempotent():
    first = setup_logging()
    second = setup_logging()
    assert first is second
    assert first.name == "lead_import"
    assert len(first.handlers) == 1
    assert first.propagate is False


def test_labeled_prefixes(capsys):
    logger = setup_logging()
    logger.info("hello")
    logger.warning("careful")
    logger.error("boom")
    log_summary("rows=1")
    out = capsys.readouterr().out.splitlines()
    assert out == ["INFO hello", "WARN careful", "ERROR boom", "SUMMARY rows=1"]


def test_child_module_loggers_use_labels(capsys):
    setup_logging()
    logging.getLogger("lead_import.services.orchestrator").warning("from child")
    assert capsys.readouterr().out == "WARN from child\n"


def test_debug_hidden_by_default(capsys):
    setup_logging().debug("hidden")
    assert capsys.readouterr().out == ""


def test_get_logger_initializes():
    assert log_init._logger is None
    logger = get_logger()
    assert logger is log_init._logger


def test_summary_level_name():
    setup_logging()
    assert logging.getLevelName(SUMMARY_LEVEL) == "SUMMARY"
