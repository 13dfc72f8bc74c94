"""Unit tests for logger naming and level resolution"""

from __future__ import annotations

import logging

from portfolioq.observability.logging import PACKAGE_LOGGER, get_logger


def test_module_loggers_live_under_package():
    assert get_logger("portfolioq.evaluation.task").name == "portfolioq.evaluation.task"
    assert get_logger("scripts.seed").name == "portfolioq.scripts.seed"
    assert get_logger(PACKAGE_LOGGER).name == PACKAGE_LOGGER


def test_single_handler_after_repeated_calls():
    for _ in range(3):
        get_logger("portfolioq.x")

    assert len(logging.getLogger(PACKAGE_LOGGER).handlers) == 1


def test_level_from_environment(monkeypatch):
    monkeypatch.setenv("PORTFOLIOQ_LOG_LEVEL", "debug")
    get_logger("portfolioq.x")
    assert logging.getLogger(PACKAGE_LOGGER).level == logging.DEBUG

    monkeypatch.setenv("PORTFOLIOQ_LOG_LEVEL", "nonsense")
    get_logger("portfolioq.x")
    assert logging.getLogger(PACKAGE_LOGGER).level == logging.INFO
