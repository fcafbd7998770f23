"""Tests for the package logging setup."""

import logging

import pytest
from click.testing import CliRunner

from liars_lie.logging_config import PACKAGE_LOGGER, set_level, setup_logger
from liars_lie.main import cli


@pytest.fixture
def package_logger():
    logger = logging.getLogger(PACKAGE_LOGGER)
    level = logger.level
    yield logger
    logger.setLevel(level)


def test_module_loggers_share_one_handler(package_logger) -> None:
    first = setup_logger("liars_lie.first")
    second = setup_logger("liars_lie.second")

    assert first.handlers == [] and second.handlers == []
    assert len(package_logger.handlers) == 1


def test_set_level_reaches_existing_loggers(package_logger) -> None:
    logger = setup_logger("liars_lie.existing")

    set_level("debug")
    assert logger.isEnabledFor(logging.DEBUG)

    set_level("ERROR")
    assert not logger.isEnabledFor(logging.WARNING)


def test_unknown_level_falls_back_to_info(package_logger) -> None:
    set_level("chatty")
    assert package_logger.level == logging.INFO


def test_cli_log_level_option(package_logger) -> None:
    result = CliRunner().invoke(cli, ["--log-level", "WARNING", "auto", "--help"])

    assert result.exit_code == 0, result.output
    assert package_logger.level == logging.WARNING
