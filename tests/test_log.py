"""Tests for map_ratio.core.log: handler setup, level selection, propagation."""

import logging

import pytest
from map_ratio.core.log import get_logger


@pytest.fixture
def fresh_name(request: pytest.FixtureRequest):
    name = f'map_ratio.tests.{request.node.name}'
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)


class TestGetLogger:
    def test_single_handler(self, fresh_name: str) -> None:
        get_logger(fresh_name)
        logger = get_logger(fresh_name)
        assert len(logger.handlers) == 1

    def test_does_not_propagate(self, fresh_name: str) -> None:
        assert get_logger(fresh_name).propagate is False

    def test_no_duplicate_records_on_root(self, fresh_name: str) -> None:
        seen: list[logging.LogRecord] = []

        class _Collect(logging.Handler):
            def emit(self, record: logging.LogRecord) -> None:
                seen.append(record)

        root_handler = _Collect()
        logging.getLogger().addHandler(root_handler)
        try:
            get_logger(fresh_name).warning('band plan')
        finally:
            logging.getLogger().removeHandler(root_handler)
        assert seen == []

    def test_level_from_env(self, fresh_name: str, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv('MAP_RATIO_LOG_LEVEL', 'debug')
        assert get_logger(fresh_name).level == logging.DEBUG

    def test_unknown_level_falls_back(self, fresh_name: str, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv('MAP_RATIO_LOG_LEVEL', 'chatty')
        assert get_logger(fresh_name).level == logging.WARNING

    def test_cli_default_is_info(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv('MAP_RATIO_LOG_LEVEL')
        name = 'map_ratio.tests.cli.__main__'
        try:
            assert get_logger(name).level == logging.INFO
        finally:
            logger = logging.getLogger(name)
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
