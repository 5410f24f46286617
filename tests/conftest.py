"""Test configuration for pytest."""

import logging

import pytest


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch):
    """Quiet map_ratio loggers; keep the developer's MAP_RATIO_* settings out of tests."""
    monkeypatch.setenv('MAP_RATIO_LOG_LEVEL', 'WARNING')
    monkeypatch.delenv('MAP_RATIO_POLICY', raising=False)
    monkeypatch.delenv('MAP_RATIO_WORKERS', raising=False)
    for name in ('map_ratio.engine', 'map_ratio.__main__'):
        logging.getLogger(name).setLevel(logging.WARNING)
