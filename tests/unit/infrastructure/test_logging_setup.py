"""Tests for logging setup and the logging adapter."""

import logging

import pytest

from instance_pool.config.schemas import LoggingConfig
from instance_pool.infrastructure.adapters.logging_adapter import LoggingAdapter
from instance_pool.infrastructure.logging.logger import ROOT_LOGGER_NAME, get_logger, setup_logging


@pytest.fixture
def package_logger(monkeypatch):
    """Package logger restored to its original state after the test."""
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    root = logging.getLogger(ROOT_LOGGER_NAME)
    handlers, level, propagate = list(root.handlers), root.level, root.propagate
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    root.propagate = propagate


@pytest.mark.unit
class TestLogging:
    """Test logging configuration."""

    def test_get_logger_prefixes_package_name(self):
        assert get_logger("services.poller").name == "instance_pool.services.poller"
        assert get_logger("instance_pool.config").name == "instance_pool.config"

    def test_setup_logging_with_file(self, package_logger, tmp_path):
        log_file = tmp_path / "logs" / "pool.log"
        setup_logging(LoggingConfig(level="warning", file_path=str(log_file), console_enabled=False))

        assert package_logger.level == logging.WARNING
        assert [type(h) for h in package_logger.handlers] == [logging.FileHandler]
        assert log_file.parent.is_dir()

    def test_environment_overrides_level(self, package_logger, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        setup_logging(LoggingConfig(level="ERROR"))
        assert package_logger.level == logging.DEBUG

    def test_repeated_setup_replaces_handlers(self, package_logger):
        setup_logging()
        setup_logging()
        assert len(package_logger.handlers) == 1

    def test_invalid_level_rejected(self):
        with pytest.raises(ValueError):
            LoggingConfig(level="LOUD")

    def test_adapter_writes_to_package_logger(self, package_logger, tmp_path):
        log_file = tmp_path / "adapter.log"
        setup_logging(LoggingConfig(level="INFO", file_path=str(log_file), console_enabled=False))
        adapter = LoggingAdapter("services")

        adapter.info("Created %d instance(s)", 2)
        adapter.debug("hidden")
        for handler in package_logger.handlers:
            handler.flush()

        content = log_file.read_text()
        assert "Created 2 instance(s)" in content
        assert "hidden" not in content
        assert adapter.name == "instance_pool.services"
