"""Unit tests for logging configuration."""
from __future__ import annotations

import logging

import pytest

from stable_engine.logging_setup import LOG_FORMAT, configure_logging


class TestConfigureLogging:
    @pytest.mark.parametrize(
        "name, expected",
        [("DEBUG", logging.DEBUG), ("warning", logging.WARNING), ("Error", logging.ERROR)],
    )
    def test_level_names_are_case_insensitive(self, name: str, expected: int) -> None:
        configure_logging(name)
        assert logging.getLogger().level == expected

    def test_unknown_level_falls_back_to_info(self) -> None:
        configure_logging("CHATTY")
        assert logging.getLogger().level == logging.INFO

    def test_transport_loggers_stay_quiet_under_debug(self) -> None:
        configure_logging("DEBUG")
        for name in ("aiohttp", "asyncio"):
            assert logging.getLogger(name).level == logging.WARNING

    def test_engine_loggers_inherit_root_level(self) -> None:
        configure_logging("DEBUG")
        engine_logger = logging.getLogger("stable_engine.services.engine")
        assert engine_logger.getEffectiveLevel() == logging.DEBUG

    def test_root_handler_uses_engine_format(self) -> None:
        configure_logging("INFO")
        formats = [h.formatter._fmt for h in logging.getLogger().handlers if h.formatter]
        assert LOG_FORMAT in formats
