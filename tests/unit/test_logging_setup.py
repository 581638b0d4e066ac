"""Unit tests for logging configuration."""
from __future__ import annotations

import logging

import pytest

from leizd.logging_setup import LOG_DATE_FORMAT, LOG_FORMAT, configure_logging


class TestConfigureLogging:
    @pytest.mark.parametrize(
        ("name", "level"),
        [("debug", logging.DEBUG), ("Warning", logging.WARNING), ("ERROR", logging.ERROR)],
    )
    def test_level_names_ignore_case(self, name: str, level: int) -> None:
        configure_logging(name)
        assert logging.getLogger().level == level

    def test_unknown_level_falls_back_to_info(self) -> None:
        configure_logging("verbose")
        assert logging.getLogger().level == logging.INFO

    def test_root_handler_uses_log_format(self) -> None:
        configure_logging()
        formatters = [h.formatter for h in logging.getLogger().handlers if h.formatter]
        assert any(
            f._fmt == LOG_FORMAT and f.datefmt == LOG_DATE_FORMAT for f in formatters
        )

    def test_protocol_debug_kept_while_http_client_is_quiet(self) -> None:
        configure_logging("DEBUG")
        assert logging.getLogger("leizd.services.rebalancer").isEnabledFor(logging.DEBUG)
        assert not logging.getLogger("aiohttp.client").isEnabledFor(logging.DEBUG)
        assert logging.getLogger("aiohttp.client").isEnabledFor(logging.WARNING)
