from __future__ import annotations

import logging

from unipatch.fileops import apply_patch
from unipatch.formats.normal import parse_normal
from unipatch.logger import configure_logging
from unipatch.settings import LoggingSettings, LogLevel


def _messages(caplog) -> list[str]:
    return [r.getMessage() for r in caplog.records if r.name == "unipatch"]


def test_debug_level_emits_parse_events(caplog) -> None:
    configure_logging(LoggingSettings(default_level=LogLevel.debug))
    try:
        parse_normal("1d0\n< a\n")
    finally:
        configure_logging(LoggingSettings())

    assert any("parsed normal diff" in m for m in _messages(caplog))


def test_default_level_hides_debug_events(caplog) -> None:
    configure_logging(LoggingSettings())
    parse_normal("1d0\n< a\n")

    assert not any("parsed normal diff" in m for m in _messages(caplog))


def test_apply_patch_logs_outcome(tmp_path, caplog) -> None:
    configure_logging(LoggingSettings(default_level=LogLevel.info))
    try:
        apply_patch("nothing to see\n", tmp_path)
    finally:
        configure_logging(LoggingSettings())

    [message] = [m for m in _messages(caplog) if "apply_patch" in m]
    assert "outcome=fail" in message


def test_logger_overrides_and_disabled_level() -> None:
    configure_logging(
        LoggingSettings(
            default_level=LogLevel.disabled,
            enabled_loggers={"unipatch.extra": LogLevel.info},
        )
    )
    try:
        assert logging.getLogger("unipatch").level > logging.CRITICAL
        assert logging.getLogger("unipatch.extra").level == logging.INFO
    finally:
        configure_logging(LoggingSettings())
        logging.getLogger("unipatch.extra").setLevel(logging.NOTSET)
