"""Tests for logging utilities."""

import logging
from logging.handlers import RotatingFileHandler

import colorama
import pytest

import anistream.utils.logging as logging_module
from anistream.utils.logging import (
    SECRET_MASK,
    CleanFormatter,
    ColorFormatter,
    Logger,
    SecretMaskFilter,
)


def _record(msg, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name="AniStream",
        level=level,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


class _Capture(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_color_formatter_highlights_markers() -> None:
    """Quoted values are blue, braced values dim; the record is left unchanged."""
    message = "Requesting $$'GetTitle'$$ $${visit_id: abc}$$"
    record = _record(message)

    formatted = ColorFormatter("%(levelname)s %(message)s").format(record)

    assert colorama.Fore.GREEN in formatted
    assert f"{colorama.Fore.LIGHTBLUE_EX}'GetTitle'" in formatted
    assert f"{colorama.Style.DIM}{{visit_id: abc}}" in formatted
    assert record.msg == message
    assert record.levelname == "INFO"


def test_clean_formatter_strips_markers() -> None:
    """File output keeps the values but drops the markers."""
    record = _record("Added $$'21'$$ to $$'CURRENT'$$ $${progress: 3}$$")

    formatted = CleanFormatter("%(message)s").format(record)

    assert formatted == "Added '21' to 'CURRENT' {progress: 3}"


def test_clean_formatter_non_string_message() -> None:
    """Non-string messages are formatted as-is."""
    assert CleanFormatter("%(message)s").format(_record({"id": 1})) == "{'id': 1}"


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        (
            "Requesting $$'start_session'$$ $${params: {'access_token': 'abc', "
            "'device_id': 'dev'}}$$",
            "Requesting $$'start_session'$$ $${params: {'access_token': "
            f"'{SECRET_MASK}', 'device_id': 'dev'}}}}$$",
        ),
        (
            "body {\"Email\": \"a@b.c\", \"Password\": \"hunter2\"}",
            f"body {{\"Email\": \"a@b.c\", \"Password\": \"{SECRET_MASK}\"}}",
        ),
        (
            "GET /start_session.0.json?auth=refresh&locale=enUS",
            f"GET /start_session.0.json?auth={SECRET_MASK}&locale=enUS",
        ),
        ("Sending $$'UpdateScore'$$", "Sending $$'UpdateScore'$$"),
    ],
)
def test_secret_mask_filter(message: str, expected: str) -> None:
    """Credentials never reach a handler in clear text."""
    record = _record(message)

    assert SecretMaskFilter().filter(record) is True
    assert record.msg == expected


def test_logger_prefixes_class_name() -> None:
    """Messages logged from a method are prefixed with the class name."""
    logger = Logger("prefix-test")
    logger.setLevel(logging.DEBUG)
    capture = _Capture()
    logger.addHandler(capture)

    class HidiveClient:
        def create_session(self) -> None:
            logger.debug("Created visit")

        @classmethod
        def parse(cls) -> None:
            logger.info("Parsed")

    HidiveClient().create_session()
    HidiveClient.parse()
    logger.info("Plain")

    assert [r.getMessage() for r in capture.records] == [
        "HidiveClient: Created visit",
        "HidiveClient: Parsed",
        "Plain",
    ]


def test_logger_success_level() -> None:
    """SUCCESS sits between INFO and WARNING."""
    logger = Logger("success-test")
    logger.setLevel(Logger.SUCCESS)
    capture = _Capture()
    logger.addHandler(capture)

    logger.info("hidden")
    logger.success("Connected as $$'user'$$")

    assert len(capture.records) == 1
    assert capture.records[0].levelname == "SUCCESS"
    assert logging.INFO < Logger.SUCCESS < logging.WARNING


def test_logger_setup_handlers(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Setup replaces old handlers with a rotating file and a console handler."""
    logger = Logger("setup-test")
    logger.addHandler(logging.NullHandler())
    monkeypatch.setattr(logging_module, "supports_color", lambda: False)

    logger.setup("SUCCESS", log_dir=str(tmp_path / "logs"))

    try:
        assert (tmp_path / "logs" / "setup-test.SUCCESS.log").exists()
        assert logger.level == Logger.SUCCESS
        assert len(logger.handlers) == 2
        assert any(isinstance(h, RotatingFileHandler) for h in logger.handlers)
        assert all(
            any(isinstance(f, SecretMaskFilter) for f in h.filters)
            for h in logger.handlers
        )
        assert all(isinstance(h.formatter, CleanFormatter) for h in logger.handlers)
    finally:
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)


def test_logger_setup_survives_color_detection_errors(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A failing color check falls back to plain console output."""

    def _raise_os_error():
        raise OSError("boom")

    logger = Logger("color-test")
    monkeypatch.setattr(logging_module, "supports_color", _raise_os_error)

    logger.setup("INFO")

    try:
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, CleanFormatter)
    finally:
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)


def test_module_logger_is_console_only(monkeypatch: pytest.MonkeyPatch) -> None:
    """Module loggers get one masked console handler and no log file."""
    monkeypatch.setattr(logging_module, "supports_color", lambda: False)

    logger = logging_module._get_logger("anistream.tests.module", "DEBUG")

    try:
        assert isinstance(logger, Logger)
        assert logger.level == logging.DEBUG
        assert [type(h) for h in logger.handlers] == [logging.StreamHandler]
        assert isinstance(logger.handlers[0].filters[0], SecretMaskFilter)
    finally:
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)
