"""Colored console and rotating file logging with credential masking."""

import logging
import os
import re
import sys
from functools import lru_cache
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import ClassVar

import colorama
from colorama import Fore, Style

__all__ = ["Logger", "SecretMaskFilter", "get_logger"]

SECRET_MASK = "**********"


@lru_cache(maxsize=1)
def supports_color() -> bool:
    """Whether stdout is a TTY that renders ANSI colors (and NO_COLOR is unset)."""
    if not (hasattr(sys.stdout, "isatty") and sys.stdout.isatty()):
        return False
    if os.environ.get("NO_COLOR"):
        return False

    if sys.platform == "win32":
        return (
            getattr(colorama, "fixed_windows_console", False)
            or "ANSICON" in os.environ
            or "WT_SESSION" in os.environ  # Windows Terminal
            or os.environ.get("TERM_PROGRAM") == "vscode"
        )

    return True


class ColorFormatter(logging.Formatter):
    """Formatter that colors log levels and highlighted values.

    Quoted values ($$'example'$$) are shown in light blue and braced values
    ($${key: value}$$) are dimmed.
    """

    COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": Fore.CYAN,
        "INFO": Fore.GREEN,
        "SUCCESS": Fore.GREEN + Style.BRIGHT,
        "WARNING": Fore.YELLOW,
        "ERROR": Fore.RED,
        "CRITICAL": Fore.RED + Style.BRIGHT,
    }
    QUOTED_PATTERN = re.compile(r"\$\$'((?:[^']|'(?!\$\$))*)'\$\$")
    BRACED_PATTERN = re.compile(r"\$\$\{(.*?)\}\$\$")

    def format(self, record: logging.LogRecord) -> str:
        orig_msg = record.msg
        orig_levelname = record.levelname
        record.levelname = (
            f"{self.COLORS.get(record.levelname, '')}{record.levelname}"
            f"{Style.RESET_ALL}"
        )

        if isinstance(record.msg, str):
            record.msg = self.QUOTED_PATTERN.sub(
                f"{Fore.LIGHTBLUE_EX}'\\1'{Style.RESET_ALL}", record.msg
            )
            record.msg = self.BRACED_PATTERN.sub(
                f"{Style.DIM}{{\\1}}{Style.RESET_ALL}", record.msg
            )

        try:
            return super().format(record)
        finally:
            record.levelname = orig_levelname
            record.msg = orig_msg


class CleanFormatter(logging.Formatter):
    """Formatter that strips the highlight markers, used for log files."""

    def format(self, record: logging.LogRecord) -> str:
        if not isinstance(record.msg, str):
            return super().format(record)

        orig_msg = record.msg
        record.msg = re.sub(r"\$\$\'(.*?)\'\$\$", "'\\1'", record.msg)
        record.msg = re.sub(r"\$\$\{(.*?)\}\$\$", "{\\1}", record.msg)
        try:
            return super().format(record)
        finally:
            record.msg = orig_msg


class SecretMaskFilter(logging.Filter):
    """Mask credentials in logged request parameters and bodies.

    Matches dict-style (`'password': '...'`) and query-style
    (`auth=...`) occurrences of the keys in `SECRET_KEYS`.
    """

    SECRET_KEYS: ClassVar[tuple[str, ...]] = (
        "access_token",
        "auth",
        "password",
        "refresh_token",
        "token",
    )
    DICT_PATTERN = re.compile(
        r"(['\"](?:" + "|".join(SECRET_KEYS) + r")['\"]:\s*)(['\"])(.*?)\2",
        re.IGNORECASE,
    )
    QUERY_PATTERN = re.compile(
        r"\b((?:" + "|".join(SECRET_KEYS) + r")=)([^&\s]+)", re.IGNORECASE
    )

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.DICT_PATTERN.sub(
                f"\\1\\2{SECRET_MASK}\\2", record.msg
            )
            record.msg = self.QUERY_PATTERN.sub(f"\\1{SECRET_MASK}", record.msg)
        return True


class Logger(logging.Logger):
    """Logger with a SUCCESS level that prefixes messages with the caller's class."""

    SUCCESS = logging.INFO + 5

    def __init__(self, name, level=logging.NOTSET):
        super().__init__(name, level)

        if logging.getLevelName(self.SUCCESS) != "SUCCESS":
            logging.addLevelName(self.SUCCESS, "SUCCESS")

    def _log(
        self,
        level,
        msg,
        args,
        exc_info=None,
        extra=None,
        stack_info=False,
        stacklevel=1,
    ):
        """Prefix the message with the calling class name, when there is one."""
        try:
            # Frame 0 is _log, frame 1 the level method, frame 2 the caller
            frame = sys._getframe(2)
            class_name = None
            if "self" in frame.f_locals:
                obj = frame.f_locals["self"]
                if not isinstance(obj, logging.Logger):
                    class_name = obj.__class__.__name__
            elif "cls" in frame.f_locals:
                cls = frame.f_locals["cls"]
                if isinstance(cls, type):
                    class_name = cls.__name__

            if class_name and isinstance(msg, str):
                msg = f"{class_name}: {msg}"
        except (ValueError, KeyError, AttributeError):
            pass

        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 1,
        )

    def success(self, msg, *args, **kwargs):
        """Log a message with SUCCESS level."""
        self.log(self.SUCCESS, msg, *args, **kwargs)

    def setup(self, log_level: str, log_dir: str | None = None) -> None:
        """Replace the handlers with a console and an optional rotating file handler.

        Both handlers mask credentials with `SecretMaskFilter`. The console is
        colored only when `supports_color` says so.

        Args:
            log_level (str): Level name, `SUCCESS` included.
            log_dir (str | None): Directory for `<name>.<level>.log`, if any.
        """
        has_color_support = False
        try:
            if supports_color():
                if sys.platform == "win32":
                    colorama.just_fix_windows_console()
                else:
                    colorama.init()
                has_color_support = True
        except (AttributeError, OSError):
            has_color_support = False

        if log_level == "SUCCESS":
            log_level_literal = self.SUCCESS
        else:
            log_level_literal = getattr(logging, log_level)

        self.setLevel(log_level_literal)

        for handler in self.handlers[:]:
            self.removeHandler(handler)
            handler.close()

        log_format = (
            "%(asctime)s - %(name)s - %(levelname)s\t%(filename)s:%(lineno)d\t"
            "%(message)s"
            if log_level_literal <= logging.DEBUG
            else "%(asctime)s - %(name)s - %(levelname)s\t%(message)s"
        )
        datefmt = "%Y-%m-%d %H:%M:%S"
        secret_filter = SecretMaskFilter()

        console_formatter = (
            ColorFormatter(log_format, datefmt=datefmt)
            if has_color_support
            else CleanFormatter(log_format, datefmt=datefmt)
        )

        if log_dir is not None:
            log_path = Path(log_dir)
            log_path.mkdir(parents=True, exist_ok=True)

            file_handler = RotatingFileHandler(
                log_path / f"{self.name}.{log_level}.log",
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setFormatter(CleanFormatter(log_format, datefmt=datefmt))
            file_handler.setLevel(log_level_literal)
            file_handler.addFilter(secret_filter)
            self.addHandler(file_handler)

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(console_formatter)
        console_handler.setLevel(log_level_literal)
        console_handler.addFilter(secret_filter)
        self.addHandler(console_handler)


logging.setLoggerClass(Logger)


def _get_logger(
    log_name: str, log_level: str = "INFO", log_dir: str | Path | None = None
) -> Logger:
    """Get a module logger, set up at `log_level` and logging to the console.

    The config and settings-store modules log through this, since they load
    before the application config does. `log_dir` adds a rotating file.
    """
    logger = logging.getLogger(log_name)
    if not isinstance(logger, Logger):
        logger = Logger(log_name)

    logger.setup(log_level, str(log_dir) if log_dir is not None else None)
    return logger


@lru_cache(maxsize=1)
def get_logger() -> Logger:
    """The `AniStream` logger, configured from `config.yaml`."""
    from anistream.config.settings import get_config

    config = get_config()

    return _get_logger(
        log_name="AniStream",
        log_level=str(config.log_level),
        log_dir=config.data_path / "logs",
    )
