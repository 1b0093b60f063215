"""Logging setup and utilities."""

import logging
import os

from .ansi import LogStyles, make_style, should_colorize

__all__ = [
    "LogObjects",
    "debug_enabled",
    "get_logger",
    "init_logger",
    "level_from_env",
]


class LogObjects:
    """Reusable objects for loggers."""

    handlers: list[logging.Handler] = []
    forced_debug: bool = False


def debug_enabled() -> bool:
    """Return True if debug output was forced or requested with `SPIN_DEBUG` (or `DEBUG`)."""
    return LogObjects.forced_debug or bool(os.environ.get("SPIN_DEBUG") or os.environ.get("DEBUG"))


def level_from_env(default: int = logging.WARNING) -> int:
    """Return the log level named by `SPIN_LOG` (eg: "info", "DEBUG").

    Unknown names fall back to `default`.
    """
    name = os.environ.get("SPIN_LOG", "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def init_logger(filename: str | None = None, force_debug: bool = False) -> None:
    """Initialize the logging system.

    Log records go to stderr so they never mix with command output or with
    the output of a forwarded plugin.

    Args:
        filename: Optional filename to log to
        force_debug: If True, force debug level
    """
    if force_debug:
        LogObjects.forced_debug = True

    class ScreenLogFormatter(logging.Formatter):
        """A custom formatter, adding colors based on log level."""

        LOG_FORMAT = r"%(name)20s - %(message)s // %(filename)s:%(lineno)d" if debug_enabled() else r"%(message)s"

        def __init__(self) -> None:
            super().__init__()
            if should_colorize():
                warn_pre, warn_suf = make_style(*LogStyles.WARNING)
                err_pre, err_suf = make_style(*LogStyles.ERROR)
                crit_pre, crit_suf = make_style(*LogStyles.CRITICAL)
            else:
                warn_pre = warn_suf = err_pre = err_suf = crit_pre = crit_suf = ""

            self._formatters = {
                logging.DEBUG: logging.Formatter(self.LOG_FORMAT),
                logging.INFO: logging.Formatter(self.LOG_FORMAT),
                logging.WARNING: logging.Formatter(warn_pre + self.LOG_FORMAT + warn_suf),
                logging.ERROR: logging.Formatter(err_pre + self.LOG_FORMAT + err_suf),
                logging.CRITICAL: logging.Formatter(crit_pre + self.LOG_FORMAT + crit_suf),
            }

        def format(self, record: logging.LogRecord) -> str:
            return self._formatters.get(record.levelno, self._formatters[logging.INFO]).format(record)

    LogObjects.handlers.clear()
    if filename:
        file_handler = logging.FileHandler(filename)
        file_handler.setFormatter(logging.Formatter(fmt=r"%(asctime)s [%(levelname)s] %(name)s :: %(message)s :: %(filename)s:%(lineno)d"))
        LogObjects.handlers.append(file_handler)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(ScreenLogFormatter())
    LogObjects.handlers.append(stream_handler)


def get_logger(name: str = "spin", level: int | None = None) -> logging.Logger:
    """Return a named logger.

    Args:
        name (str): logger's name
        level (int): logger's level (auto if not set)
    """
    logger = logging.getLogger(name)
    if level is None:
        logger.setLevel(logging.DEBUG if debug_enabled() else level_from_env())
    else:
        logger.setLevel(level)
    logger.propagate = False
    for handler in LogObjects.handlers:
        if handler not in logger.handlers:
            logger.addHandler(handler)
    logger.debug('Logger "%s" initialized', name)
    return logger
