"""
Logging configuration for the application.
"""
import logging
import os
import sys

from config import Config


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        original = record.levelname
        record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


class SafeStreamHandler(logging.StreamHandler):
    """
    StreamHandler that goes quiet once the reader of its stream has gone away.

    After a BrokenPipeError every later record is dropped. When the stream is
    stdout, its descriptor is pointed at the null device so pending buffered
    output cannot raise again at exit.
    """

    def __init__(self, stream=None):
        super().__init__(stream)
        self.stream_closed = False

    def emit(self, record: logging.LogRecord) -> None:
        if self.stream_closed:
            return
        super().emit(record)

    def flush(self) -> None:
        if self.stream_closed:
            return
        super().flush()

    def handleError(self, record: logging.LogRecord) -> None:
        if isinstance(sys.exc_info()[1], BrokenPipeError):
            self._mark_stream_closed()
            return
        super().handleError(record)

    def _mark_stream_closed(self) -> None:
        self.stream_closed = True
        if self.stream not in (sys.stdout, sys.__stdout__):
            return
        try:
            devnull = os.open(os.devnull, os.O_WRONLY)
            try:
                os.dup2(devnull, self.stream.fileno())
            finally:
                os.close(devnull)
        except (OSError, ValueError):
            pass


def setup_logger(name: str, level: int | str = logging.INFO) -> logging.Logger:
    """
    Set up a logger writing to stdout.

    Args:
        name: Logger name
        level: Logging level

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = SafeStreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    logger.addHandler(handler)
    return logger


def get_logger(component: str) -> logging.Logger:
    """Child logger for a single component, e.g. ``local_chat.memory``."""
    return app_logger.getChild(component)


app_logger = setup_logger("local_chat", Config.LOG_LEVEL)
