import logging
import os
import sys
from typing import IO, Optional

_DEFAULT_LEVEL = os.getenv("CALLTREE_LOG_LEVEL", "INFO").upper()

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def log_formatter() -> logging.Formatter:
    return logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)


def setup_logger(
    name: str,
    level: str | int | None = None,
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    resolved_level = level if level is not None else _DEFAULT_LEVEL
    logger.setLevel(resolved_level)

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(log_formatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def redirect_loggers(prefix: str, handler: logging.Handler) -> list[tuple[logging.Logger, list[logging.Handler]]]:
    """Swap the handlers of every logger under ``prefix`` for ``handler``.

    Returns what was replaced so ``restore_loggers`` can undo it.
    """
    if handler.formatter is None:
        handler.setFormatter(log_formatter())
    saved = []
    for name in list(logging.root.manager.loggerDict):
        if name != prefix and not name.startswith(prefix + "."):
            continue
        logger = logging.getLogger(name)
        if not logger.handlers:
            continue
        saved.append((logger, list(logger.handlers)))
        logger.handlers = [handler]
    return saved


def restore_loggers(saved: list[tuple[logging.Logger, list[logging.Handler]]]) -> None:
    for logger, handlers in saved:
        logger.handlers = handlers


def apply_log_level(prefix: str, level: str | int) -> None:
    """Set ``level`` on ``prefix`` and on every logger already created under it."""
    logging.getLogger(prefix).setLevel(level)
    for name in list(logging.root.manager.loggerDict):
        if name.startswith(prefix + "."):
            logging.getLogger(name).setLevel(level)
