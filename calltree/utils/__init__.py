from .json_utils import read_json
from .logging import apply_log_level, log_formatter, redirect_loggers, restore_loggers, setup_logger

__all__ = [
    "apply_log_level",
    "read_json",
    "log_formatter",
    "redirect_loggers",
    "restore_loggers",
    "setup_logger",
]
