from .render import Row, build_rows, count_attempts, derive_row, elapsed_seconds, render_calls, tree_prefix
from .view import Tab, ViewState

__all__ = [
    "Row",
    "build_rows",
    "count_attempts",
    "derive_row",
    "elapsed_seconds",
    "render_calls",
    "tree_prefix",
    "Tab",
    "ViewState",
]
