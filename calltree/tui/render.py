"""Turns a call tree snapshot into indented table rows.

Everything here is a pure function of the snapshot and ``now``; nodes are
never mutated, so a call judged expired locally stays untouched in the store.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from rich.cells import cell_len
from rich.style import Style
from rich.text import Text

from ..status import status_label
from ..storage import Node
from ..store import TreeSnapshot
from ..types import DispatchID, Status

STYLES = {
    "pending": Style(color="grey50"),
    "retry": Style(color="yellow"),
    "error": Style(color="red"),
    "ok": Style(color="green"),
}
HEADER_STYLE = Style(color="white", bold=True)
TREE_STYLE = Style(color="grey50")
SPINNER_STYLE = Style(color="grey50")

UNKNOWN_FUNCTION = "(?)"
ELLIPSIS = "..."

SPINNER_WIDTH = 2
ATTEMPTS_WIDTH = 8
DURATION_WIDTH = 10
DEFAULT_STATUS_WIDTH = 40
DEFAULT_MIN_FUNCTION_WIDTH = 20
DEFAULT_MAX_FUNCTION_WIDTH = 50


@dataclass
class Row:
    prefix: str
    function: str
    status: str
    style: str
    status_style: str
    attempts: int
    elapsed: float
    pending: bool
    done: bool

    @property
    def label(self) -> str:
        return self.prefix + self.function


def tree_prefix(is_last: Sequence[bool]) -> str:
    parts = []
    for i, last in enumerate(is_last):
        if i == len(is_last) - 1:
            glyph = "└─" if last else "├─"
        else:
            glyph = "  " if last else "│ "
        parts.append(glyph + " ")
    return "".join(parts)


def count_attempts(node: Node, done: Optional[bool] = None) -> int:
    done = node.done if done is None else done
    attempts = node.failures
    if node.running:
        attempts += 1
    elif done and node.status == Status.OK:
        attempts += 1
    elif node.responses > node.failures:
        attempts += 1
    return max(attempts, 1)


def elapsed_seconds(node: Node, now: float, done: Optional[bool] = None, done_time: Optional[float] = None) -> float:
    if node.creation_time is None:
        return 0.0
    done = node.done if done is None else done
    done_time = node.done_time if done_time is None else done_time
    end = done_time if done and done_time is not None else now
    # truncate to whole milliseconds
    return int((end - node.creation_time) * 1000) / 1000


def format_duration(seconds: float) -> str:
    if seconds <= 0:
        return "?"
    ms = int(round(seconds * 1000))
    if ms < 1000:
        return f"{ms}ms"
    hours, rem = divmod(ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    text = f"{rem / 1000:.3f}".rstrip("0").rstrip(".") + "s"
    if hours or minutes:
        text = f"{minutes}m" + text
    if hours:
        text = f"{hours}h" + text
    return text


def derive_row(node: Node, now: float, is_last: Sequence[bool] = ()) -> Row:
    done = node.done
    error = node.error
    done_time = node.done_time
    running = node.running
    pending = False

    if done:
        style = "ok" if node.status == Status.OK else "error"
    elif node.expiration_time is not None and node.expiration_time < now:
        error = "Expired"
        style = "error"
        done = True
        done_time = node.expiration_time
        running = False
    else:
        style = "retry" if node.failures > 0 else "pending"
        pending = True

    status_style = style
    if running:
        status = "Running"
        status_style = "pending"
    elif error:
        status = error
    elif node.status != Status.UNSPECIFIED:
        status = status_label(node.status)
    elif pending and node.responses > 0:
        status = "Suspended"
        status_style = "pending"
    else:
        status = "Pending"

    return Row(
        prefix=tree_prefix(is_last),
        function=node.function or UNKNOWN_FUNCTION,
        status=status,
        style=style,
        status_style=status_style,
        attempts=count_attempts(node, done),
        elapsed=elapsed_seconds(node, now, done, done_time),
        pending=pending,
        done=done,
    )


def build_rows(snapshot: TreeSnapshot, root_id: DispatchID, now: float) -> List[Row]:
    """Depth-first rows for the tree under ``root_id``, children in observed order."""
    rows: List[Row] = []

    def visit(dispatch_id: DispatchID, is_last: List[bool], path: frozenset) -> None:
        node = snapshot.node(dispatch_id)
        rows.append(derive_row(node, now, is_last))
        children = [child for child in node.children if child not in path]
        for i, child in enumerate(children):
            visit(child, is_last + [i == len(children) - 1], path | {child})

    visit(root_id, [], frozenset({root_id}))
    return rows


def function_column_width(
    rows: Sequence[Row],
    min_width: int = DEFAULT_MIN_FUNCTION_WIDTH,
    max_width: int = DEFAULT_MAX_FUNCTION_WIDTH,
) -> int:
    widest = max((cell_len(row.label) for row in rows), default=0)
    return min(max_width, max(min_width, widest))


def _fit(text: Text, width: int, right: bool = False) -> Text:
    text = text.copy()
    if text.cell_len > width:
        text.truncate(max(width - len(ELLIPSIS), 0))
        text.append(ELLIPSIS)
        return text
    if right:
        text.pad_left(width - text.cell_len)
    else:
        text.pad_right(width - text.cell_len)
    return text


def fit_left(text: Text | str, width: int) -> Text:
    return _fit(Text(text) if isinstance(text, str) else text, width)


def fit_right(text: Text | str, width: int) -> Text:
    return _fit(Text(text) if isinstance(text, str) else text, width, right=True)


def header_text(function_width: int, status_width: int = DEFAULT_STATUS_WIDTH) -> Text:
    line = Text(" " * SPINNER_WIDTH)
    line.append_text(fit_left(Text("Function", HEADER_STYLE), function_width))
    line.append(" ")
    line.append_text(fit_right(Text("Attempts", HEADER_STYLE), ATTEMPTS_WIDTH))
    line.append(" ")
    line.append_text(fit_right(Text("Duration", HEADER_STYLE), DURATION_WIDTH))
    line.append(" ")
    line.append_text(fit_left(Text("Status", HEADER_STYLE), status_width))
    line.append("\n")
    return line


def row_text(row: Row, function_width: int, spinner: str = "", status_width: int = DEFAULT_STATUS_WIDTH) -> Text:
    function = Text(row.prefix, TREE_STYLE)
    function.append(row.function, STYLES[row.style])

    line = fit_left(Text(spinner if row.pending else "", SPINNER_STYLE), SPINNER_WIDTH)
    line.append_text(fit_left(function, function_width))
    line.append(" ")
    line.append_text(fit_right(str(row.attempts), ATTEMPTS_WIDTH))
    line.append(" ")
    line.append_text(fit_right(format_duration(row.elapsed), DURATION_WIDTH))
    line.append(" ")
    line.append_text(fit_left(Text(row.status, STYLES[row.status_style]), status_width))
    line.append("\n")
    return line


def render_table(
    rows: Sequence[Row],
    spinner: str = "",
    min_function_width: int = DEFAULT_MIN_FUNCTION_WIDTH,
    max_function_width: int = DEFAULT_MAX_FUNCTION_WIDTH,
    status_width: int = DEFAULT_STATUS_WIDTH,
) -> Text:
    width = function_column_width(rows, min_function_width, max_function_width)
    table = header_text(width, status_width)
    for row in rows:
        table.append_text(row_text(row, width, spinner, status_width))
    return table


def render_calls(
    snapshot: TreeSnapshot,
    now: float,
    spinner: str = "",
    min_function_width: int = DEFAULT_MIN_FUNCTION_WIDTH,
    max_function_width: int = DEFAULT_MAX_FUNCTION_WIDTH,
    status_width: int = DEFAULT_STATUS_WIDTH,
) -> Text:
    """One table per root, in registration order, separated by a blank line."""
    out = Text()
    for i, root_id in enumerate(snapshot.roots):
        if i > 0:
            out.append("\n")
        rows = build_rows(snapshot, root_id, now)
        out.append_text(
            render_table(rows, spinner, min_function_width, max_function_width, status_width)
        )
    return out
