"""View state for the monitor, kept apart from textual so it can be driven
directly: the app forwards ticks, resizes and keys here and paints whatever
``render`` returns."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional

from rich.spinner import Spinner
from rich.style import Style
from rich.text import Text

from ..config import MonitorConfig
from ..store import CallTreeStore
from .render import render_calls

LOGO_STYLE = Style(color="white")
LOGO_UNDERSCORE_STYLE = Style(color="green")
STATUS_STYLE = Style(color="grey50")

# https://patorjk.com/software/taag/ (Ogre)
LOGO = [
    r"     _ _                 _       _",
    r"  __| (_)___ _ __   __ _| |_ ___| |__",
    r" / _' | / __| '_ \ / _' | __/ __| '_ \ ",
    r"| (_| | \__ \ |_) | (_| | || (__| | | |",
    r" \__,_|_|___/ .__/ \__,_|\__\___|_| |_|",
    r"            |_|",
]
LOGO_UNDERSCORE = [
    " _____",
    "|_____|",
]
UNDERSCORE_LINE = 3

INITIALIZING = "Initializing..."
WAITING = "Waiting for function calls..."

QUIT_KEYS = frozenset({"q", "ctrl+c", "escape"})
SCROLL_KEYS = frozenset({"up", "down", "left", "right", "pageup", "pagedown", "ctrl+u", "ctrl+d"})


class Tab(IntEnum):
    FUNCTIONS = 0
    LOGS = 1

    @property
    def title(self) -> str:
        return "Functions" if self is Tab.FUNCTIONS else "Logs"


def spinner_frames(name: str = "dots") -> List[str]:
    return list(Spinner(name).frames)


@dataclass
class ViewState:
    config: MonitorConfig = field(default_factory=MonitorConfig)
    ticks: int = 0
    spinner_index: int = 0
    ready: bool = False
    width: int = 0
    height: int = 0
    tail: bool = True
    active_tab: Tab = Tab.FUNCTIONS
    frames: List[str] = field(default_factory=spinner_frames)

    def on_tick(self) -> None:
        self.ticks += 1

    def on_spinner_tick(self) -> None:
        self.spinner_index = (self.spinner_index + 1) % len(self.frames)

    def on_resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.ready = True

    def on_key(self, key: str) -> Optional[str]:
        """Apply a key press; returns "quit" when the loop should stop."""
        if key in QUIT_KEYS:
            return "quit"
        if key == "t":
            self.tail = True
        elif key == "tab":
            self.active_tab = Tab((self.active_tab + 1) % len(Tab))
        elif key in SCROLL_KEYS:
            self.tail = False
        return None

    @property
    def spinner(self) -> str:
        return self.frames[self.spinner_index]

    def logo(self) -> Text:
        show_underscore = self.ticks % 2 == 0
        out = Text()
        for i, line in enumerate(LOGO):
            out.append(line, LOGO_STYLE)
            j = i - UNDERSCORE_LINE
            if show_underscore and 0 <= j < len(LOGO_UNDERSCORE):
                out.append(LOGO_UNDERSCORE[j], LOGO_UNDERSCORE_STYLE)
            out.append("\n")
        out.append("\n")
        return out

    def splash(self, message: str) -> Text:
        text = self.logo()
        text.append(message + "\n", STATUS_STYLE)
        return text

    def functions_view(self, store: CallTreeStore, now: Optional[float] = None) -> Text:
        if not self.ready:
            return self.splash(INITIALIZING)
        snapshot = store.snapshot()
        if not snapshot:
            return self.splash(WAITING)
        return render_calls(
            snapshot,
            time.time() if now is None else now,
            spinner=self.spinner,
            min_function_width=self.config.min_function_width,
            max_function_width=self.config.max_function_width,
            status_width=self.config.status_width,
        )

    def logs_view(self, store: CallTreeStore) -> Text:
        return Text.from_ansi(store.log_text())

    def render(self, store: CallTreeStore, now: Optional[float] = None) -> Text:
        if self.active_tab is Tab.LOGS and self.ready:
            return self.logs_view(store)
        return self.functions_view(store, now)


__all__ = ["Tab", "ViewState", "spinner_frames", "INITIALIZING", "WAITING"]
