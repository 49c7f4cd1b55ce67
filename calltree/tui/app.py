from __future__ import annotations

from typing import Optional

try:
    from textual import events
    from textual.app import App, ComposeResult
    from textual.binding import Binding
    from textual.containers import VerticalScroll
    from textual.css.query import NoMatches
    from textual.timer import Timer
    from textual.widgets import Footer, Static, TabbedContent, TabPane
except ImportError as exc:
    raise RuntimeError("textual and rich are required for the TUI: pip install textual rich") from exc

from ..config import MonitorConfig
from ..store import CallTreeStore, LogBufferHandler
from ..utils import redirect_loggers, restore_loggers, setup_logger
from .view import Tab, ViewState

logger = setup_logger("calltree.tui")

_PANE_IDS = {Tab.FUNCTIONS: "tab-functions", Tab.LOGS: "tab-logs"}
_WIDGET_NAMES = {Tab.FUNCTIONS: "functions", Tab.LOGS: "logs"}


class CallTreeMonitor(App):
    """Live view of the function calls flowing through a CallTreeStore."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #tabs {
        height: 1fr;
    }

    VerticalScroll {
        height: 1fr;
        padding: 1 2;
    }

    Static {
        width: auto;
    }
    """

    BINDINGS = [
        Binding("tab", "switch_tab", "switch tabs", priority=True),
        Binding("t", "tail", "tail"),
        Binding("q,ctrl+c,escape", "quit_monitor", "quit", key_display="q", priority=True),
        Binding("up", "scroll('up')", show=False, priority=True),
        Binding("down", "scroll('down')", show=False, priority=True),
        Binding("left", "scroll('left')", show=False, priority=True),
        Binding("right", "scroll('right')", show=False, priority=True),
        Binding("pageup", "scroll('pageup')", show=False, priority=True),
        Binding("pagedown", "scroll('pagedown')", show=False, priority=True),
        Binding("ctrl+u", "scroll('ctrl+u')", show=False, priority=True),
        Binding("ctrl+d", "scroll('ctrl+d')", show=False, priority=True),
    ]

    def __init__(self, store: CallTreeStore, config: Optional[MonitorConfig] = None) -> None:
        super().__init__()
        self.store = store
        self.monitor_config = config or MonitorConfig()
        self.view_state = ViewState(config=self.monitor_config)
        self._refresh_timer: Optional[Timer] = None
        self._spinner_timer: Optional[Timer] = None
        self._saved_handlers: list = []

    def compose(self) -> ComposeResult:
        with TabbedContent(id="tabs", initial=_PANE_IDS[Tab.FUNCTIONS]):
            with TabPane(Tab.FUNCTIONS.title, id=_PANE_IDS[Tab.FUNCTIONS]):
                with VerticalScroll(id="functions-scroll"):
                    yield Static("", id="functions")
            with TabPane(Tab.LOGS.title, id=_PANE_IDS[Tab.LOGS]):
                with VerticalScroll(id="logs-scroll"):
                    yield Static("", id="logs")
        yield Footer()

    def on_mount(self) -> None:
        # The terminal belongs to textual now; log records go to the Logs tab.
        self._saved_handlers = redirect_loggers("calltree", LogBufferHandler(self.store))
        self._refresh_timer = self.set_interval(self.monitor_config.refresh_interval, self._on_tick)
        self._spinner_timer = self.set_interval(self.monitor_config.spinner_interval, self._on_spinner_tick)
        logger.info("monitor started")
        self._refresh_view()

    def on_unmount(self) -> None:
        self.restore_logging()

    def restore_logging(self) -> None:
        restore_loggers(self._saved_handlers)
        self._saved_handlers = []

    def on_resize(self, event: events.Resize) -> None:
        self.view_state.on_resize(event.size.width, event.size.height)
        self._refresh_view()

    def on_tabbed_content_tab_activated(self, event: TabbedContent.TabActivated) -> None:
        active = event.tabbed_content.active
        for tab, pane_id in _PANE_IDS.items():
            if pane_id == active and tab is not self.view_state.active_tab:
                self.view_state.active_tab = tab
                self._refresh_view()

    def _on_tick(self) -> None:
        self.view_state.on_tick()
        self._refresh_view()

    def _on_spinner_tick(self) -> None:
        self.view_state.on_spinner_tick()
        if self.view_state.active_tab is Tab.FUNCTIONS:
            self._refresh_view()

    def _scroller(self) -> VerticalScroll:
        name = _WIDGET_NAMES[self.view_state.active_tab]
        return self.query_one(f"#{name}-scroll", VerticalScroll)

    def _refresh_view(self) -> None:
        # render() copies the store under its lock; widgets are touched afterwards.
        content = self.view_state.render(self.store)
        name = _WIDGET_NAMES[self.view_state.active_tab]
        try:
            widget = self.query_one(f"#{name}", Static)
        except NoMatches:
            return
        widget.update(content)
        if self.view_state.tail:
            self._scroller().scroll_end(animate=False)

    def action_switch_tab(self) -> None:
        self.view_state.on_key("tab")
        self.query_one("#tabs", TabbedContent).active = _PANE_IDS[self.view_state.active_tab]
        self._refresh_view()

    def action_tail(self) -> None:
        self.view_state.on_key("t")
        self._refresh_view()

    def action_scroll(self, key: str) -> None:
        self.view_state.on_key(key)
        scroller = self._scroller()
        half_page = max(scroller.size.height // 2, 1)
        if key == "up":
            scroller.scroll_up(animate=False)
        elif key == "down":
            scroller.scroll_down(animate=False)
        elif key == "left":
            scroller.scroll_left(animate=False)
        elif key == "right":
            scroller.scroll_right(animate=False)
        elif key == "pageup":
            scroller.scroll_page_up(animate=False)
        elif key == "pagedown":
            scroller.scroll_page_down(animate=False)
        elif key == "ctrl+u":
            scroller.scroll_relative(y=-half_page, animate=False)
        elif key == "ctrl+d":
            scroller.scroll_relative(y=half_page, animate=False)

    def action_quit_monitor(self) -> None:
        if self.view_state.on_key("q") == "quit":
            if self._refresh_timer:
                self._refresh_timer.stop()
            if self._spinner_timer:
                self._spinner_timer.stop()
            self.exit()


__all__ = ["CallTreeMonitor"]
