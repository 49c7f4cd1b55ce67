from .config import MonitorConfig, load_monitor_config
from .errors import CallTreeError, ConfigError, ContractViolation, UnknownParentError
from .observer import FunctionCallObserver, LoggingObserver, MultiObserver
from .status import is_terminal_http_status, is_terminal_status, status_label
from .storage import InMemoryNodeStorage, Node, NodeStorage
from .store import CallTreeStore, LogBufferHandler, TreeSnapshot
from .types import CallError, DispatchID, Exit, Poll, RunRequest, RunResponse, Status, TailCall

__all__ = [
    "MonitorConfig",
    "load_monitor_config",
    "CallTreeError",
    "ConfigError",
    "ContractViolation",
    "UnknownParentError",
    "FunctionCallObserver",
    "LoggingObserver",
    "MultiObserver",
    "is_terminal_http_status",
    "is_terminal_status",
    "status_label",
    "InMemoryNodeStorage",
    "Node",
    "NodeStorage",
    "CallTreeStore",
    "LogBufferHandler",
    "TreeSnapshot",
    "CallError",
    "DispatchID",
    "Exit",
    "Poll",
    "RunRequest",
    "RunResponse",
    "Status",
    "TailCall",
]
