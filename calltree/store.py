"""Thread-safe call tree store fed by the request forwarding layer.

Producers call ``observe_request``/``observe_response``/``write`` from their
own threads. The UI never reads the live nodes: it asks for a ``snapshot``,
which is copied under the lock, and renders from that copy after the lock has
been released.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from .errors import UnknownParentError
from .status import is_terminal_http_status, is_terminal_status
from .storage import InMemoryNodeStorage, Node, NodeStorage
from .types import DispatchID, Exit, Poll, RunRequest, RunResponse, Status
from .utils import setup_logger

logger = setup_logger("calltree.store")


@dataclass(frozen=True)
class TreeSnapshot:
    roots: Tuple[DispatchID, ...] = ()
    nodes: Dict[DispatchID, Node] = field(default_factory=dict)

    def node(self, dispatch_id: DispatchID) -> Node:
        return self.nodes.get(dispatch_id) or Node()

    def __bool__(self) -> bool:
        return bool(self.roots)


class CallTreeStore:
    def __init__(
        self,
        storage: Optional[NodeStorage] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._storage = storage if storage is not None else InMemoryNodeStorage()
        self._clock = clock
        self._logs = bytearray()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Event ingestion
    # ------------------------------------------------------------------

    def observe_request(self, request: RunRequest) -> None:
        """Record that a request is about to be forwarded to the application."""
        root_id = request.root_dispatch_id
        parent_id = request.parent_dispatch_id
        dispatch_id = request.dispatch_id

        with self._lock:
            storage = self._storage
            if parent_id and parent_id not in storage and parent_id != root_id:
                raise UnknownParentError(dispatch_id, parent_id, root_id)

            new_root = storage.add_root(root_id)
            if root_id not in storage:
                storage.put(root_id, Node())

            node = storage.get(dispatch_id) or Node()
            node.function = request.function
            node.running = True
            if request.creation_time is not None:
                node.creation_time = request.creation_time
            if node.creation_time is None:
                node.creation_time = self._clock()
            if request.expiration_time is not None:
                node.expiration_time = request.expiration_time
            storage.put(dispatch_id, node)

            if parent_id:
                parent = storage.get(parent_id)
                if parent is None:
                    parent = Node()
                    storage.put(parent_id, parent)
                parent.add_child(dispatch_id)

        # log records may be routed back into this store, so never under the lock
        if new_root:
            logger.debug("new call tree rooted at %s", root_id)

    def observe_response(
        self,
        request: RunRequest,
        error: Optional[BaseException] = None,
        http_status: Optional[int] = None,
        response: Optional[RunResponse] = None,
    ) -> None:
        """Record the outcome of one attempt at running a request.

        ``response`` is the structured reply from the application. When it is
        missing, ``http_status`` describes a transport failure and ``error`` a
        failure to obtain any reply at all.
        """
        dispatch_id = request.dispatch_id

        with self._lock:
            node = self._storage.get(dispatch_id)
            unobserved = node is None
            if node is None:
                node = Node()

            node.responses += 1
            node.error = None
            node.status = Status.UNSPECIFIED
            node.running = False

            if response is not None:
                node = self._apply_response(node, response)
            elif http_status is not None:
                node.failures += 1
                node.error = f"unexpected HTTP status code {http_status}"
                node.done = is_terminal_http_status(http_status)
            elif error is not None:
                node.failures += 1
                node.error = str(error) or type(error).__name__

            if node.done and node.done_time is None:
                node.done_time = self._clock()

            self._storage.put(dispatch_id, node)

        if unobserved:
            logger.warning("response for unobserved call %s", dispatch_id)

    @staticmethod
    def _apply_response(node: Node, response: RunResponse) -> Node:
        status = response.status
        if status == Status.OK:
            pass
        elif status == Status.INCOMPATIBLE_STATE:
            node = Node(function=node.function)
        else:
            node.failures += 1

        directive = response.directive
        if isinstance(directive, Exit):
            node.status = status
            node.done = is_terminal_status(status)
            if directive.tail_call is not None:
                node = Node(function=directive.tail_call.function)
            elif status != Status.OK and directive.error is not None and directive.error.type:
                node.error = directive.error.format()
        elif isinstance(directive, Poll):
            pass
        return node

    # ------------------------------------------------------------------
    # Log buffer
    # ------------------------------------------------------------------

    def write(self, data: bytes) -> int:
        with self._lock:
            self._logs.extend(data)
        return len(data)

    def read(self, size: int = -1) -> bytes:
        with self._lock:
            if size is None or size < 0 or size > len(self._logs):
                size = len(self._logs)
            chunk = bytes(self._logs[:size])
            del self._logs[:size]
        return chunk

    def log_text(self) -> str:
        with self._lock:
            raw = bytes(self._logs)
        return raw.decode("utf-8", errors="replace")

    def flush(self) -> None:
        return

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def snapshot(self) -> TreeSnapshot:
        with self._lock:
            roots = tuple(self._storage.roots())
            nodes = {dispatch_id: node.copy() for dispatch_id, node in self._storage.items()}
        return TreeSnapshot(roots=roots, nodes=nodes)

    def has_calls(self) -> bool:
        with self._lock:
            return bool(self._storage.roots())


class LogBufferHandler(logging.Handler):
    """Routes log records into the store's log buffer while the UI is up."""

    def __init__(self, store: CallTreeStore, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.store = store

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record) + "\n"
            self.store.write(line.encode("utf-8"))
        except Exception:
            self.handleError(record)


__all__ = ["CallTreeStore", "TreeSnapshot", "LogBufferHandler"]
