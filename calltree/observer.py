from __future__ import annotations

from typing import Iterable, List, Optional, Protocol

from .status import status_label
from .types import Exit, Poll, RunRequest, RunResponse
from .utils import setup_logger

logger = setup_logger("calltree.observer")


class FunctionCallObserver(Protocol):
    """Notified by the forwarding layer around each local function call."""

    def observe_request(self, request: RunRequest) -> None:
        ...

    def observe_response(
        self,
        request: RunRequest,
        error: Optional[BaseException] = None,
        http_status: Optional[int] = None,
        response: Optional[RunResponse] = None,
    ) -> None:
        ...


class LoggingObserver:
    """Headless observer: one log line per request and per response."""

    def __init__(self, name: str = "calltree.calls") -> None:
        self.logger = setup_logger(name)

    def observe_request(self, request: RunRequest) -> None:
        self.logger.info("calling %s (%s)", request.function or "(?)", request.dispatch_id)

    def observe_response(
        self,
        request: RunRequest,
        error: Optional[BaseException] = None,
        http_status: Optional[int] = None,
        response: Optional[RunResponse] = None,
    ) -> None:
        function = request.function or "(?)"
        if response is not None:
            outcome = status_label(response.status)
            directive = response.directive
            if isinstance(directive, Exit) and directive.tail_call is not None:
                self.logger.info("%s: tail call to %s", function, directive.tail_call.function)
            elif isinstance(directive, Exit) and directive.error is not None:
                self.logger.warning("%s: %s (%s)", function, outcome, directive.error.format())
            elif isinstance(directive, Poll):
                self.logger.info("%s: suspended", function)
            else:
                self.logger.info("%s: %s", function, outcome)
        elif http_status is not None:
            self.logger.warning("%s: unexpected HTTP status code %d", function, http_status)
        elif error is not None:
            self.logger.error("%s: %s", function, error)


class MultiObserver:
    def __init__(self, observers: Iterable[FunctionCallObserver]) -> None:
        self.observers: List[FunctionCallObserver] = list(observers)

    def observe_request(self, request: RunRequest) -> None:
        for observer in self.observers:
            observer.observe_request(request)

    def observe_response(
        self,
        request: RunRequest,
        error: Optional[BaseException] = None,
        http_status: Optional[int] = None,
        response: Optional[RunResponse] = None,
    ) -> None:
        for observer in self.observers:
            observer.observe_response(request, error=error, http_status=http_status, response=response)


__all__ = ["FunctionCallObserver", "LoggingObserver", "MultiObserver"]
