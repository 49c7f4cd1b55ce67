from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Union


DispatchID = str


class Status(IntEnum):
    """Outcome codes attached to a function call response."""

    UNSPECIFIED = 0
    OK = 1
    TIMEOUT = 2
    THROTTLED = 3
    INVALID_ARGUMENT = 4
    INVALID_RESPONSE = 5
    TEMPORARY_ERROR = 6
    PERMANENT_ERROR = 7
    INCOMPATIBLE_STATE = 8
    DNS_ERROR = 9
    TCP_ERROR = 10
    TLS_ERROR = 11
    HTTP_ERROR = 12
    UNAUTHENTICATED = 13
    PERMISSION_DENIED = 14
    NOT_FOUND = 15


@dataclass
class RunRequest:
    dispatch_id: DispatchID
    function: str = ""
    root_dispatch_id: DispatchID = ""
    parent_dispatch_id: DispatchID = ""
    creation_time: Optional[float] = None
    expiration_time: Optional[float] = None


@dataclass
class CallError:
    type: str
    message: str = ""

    def format(self) -> str:
        if not self.message:
            return self.type
        return f"{self.type}: {self.message}"


@dataclass
class TailCall:
    function: str


@dataclass
class Exit:
    """Terminal directive: the call is over, or continues as a tail call."""

    tail_call: Optional[TailCall] = None
    error: Optional[CallError] = None


@dataclass
class Poll:
    """Suspension directive: the call waits on its children."""


Directive = Union[Exit, Poll]


@dataclass
class RunResponse:
    status: int = Status.UNSPECIFIED
    directive: Optional[Directive] = None


__all__ = [
    "DispatchID",
    "Status",
    "RunRequest",
    "CallError",
    "TailCall",
    "Exit",
    "Poll",
    "Directive",
    "RunResponse",
]
