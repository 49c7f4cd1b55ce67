from __future__ import annotations

from .types import Status


_NON_TERMINAL_STATUSES = frozenset(
    {
        Status.TIMEOUT,
        Status.THROTTLED,
        Status.TEMPORARY_ERROR,
        Status.INCOMPATIBLE_STATE,
        Status.DNS_ERROR,
        Status.TCP_ERROR,
        Status.TLS_ERROR,
        Status.HTTP_ERROR,
    }
)

_STATUS_LABELS = {
    Status.OK: "OK",
    Status.TIMEOUT: "Timeout",
    Status.THROTTLED: "Throttled",
    Status.INVALID_ARGUMENT: "Invalid argument",
    Status.INVALID_RESPONSE: "Invalid response",
    Status.TEMPORARY_ERROR: "Temporary error",
    Status.PERMANENT_ERROR: "Permanent error",
    Status.INCOMPATIBLE_STATE: "Incompatible state",
    Status.DNS_ERROR: "DNS error",
    Status.TCP_ERROR: "TCP error",
    Status.TLS_ERROR: "TLS error",
    Status.HTTP_ERROR: "HTTP error",
    Status.UNAUTHENTICATED: "Unauthenticated",
    Status.PERMISSION_DENIED: "Permission denied",
    Status.NOT_FOUND: "Not found",
}

HTTP_REQUEST_TIMEOUT = 408
HTTP_TOO_MANY_REQUESTS = 429
HTTP_NOT_IMPLEMENTED = 501


def is_terminal_status(status: int) -> bool:
    """Return False when the outcome means the call will be retried."""
    return status not in _NON_TERMINAL_STATUSES


def is_terminal_http_status(code: int) -> bool:
    family = code // 100
    if family == 4:
        return code not in (HTTP_REQUEST_TIMEOUT, HTTP_TOO_MANY_REQUESTS)
    if family == 5:
        return code == HTTP_NOT_IMPLEMENTED
    return True


def status_label(status: int) -> str:
    try:
        member = Status(status)
    except ValueError:
        return str(int(status))
    label = _STATUS_LABELS.get(member)
    if label is None:
        return f"STATUS_{member.name}"
    return label


__all__ = ["is_terminal_status", "is_terminal_http_status", "status_label"]
