from __future__ import annotations


class CallTreeError(Exception):
    """Base class for errors raised by calltree."""


class ContractViolation(CallTreeError):
    """A producer fed the store events that break its ordering contract."""


class UnknownParentError(ContractViolation):
    def __init__(self, dispatch_id: str, parent_id: str, root_id: str) -> None:
        super().__init__(
            f"call {dispatch_id!r} names parent {parent_id!r}, which is neither "
            f"observed nor the root {root_id!r}"
        )
        self.dispatch_id = dispatch_id
        self.parent_id = parent_id
        self.root_id = root_id


class ConfigError(CallTreeError):
    pass


__all__ = ["CallTreeError", "ContractViolation", "UnknownParentError", "ConfigError"]
