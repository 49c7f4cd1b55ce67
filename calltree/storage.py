from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

from .types import DispatchID


@dataclass
class Node:
    """One function call execution, possibly spanning several attempts."""

    function: str = ""

    failures: int = 0
    responses: int = 0

    status: int = 0
    error: Optional[str] = None

    running: bool = False
    done: bool = False

    creation_time: Optional[float] = None
    expiration_time: Optional[float] = None
    done_time: Optional[float] = None

    children: List[DispatchID] = field(default_factory=list)
    _child_set: Set[DispatchID] = field(default_factory=set, repr=False, compare=False)

    def add_child(self, child_id: DispatchID) -> bool:
        if child_id in self._child_set:
            return False
        self._child_set.add(child_id)
        self.children.append(child_id)
        return True

    def copy(self) -> "Node":
        clone = Node(
            function=self.function,
            failures=self.failures,
            responses=self.responses,
            status=self.status,
            error=self.error,
            running=self.running,
            done=self.done,
            creation_time=self.creation_time,
            expiration_time=self.expiration_time,
            done_time=self.done_time,
        )
        clone.children = list(self.children)
        clone._child_set = set(self._child_set)
        return clone


class NodeStorage(ABC):
    """Keyed node storage plus the ordered root registry.

    Implementations are not synchronized; CallTreeStore serializes access.
    """

    @abstractmethod
    def get(self, dispatch_id: DispatchID) -> Optional[Node]:
        raise NotImplementedError

    @abstractmethod
    def put(self, dispatch_id: DispatchID, node: Node) -> None:
        raise NotImplementedError

    @abstractmethod
    def __contains__(self, dispatch_id: object) -> bool:
        raise NotImplementedError

    @abstractmethod
    def add_root(self, root_id: DispatchID) -> bool:
        raise NotImplementedError

    @abstractmethod
    def roots(self) -> List[DispatchID]:
        raise NotImplementedError

    @abstractmethod
    def items(self) -> Iterator[Tuple[DispatchID, Node]]:
        raise NotImplementedError


class InMemoryNodeStorage(NodeStorage):
    # FIXME: nothing is ever evicted; long sessions grow without bound.

    def __init__(self) -> None:
        self._nodes: Dict[DispatchID, Node] = {}
        self._roots: Set[DispatchID] = set()
        self._ordered_roots: List[DispatchID] = []

    def get(self, dispatch_id: DispatchID) -> Optional[Node]:
        return self._nodes.get(dispatch_id)

    def put(self, dispatch_id: DispatchID, node: Node) -> None:
        self._nodes[dispatch_id] = node

    def __contains__(self, dispatch_id: object) -> bool:
        return dispatch_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def add_root(self, root_id: DispatchID) -> bool:
        if root_id in self._roots:
            return False
        self._roots.add(root_id)
        self._ordered_roots.append(root_id)
        return True

    def roots(self) -> List[DispatchID]:
        return list(self._ordered_roots)

    def items(self) -> Iterator[Tuple[DispatchID, Node]]:
        return iter(list(self._nodes.items()))


__all__ = ["Node", "NodeStorage", "InMemoryNodeStorage"]
