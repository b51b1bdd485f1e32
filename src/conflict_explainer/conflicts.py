from __future__ import annotations

import typing as T

NodeId = T.TypeVar("NodeId", bound=T.Hashable)


class ConflictMap(T.Generic[NodeId]):
    """A symmetric and irreflexive relation between nodes that cannot be installed together.

    Nodes are iterated in the order they first entered a conflict.
    """

    def __init__(self, pairs: T.Iterable[tuple[NodeId, NodeId]] = ()) -> None:
        self._conflicts: dict[NodeId, dict[NodeId, None]] = {}
        for a, b in pairs:
            self.add(a, b)

    def add(self, a: NodeId, b: NodeId) -> bool:
        """Add a conflict and return whether it was new."""
        if a == b:
            raise ValueError(f"Node {a!r} cannot be in conflict with itself")
        if self.has_conflict(a, b):
            return False
        self._conflicts.setdefault(a, {})[b] = None
        self._conflicts.setdefault(b, {})[a] = None
        return True

    def has_conflict(self, a: NodeId, b: NodeId) -> bool:
        return b in self._conflicts.get(a, {})

    def in_conflict(self, a: NodeId) -> bool:
        return a in self._conflicts

    def conflicts(self, a: NodeId) -> set[NodeId]:
        return set(self._conflicts.get(a, {}))

    def ordered_conflicts(self, a: NodeId) -> list[NodeId]:
        return list(self._conflicts.get(a, {}))

    def discard(self, a: NodeId, b: NodeId) -> None:
        for x, y in [(a, b), (b, a)]:
            others = self._conflicts.get(x)
            if others is not None and y in others:
                del others[y]
                if not others:
                    del self._conflicts[x]

    def remove(self, a: NodeId) -> None:
        for b in self._conflicts.pop(a, {}):
            others = self._conflicts[b]
            del others[a]
            if not others:
                del self._conflicts[b]

    def clear(self) -> None:
        self._conflicts.clear()

    def pairs(self) -> T.Iterator[tuple[NodeId, NodeId]]:
        """Iterate over each conflict once, in insertion order of the first node."""
        seen: set[NodeId] = set()
        for a, others in self._conflicts.items():
            seen.add(a)
            for b in others:
                if b not in seen:
                    yield (a, b)

    def copy(self) -> ConflictMap[NodeId]:
        return ConflictMap(self.pairs())

    def __len__(self) -> int:
        return len(self._conflicts)

    def __bool__(self) -> bool:
        return len(self._conflicts) > 0

    def __iter__(self) -> T.Iterator[NodeId]:
        return iter(self._conflicts)

    def __contains__(self, a: object) -> bool:
        return a in self._conflicts

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConflictMap):
            return NotImplemented
        return {a: set(b) for a, b in self._conflicts.items()} == {
            a: set(b) for a, b in other._conflicts.items()
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self.pairs())!r})"
