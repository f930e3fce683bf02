"""Application layer - Circular dependency detection."""

import threading
from contextlib import contextmanager
from typing import Iterator, List

from lattice_ioc.domain import CircularDependencyError


class CircularDependencyDetector:
    """Tracks the chain of definition names currently being visited.

    Each thread keeps its own chain, so concurrent graph walks or creations do
    not see each other. Visiting a name already on the chain is a cycle.

    Attributes:
        _local: Per-thread holder of the visiting chain.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    def _chain(self) -> List[str]:
        chain = getattr(self._local, "chain", None)
        if chain is None:
            chain = self._local.chain = []
        return chain

    def push(self, name: str) -> None:
        """Append a definition name to this thread's chain.

        Args:
            name: The definition about to be visited.

        Raises:
            CircularDependencyError: If the name is already on the chain. The
                reported cycle starts at its first occurrence and ends with it again.

        Example:
            >>> detector = CircularDependencyDetector()
            >>> detector.push("a")
            >>> detector.push("b")
            >>> detector.push("a")  # CircularDependencyError: a -> b -> a
        """
        chain = self._chain()
        if name in chain:
            raise CircularDependencyError(chain[chain.index(name):] + [name])
        chain.append(name)

    def pop(self) -> None:
        """Drop the most recently visited name, if any."""
        chain = self._chain()
        if chain:
            chain.pop()

    def contains(self, name: str) -> bool:
        return name in self._chain()

    def path(self) -> List[str]:
        """Return a copy of this thread's chain."""
        return list(self._chain())

    @contextmanager
    def visiting(self, name: str) -> Iterator[None]:
        """Keep a name on the chain for the duration of a block."""
        self.push(name)
        try:
            yield
        finally:
            self.pop()

    def clear(self) -> None:
        """Forget this thread's chain."""
        self._chain().clear()
