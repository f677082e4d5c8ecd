"""
Identifier generation for books and quotes.

The store never creates identifiers itself; it asks an injected generator,
so tests can swap in a deterministic one.
"""

import itertools
import uuid
from typing import Protocol


class IdGenerator(Protocol):
    def next(self) -> str:
        ...


class UUIDGenerator:
    """Random UUID v4 identifiers (default)."""

    def next(self) -> str:
        return str(uuid.uuid4())


class SequentialIdGenerator:
    """
    Deterministic identifiers: {prefix}-1, {prefix}-2, ...

    Args:
        prefix: text placed before the counter
        start: first counter value
    """

    def __init__(self, prefix: str = "id", start: int = 1) -> None:
        self.prefix = prefix
        self._counter = itertools.count(start)

    def next(self) -> str:
        return f"{self.prefix}-{next(self._counter)}"
