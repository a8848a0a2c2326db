"""
Inclusion Registry

The set of identifiers already materialized. Append-only: once an
identifier is marked it is never unmarked, which is what guarantees at
most one load per identifier.
"""

from __future__ import annotations
from typing import Iterator, List
import logging
import threading

logger = logging.getLogger(__name__)


class InclusionRegistry:
    """Append-only set of included identifiers."""

    def __init__(self):
        self._included: List[str] = []
        self._index: set = set()
        self._lock = threading.Lock()

    def is_included(self, identifier: str) -> bool:
        return identifier in self._index

    def mark(self, identifier: str) -> bool:
        """
        Mark `identifier` as included.

        Returns False if it already was (check-then-mark is atomic).
        """
        with self._lock:
            if identifier in self._index:
                return False
            self._index.add(identifier)
            self._included.append(identifier)
        logger.debug("Marked %s as included", identifier)
        return True

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._index

    def __iter__(self) -> Iterator[str]:
        """Identifiers in the order they were marked."""
        return iter(list(self._included))

    def __len__(self) -> int:
        return len(self._included)
