"""Keyed store with compare-and-swap semantics.

Shared between request handlers and the background sweep of the
introspection cache.  None of the methods awaits, so under a single
asyncio event loop every operation is atomic with respect to every
other coroutine and no lock is held across remote calls.

Comparisons use object identity: values are expected to be immutable
and replaced wholesale.
"""

from __future__ import annotations

from typing import Dict, Generic, Iterator, Optional, Tuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class AtomicStore(Generic[K, V]):
    """Dictionary wrapper exposing atomic conditional updates."""

    def __init__(self) -> None:
        self._data: Dict[K, V] = {}

    def get(self, key: K) -> Optional[V]:
        return self._data.get(key)

    def put(self, key: K, value: V) -> None:
        """Insert or overwrite (last writer wins)."""
        self._data[key] = value

    def compare_and_swap(self, key: K, expected: V, new: V) -> bool:
        """Replace *expected* with *new* only if *expected* is still stored."""
        if self._data.get(key) is not expected:
            return False
        self._data[key] = new
        return True

    def compare_and_remove(self, key: K, expected: V) -> bool:
        """Remove *key* only if it still maps to *expected*."""
        if self._data.get(key) is not expected:
            return False
        del self._data[key]
        return True

    def items(self) -> Iterator[Tuple[K, V]]:
        """Iterate over a snapshot of the current entries."""
        return iter(list(self._data.items()))

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)
