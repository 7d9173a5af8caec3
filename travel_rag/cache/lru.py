"""
In-process LRU cache (L1 tier)
"""

from collections import OrderedDict
from typing import Any, Callable, Generic, Hashable, Iterator, List, Optional, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class LRUCache(Generic[K, V]):
    """
    Bounded mapping that evicts the least-recently-used key.

    `get` and `set` both count as use; `peek` does not.
    """

    def __init__(self, max_size: int = 1000, on_evict: Optional[Callable[[K, V], Any]] = None):
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.max_size = max_size
        self._data: "OrderedDict[K, V]" = OrderedDict()
        self._on_evict = on_evict

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: K) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[K]:
        return iter(self._data)

    def get(self, key: K) -> Optional[V]:
        if key not in self._data:
            return None
        self._data.move_to_end(key)
        return self._data[key]

    def peek(self, key: K) -> Optional[V]:
        return self._data.get(key)

    def set(self, key: K, value: V) -> List[Tuple[K, V]]:
        """
        Insert or replace a value as most recently used.

        Returns:
            The (key, value) pairs evicted to stay within max_size
        """
        self._data[key] = value
        self._data.move_to_end(key)
        evicted = []
        while len(self._data) > self.max_size:
            old_key, old_value = self._data.popitem(last=False)
            evicted.append((old_key, old_value))
            if self._on_evict:
                self._on_evict(old_key, old_value)
        return evicted

    def pop(self, key: K) -> Optional[V]:
        return self._data.pop(key, None)

    def clear(self):
        self._data.clear()

    def keys(self) -> List[K]:
        """Keys from least to most recently used"""
        return list(self._data.keys())
