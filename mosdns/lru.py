"""A least-recently-used map with a fixed maximum size."""

from __future__ import annotations

from typing import Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

from mosdns.linked_list import Elem, LinkedList

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class LRU(Generic[K, V]):
    """An LRU map. ``on_evict`` is called for evicted and deleted entries."""

    def __init__(
        self, max_size: int, on_evict: Optional[Callable[[K, V], None]] = None
    ) -> None:
        if max_size <= 0:
            raise ValueError(f"LRU: invalid max size: {max_size}")
        self._max_size = max_size
        self._on_evict = on_evict
        self._list: LinkedList[Tuple[K, V]] = LinkedList()
        self._index: Dict[K, Elem[Tuple[K, V]]] = {}

    def add(self, key: K, value: V) -> None:
        """Store ``value`` under ``key`` and mark it as most recently used."""
        elem = self._index.get(key)
        if elem is not None:
            elem.value = (key, value)
            self._list.push_back(self._list.pop_elem(elem))
            return

        while len(self) >= self._max_size:
            old_key, old_value = self.pop_oldest()
            if self._on_evict is not None:
                self._on_evict(old_key, old_value)

        elem = Elem((key, value))
        self._index[key] = elem
        self._list.push_back(elem)

    def delete(self, key: K) -> None:
        """Remove ``key`` if present."""
        elem = self._index.get(key)
        if elem is not None:
            self._delete_elem(elem)

    def _delete_elem(self, elem: Elem[Tuple[K, V]]) -> None:
        key, value = elem.value
        self._list.pop_elem(elem)
        del self._index[key]
        if self._on_evict is not None:
            self._on_evict(key, value)

    def pop_oldest(self) -> Tuple[K, V]:
        """Remove and return the least recently used ``(key, value)``."""
        elem = self._list.front
        if elem is None:
            raise KeyError("pop from an empty LRU")
        self._list.pop_elem(elem)
        key, value = elem.value
        del self._index[key]
        return key, value

    def clean(self, predicate: Callable[[K, V], bool]) -> int:
        """Delete every entry for which ``predicate`` is true; return the count."""
        removed = 0
        elem = self._list.front
        while elem is not None:
            following = elem.next
            key, value = elem.value
            if predicate(key, value):
                self._delete_elem(elem)
                removed += 1
            elem = following
        return removed

    def flush(self) -> None:
        """Drop every entry without calling ``on_evict``."""
        self._list = LinkedList()
        self._index = {}

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """Return the value for ``key`` and mark it as most recently used."""
        elem = self._index.get(key)
        if elem is None:
            return default
        self._list.push_back(self._list.pop_elem(elem))
        return elem.value[1]

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def __len__(self) -> int:
        return len(self._list)