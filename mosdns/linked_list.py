"""A doubly linked list whose elements are owned by at most one list."""

from __future__ import annotations

from typing import Generic, Iterator, Optional, TypeVar

V = TypeVar("V")


class Elem(Generic[V]):
    """A list element holding ``value``."""

    __slots__ = ("value", "_prev", "_next", "_list")

    def __init__(self, value: V) -> None:
        self.value = value
        self._prev: Optional[Elem[V]] = None
        self._next: Optional[Elem[V]] = None
        self._list: Optional[LinkedList[V]] = None

    @property
    def prev(self) -> Optional[Elem[V]]:
        """The previous element, or None at the front."""
        return self._prev

    @property
    def next(self) -> Optional[Elem[V]]:
        """The next element, or None at the back."""
        return self._next

    def _is_free(self) -> bool:
        return self._prev is None and self._next is None and self._list is None


class LinkedList(Generic[V]):
    """A doubly linked list of :class:`Elem` objects."""

    def __init__(self) -> None:
        self._front: Optional[Elem[V]] = None
        self._back: Optional[Elem[V]] = None
        self._length = 0

    @property
    def front(self) -> Optional[Elem[V]]:
        """The first element, or None if the list is empty."""
        return self._front

    @property
    def back(self) -> Optional[Elem[V]]:
        """The last element, or None if the list is empty."""
        return self._back

    @staticmethod
    def _require_free(elem: Elem[V]) -> None:
        if not elem._is_free():
            raise ValueError("element is in use")

    def push_front(self, elem: Elem[V]) -> Elem[V]:
        """Insert a free element at the front and return it."""
        self._require_free(elem)
        self._length += 1
        elem._list = self
        if self._front is None:
            self._front = self._back = elem
        else:
            elem._next = self._front
            self._front._prev = elem
            self._front = elem
        return elem

    def push_back(self, elem: Elem[V]) -> Elem[V]:
        """Insert a free element at the back and return it."""
        self._require_free(elem)
        self._length += 1
        elem._list = self
        if self._back is None:
            self._front = self._back = elem
        else:
            elem._prev = self._back
            self._back._next = elem
            self._back = elem
        return elem

    def pop_elem(self, elem: Elem[V]) -> Elem[V]:
        """Unlink ``elem`` from this list and return it as a free element."""
        if elem._list is not self:
            raise ValueError("element does not belong to this list")
        self._length -= 1
        if elem._prev is not None:
            elem._prev._next = elem._next
        if elem._next is not None:
            elem._next._prev = elem._prev
        if elem is self._front:
            self._front = elem._next
        if elem is self._back:
            self._back = elem._prev
        elem._prev = elem._next = None
        elem._list = None
        return elem

    def __len__(self) -> int:
        return self._length

    def __iter__(self) -> Iterator[V]:
        """Iterate over the values from front to back."""
        elem = self._front
        while elem is not None:
            yield elem.value
            elem = elem._next