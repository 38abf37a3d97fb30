"""Small generic containers: pairs, a FIFO queue, an ordered set and a min finder."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import (
    Callable,
    Generic,
    Hashable,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    TypeVar,
)

K = TypeVar("K")
V = TypeVar("V")
T = TypeVar("T")
F = TypeVar("F")
S = TypeVar("S")
H = TypeVar("H", bound=Hashable)


@dataclass(frozen=True)
class Pair(Generic[F, S]):
    """Two values kept together."""

    first: F
    second: S


def find_min(
    mapping: Mapping[K, V], comparator: Callable[[V, V], int]
) -> Optional[Tuple[K, V]]:
    """Return the ``(key, value)`` with the smallest value, or None for an empty mapping.

    ``comparator(a, b)`` must return 1 when ``a`` is smaller than ``b``.
    """
    best: Optional[Tuple[K, V]] = None
    for key, value in mapping.items():
        if best is None or comparator(value, best[1]) == 1:
            best = (key, value)
    return best


class Queue(Generic[T]):
    """A FIFO queue that can also push to its front."""

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._items: deque[T] = deque(items)

    def push_back(self, item: T) -> None:
        self._items.append(item)

    def push_back_all(self, *args: T) -> None:
        self._items.extend(args)

    def push_front(self, item: T) -> None:
        self._items.appendleft(item)

    def peek(self) -> T:
        """Return the front item without removing it; IndexError if empty."""
        if not self._items:
            raise IndexError("peek from an empty queue")
        return self._items[0]

    def pop(self) -> T:
        """Remove and return the front item; IndexError if empty."""
        if not self._items:
            raise IndexError("pop from an empty queue")
        return self._items.popleft()

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def is_empty(self) -> bool:
        return not self._items

    def to_list(self) -> List[T]:
        """Return a copy of the items, front first."""
        return list(self._items)


class MapSet(Generic[H]):
    """A set that remembers insertion order."""

    def __init__(self, *args: H) -> None:
        self._items: dict[H, None] = {}
        self.add_all(*args)

    def add(self, elem: H) -> None:
        self._items[elem] = None

    def add_all(self, *args: H) -> None:
        for elem in args:
            self.add(elem)

    def __contains__(self, elem: object) -> bool:
        return elem in self._items

    def remove(self, elem: H) -> None:
        """Remove ``elem`` if present; missing elements are ignored."""
        self._items.pop(elem, None)

    def remove_all(self, *args: H) -> None:
        for elem in args:
            self.remove(elem)

    def clear(self) -> None:
        self._items = {}

    def to_list(self) -> List[H]:
        return list(self._items)

    def for_each(self, func: Callable[[H], bool]) -> None:
        """Call ``func`` on each element until it returns True."""
        for elem in list(self._items):
            if func(elem):
                break

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[H]:
        return iter(list(self._items))