"""Single-use envelope for data passed between threads."""

from __future__ import annotations

from typing import Any, TypeVar

from modmqtt.exceptions import ProgramError

T = TypeVar("T")

_EMPTY = object()


class QueueItem:
    """Holds one piece of data that can be taken out exactly once."""

    __slots__ = ("_kind", "_data")

    def __init__(self, data: Any = _EMPTY):
        if data is _EMPTY:
            self._kind = None
        else:
            self._kind = type(data)
        self._data = data

    def take(self, expected_type: type[T]) -> T:
        """Return the held data and release it."""
        if self._data is _EMPTY:
            raise ProgramError("Tried to get data from queue item twice")
        if not self.is_same_as(expected_type):
            raise ProgramError(f"Trying to get {expected_type.__name__} from wrong item")
        data = self._data
        self._data = _EMPTY
        return data

    def is_same_as(self, kind: type) -> bool:
        return self._kind is kind