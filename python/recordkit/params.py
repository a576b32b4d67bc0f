"""Placeholder generation and parameter binding."""

from __future__ import annotations

import threading
from typing import Any, Final

DEFAULT_PLACEHOLDER_PREFIX: Final[str] = ":ph"


class PlaceholderCounter:
    """Monotonic counter shared by every binder in the process.

    Placeholder names must stay unique even when several entities build
    fragments that end up in one statement, so all binders draw from the
    same counter. Increments are guarded by a lock.
    """

    def __init__(self, start: int = 0) -> None:
        self._value = start
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def reset(self, start: int = 0) -> None:
        """Reset the counter (tests only; reuse of names is not checked)."""
        with self._lock:
            self._value = start

    @property
    def value(self) -> int:
        return self._value


DEFAULT_COUNTER: Final[PlaceholderCounter] = PlaceholderCounter()


class ParameterBinder:
    """Turns values into placeholder tokens and keeps the token -> value map.

    Binding policy:
        - list/tuple: every element is bound, the list of tokens is returned
        - str and other non-numeric scalars: bound, the token is returned
        - None: returned unchanged (rendered as NULL)
        - bool: inlined as 1/0
        - int/float: inlined unchanged

    Numbers are written into the SQL text literally. That keeps statements
    readable but means numeric values never reach the driver as parameters.

    Example:
        >>> binder = ParameterBinder(PlaceholderCounter())
        >>> binder.bind("Alice")
        ':ph1'
        >>> binder.bind([1, 2])
        [':ph2', ':ph3']
        >>> binder.bind(5)
        5
        >>> binder.params
        {':ph1': 'Alice', ':ph2': 1, ':ph3': 2}
    """

    def __init__(
        self,
        counter: PlaceholderCounter = DEFAULT_COUNTER,
        prefix: str = DEFAULT_PLACEHOLDER_PREFIX,
    ) -> None:
        self.counter = counter
        self.prefix = prefix
        self.params: dict[str, Any] = {}

    def placeholder(self, value: Any) -> str:
        """Bind a value unconditionally and return its token."""
        token = f"{self.prefix}{self.counter.next()}"
        self.params[token] = value
        return token

    def bind(self, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [self.placeholder(item) for item in value]
        if value is None:
            return None
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (int, float)):
            return value
        return self.placeholder(value)

    def clear(self) -> None:
        self.params = {}
