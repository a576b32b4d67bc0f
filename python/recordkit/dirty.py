"""Tracking of fields assigned since the last persist."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


class DirtyTracker:
    """Records assigned fields so INSERT/UPDATE only write what changed.

    Marks are only recorded while ``enabled`` is true. Hydration from a
    result set runs inside :meth:`clean`, which separates user edits from
    data loaded from storage.
    """

    def __init__(self) -> None:
        self._fields: dict[str, Any] = {}
        self.enabled = True

    def mark(self, name: str, value: Any, force: bool = False) -> None:
        if self.enabled or force:
            self._fields[name] = value

    def discard(self, name: str) -> None:
        self._fields.pop(name, None)

    def clear(self) -> None:
        self._fields = {}

    def as_dict(self) -> dict[str, Any]:
        return dict(self._fields)

    @contextmanager
    def clean(self) -> Iterator[None]:
        """Disable marking for the duration of the block."""
        previous = self.enabled
        self.enabled = False
        try:
            yield
        finally:
            self.enabled = previous

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __getitem__(self, name: str) -> Any:
        return self._fields[name]

    def __len__(self) -> int:
        return len(self._fields)

    def __bool__(self) -> bool:
        return bool(self._fields)
