"""Column declarations for entity classes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class Mapped(Generic[T]):
    """Type annotation wrapper marking an attribute as a table column.

    Example:
        >>> class User(ActiveRecord):
        ...     id: Mapped[int] = mapped_column(primary_key=True)
        ...     name: Mapped[str]
        ...     password: Mapped[str | None]
    """

    pass


@dataclass
class ColumnInfo:
    """Stores metadata about a table column."""

    name: str | None = None
    primary_key: bool = False
    default: Any = None

    def default_value(self) -> Any:
        """Evaluate the default, calling it if it is a factory."""
        return self.default() if callable(self.default) else self.default


def mapped_column(
    *,
    primary_key: bool = False,
    default: Any = None,
) -> Any:
    """Declare a column.

    Args:
        primary_key: Whether this column is the entity's primary key
        default: Value (or factory) assigned to new instances

    Returns:
        A ColumnInfo descriptor

    Example:
        >>> id: Mapped[int] = mapped_column(primary_key=True)
        >>> status: Mapped[str] = mapped_column(default="active")
    """
    return ColumnInfo(primary_key=primary_key, default=default)
