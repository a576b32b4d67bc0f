"""SQL expression nodes.

Every statement is split into expressions made of three parts:
``source``, ``operator`` and ``target``. Targets may themselves be
expressions, so a clause slot holds a small tree that renders to SQL text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def _render(part: Any) -> str:
    if part is None:
        return "NULL"
    return str(part)


@dataclass
class Expression:
    """A single ``source operator target`` fragment.

    Example:
        >>> str(Expression("user.id", "=", "1"))
        'user.id = 1'
        >>> str(Expression(operator="WHERE", target=Expression("user.id", "=", "1")))
        'WHERE user.id = 1'
    """

    source: Any = None
    operator: str = ""
    target: Any = ""

    def __str__(self) -> str:
        parts = []
        if self.source is not None and self.source != "":
            parts.append(str(self.source))
        if self.operator:
            parts.append(self.operator)
        if self.target != "":
            parts.append(_render(self.target))
        return " ".join(parts)


@dataclass
class ExpressionGroup:
    """A delimited sequence of items with a prefix and suffix.

    Renders ``(a,b,c)`` by default; ``BETWEEN`` uses an empty prefix and
    suffix with `` AND `` as delimiter, wrapped conditions use a space.
    """

    items: list[Any] = field(default_factory=list)
    prefix: str = "("
    suffix: str = ")"
    delimiter: str = ","

    def __str__(self) -> str:
        return self.prefix + self.delimiter.join(_render(item) for item in self.items) + self.suffix

    def __len__(self) -> int:
        return len(self.items)
