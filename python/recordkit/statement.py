"""Clause slots and SQL assembly."""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum
from typing import Final

from recordkit.expressions import Expression


class ClauseKind(StrEnum):
    """One named segment of a SQL statement."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    SET = "set"
    DELETE = "delete"
    JOIN = "join"
    FROM = "from"
    VALUES = "values"
    WHERE = "where"
    HAVING = "having"
    LIMIT = "limit"
    ORDER = "order"
    GROUP = "group"

    @property
    def keyword(self) -> str:
        """The SQL keyword that opens this clause."""
        return _KEYWORDS.get(self, self.value.upper())


_KEYWORDS: Final[dict[ClauseKind, str]] = {
    ClauseKind.GROUP: "GROUP BY",
    ClauseKind.ORDER: "ORDER BY",
}

SELECT_ORDER: Final[tuple[ClauseKind, ...]] = (
    ClauseKind.SELECT,
    ClauseKind.FROM,
    ClauseKind.JOIN,
    ClauseKind.WHERE,
    ClauseKind.GROUP,
    ClauseKind.HAVING,
    ClauseKind.ORDER,
    ClauseKind.LIMIT,
)
INSERT_ORDER: Final[tuple[ClauseKind, ...]] = (ClauseKind.INSERT, ClauseKind.VALUES)
UPDATE_ORDER: Final[tuple[ClauseKind, ...]] = (
    ClauseKind.UPDATE,
    ClauseKind.SET,
    ClauseKind.WHERE,
    ClauseKind.LIMIT,
)
DELETE_ORDER: Final[tuple[ClauseKind, ...]] = (
    ClauseKind.DELETE,
    ClauseKind.FROM,
    ClauseKind.WHERE,
    ClauseKind.LIMIT,
)


class StatementAssembler:
    """Holds one expression slot per clause and renders them in order.

    Empty slots render as nothing, except for the defaults that let callers
    skip ``select()``/``from_()``: SELECT falls back to ``SELECT <table>.*``,
    FROM and UPDATE to ``FROM <table>``/``UPDATE <table>``, and DELETE always
    renders as ``DELETE``.
    """

    def __init__(self) -> None:
        self.slots: dict[ClauseKind, Expression | None] = dict.fromkeys(ClauseKind)

    def get(self, kind: ClauseKind) -> Expression | None:
        return self.slots[kind]

    def set(self, kind: ClauseKind, expression: Expression | None) -> None:
        self.slots[kind] = expression

    def is_empty(self) -> bool:
        return all(slot is None for slot in self.slots.values())

    def clear(self) -> None:
        self.slots = dict.fromkeys(ClauseKind)

    def render_clause(self, kind: ClauseKind, table: str) -> str:
        slot = self.slots[kind]
        if kind is ClauseKind.SELECT and slot is None:
            return f"{kind.keyword} {table}.*"
        if kind in (ClauseKind.FROM, ClauseKind.UPDATE) and slot is None:
            return f"{kind.keyword} {table}"
        if kind is ClauseKind.DELETE:
            return f"{kind.keyword} "
        return f"{slot} " if slot is not None else ""

    def render(self, order: Iterable[ClauseKind], table: str) -> str:
        """Render the requested clauses, in the given order, into one string."""
        return " ".join(self.render_clause(ClauseKind(kind), table) for kind in order)
