"""Condition building: operator dispatch, clause setters and wrapped groups."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Final

from recordkit.exceptions import UnsupportedOperationError
from recordkit.expressions import Expression, ExpressionGroup
from recordkit.params import ParameterBinder
from recordkit.statement import ClauseKind, StatementAssembler


class Operator(StrEnum):
    """SQL comparison operators understood by the condition builder."""

    EQ = "="
    NE = "<>"
    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="
    BETWEEN = "BETWEEN"
    LIKE = "LIKE"
    IN = "IN"
    NOT_IN = "NOT IN"
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"

    @property
    def takes_value(self) -> bool:
        return self not in (Operator.IS_NULL, Operator.IS_NOT_NULL)


# Keys are lower-case with underscores removed, see normalize_method_name().
OPERATORS: Final[dict[str, Operator]] = {
    "equal": Operator.EQ,
    "eq": Operator.EQ,
    "notequal": Operator.NE,
    "ne": Operator.NE,
    "greaterthan": Operator.GT,
    "gt": Operator.GT,
    "lessthan": Operator.LT,
    "lt": Operator.LT,
    "greaterthanorequal": Operator.GE,
    "ge": Operator.GE,
    "gte": Operator.GE,
    "lessthanorequal": Operator.LE,
    "le": Operator.LE,
    "lte": Operator.LE,
    "between": Operator.BETWEEN,
    "like": Operator.LIKE,
    "in": Operator.IN,
    "notin": Operator.NOT_IN,
    "isnull": Operator.IS_NULL,
    "isnotnull": Operator.IS_NOT_NULL,
    "notnull": Operator.IS_NOT_NULL,
}

CLAUSES: Final[dict[str, ClauseKind]] = {
    "select": ClauseKind.SELECT,
    "from": ClauseKind.FROM,
    "join": ClauseKind.JOIN,
    "where": ClauseKind.WHERE,
    "group": ClauseKind.GROUP,
    "groupby": ClauseKind.GROUP,
    "having": ClauseKind.HAVING,
    "order": ClauseKind.ORDER,
    "orderby": ClauseKind.ORDER,
    "limit": ClauseKind.LIMIT,
}


def normalize_method_name(name: str) -> str:
    """Fold ``orderBy``, ``order_by`` and ``in_`` style names to table keys."""
    return name.lower().replace("_", "")


def resolve_method(name: str) -> Operator | ClauseKind:
    """Look up a condition or clause method by name.

    Raises:
        UnsupportedOperationError: If the name is in neither table.
    """
    key = normalize_method_name(name)
    if key in OPERATORS:
        return OPERATORS[key]
    if key in CLAUSES:
        return CLAUSES[key]
    raise UnsupportedOperationError(name)


def concat_operator(value: str | None) -> str:
    """Map a user supplied concatenation marker to AND/OR."""
    return "OR" if value and value.lower() == "or" else "AND"


class ConditionBuilder:
    """Builds expressions and threads them into statement slots.

    Conditions on an occupied slot nest: the slot target becomes
    ``(old <concat> new)``, so conditions accumulate left to right. In wrap
    mode conditions collect in a pending group which is committed to WHERE
    as one parenthesized expression when the wrap is closed.
    """

    def __init__(self, binder: ParameterBinder, assembler: StatementAssembler) -> None:
        self.binder = binder
        self.assembler = assembler
        self.wrapping = False
        self.pending: list[Expression] = []

    def build(
        self,
        table: str,
        field: str,
        operator: Operator,
        value: Any = None,
        clause: ClauseKind = ClauseKind.WHERE,
    ) -> Expression:
        """Create the expression for one condition, binding its value."""
        source = f"{table}.{field}" if clause is ClauseKind.WHERE else field

        if not operator.takes_value:
            return Expression(source, operator.value)

        if operator is Operator.BETWEEN:
            if not isinstance(value, (list, tuple)) or len(value) != 2:
                raise ValueError(f"between() expects exactly two values for {field!r}, got {value!r}")
            target: Any = ExpressionGroup(self.binder.bind(value), prefix="", suffix="", delimiter=" AND ")
        elif isinstance(value, (list, tuple)):
            target = ExpressionGroup(self.binder.bind(value))
        else:
            target = self.binder.bind(value)

        return Expression(source, operator.value, target)

    def add_condition(
        self,
        table: str,
        field: str,
        operator: Operator,
        value: Any = None,
        concat: str = "AND",
        clause: ClauseKind = ClauseKind.WHERE,
    ) -> Expression:
        expression = self.build(table, field, operator, value, clause)
        if self.wrapping:
            self._add_pending(expression, concat)
        else:
            self.commit(expression, concat, clause)
        return expression

    def commit(self, expression: Any, concat: str, clause: ClauseKind = ClauseKind.WHERE) -> None:
        """Nest an expression into a clause slot."""
        slot = self.assembler.get(clause)
        if slot is not None:
            slot.target = Expression(slot.target, concat, expression)
        else:
            self.assembler.set(clause, Expression(operator=clause.keyword, target=expression))

    def _add_pending(self, expression: Expression, concat: str) -> None:
        if not self.pending:
            self.pending = [expression]
        else:
            self.pending.append(Expression(operator=concat, target=expression))

    def open_wrap(self) -> None:
        self.wrapping = True

    def close_wrap(self, concat: str | None = "AND") -> None:
        self.wrapping = False
        if self.pending:
            self.commit(ExpressionGroup(self.pending, delimiter=" "), concat_operator(concat))
        self.pending = []

    def set_clause(self, kind: ClauseKind, *args: Any) -> None:
        """Replace a clause slot with ``<KEYWORD> arg1,arg2``."""
        target = ",".join(str(arg) for arg in args if arg is not None)
        self.assembler.set(kind, Expression(operator=kind.keyword, target=target))

    def join(self, table: str, on: str, kind: str = "LEFT") -> None:
        previous = self.assembler.get(ClauseKind.JOIN)
        self.assembler.set(
            ClauseKind.JOIN,
            Expression(previous, f"{kind} JOIN", Expression(table, "ON", on)),
        )

    def reset(self) -> None:
        self.wrapping = False
        self.pending = []
