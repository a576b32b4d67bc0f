"""Declarative base for active record entities."""

from __future__ import annotations

import inspect
from collections.abc import Iterable, Mapping
from typing import Any, ClassVar, Self

import structlog

from recordkit.conditions import ConditionBuilder, Operator, concat_operator, resolve_method
from recordkit.dirty import DirtyTracker
from recordkit.engine import Database, ResultSet, get_database
from recordkit.exceptions import (
    ActiveRecordError,
    MultipleRecordsFoundError,
    NoRecordFoundError,
    RecordNotFoundError,
)
from recordkit.expressions import Expression, ExpressionGroup
from recordkit.fields import ColumnInfo
from recordkit.params import (
    DEFAULT_COUNTER,
    DEFAULT_PLACEHOLDER_PREFIX,
    ParameterBinder,
    PlaceholderCounter,
)
from recordkit.relationships import RelationDefinition, RelationResolver, register_model
from recordkit.statement import (
    DELETE_ORDER,
    INSERT_ORDER,
    SELECT_ORDER,
    UPDATE_ORDER,
    ClauseKind,
    StatementAssembler,
)

logger = structlog.get_logger(__name__)

DEFAULT_PRIMARY_KEY = "id"


class ModelMeta(type):
    """Metaclass for entities that builds the column and relation registries."""

    def __new__(
        mcs,
        name: str,
        bases: tuple[type, ...],
        namespace: dict[str, Any],
        **kwargs: Any,
    ) -> ModelMeta:
        cls = super().__new__(mcs, name, bases, namespace, **kwargs)

        # Skip processing for ActiveRecord itself
        if not any(isinstance(b, ModelMeta) for b in bases):
            return cls

        cls.__tablename__ = namespace.get("__tablename__") or name.lower()  # type: ignore[attr-defined]

        # Start from the parent registries so subclasses extend them
        columns: dict[str, ColumnInfo] = dict(getattr(cls, "__columns__", {}))
        relationships: dict[str, RelationDefinition] = dict(getattr(cls, "__relationships__", {}))

        for attr_name, attr_value in list(namespace.items()):
            if attr_name.startswith("_"):
                continue
            if isinstance(attr_value, ColumnInfo):
                attr_value.name = attr_name
                columns[attr_name] = attr_value
            elif isinstance(attr_value, RelationDefinition):
                attr_value.name = attr_name
                relationships[attr_name] = attr_value
            else:
                continue
            # Remove from the class so __getattr__ handles instance access
            delattr(cls, attr_name)

        # Bare Mapped[...] annotations declare columns without options
        try:
            hints = inspect.get_annotations(cls)
        except NameError:
            hints = {}

        for attr_name, hint in hints.items():
            if attr_name.startswith("_") or attr_name in columns or attr_name in relationships:
                continue
            if "Mapped[" in str(hint):
                columns[attr_name] = ColumnInfo(name=attr_name)

        primary_key = namespace.get("__primary_key__")
        if primary_key is None:
            primary_key = next(
                (col_name for col_name, col_info in columns.items() if col_info.primary_key),
                getattr(cls, "__primary_key__", DEFAULT_PRIMARY_KEY),
            )
        if columns and primary_key not in columns:
            raise TypeError(f"{name}: primary key field {primary_key!r} is not a declared column")

        cls.__columns__ = columns  # type: ignore[attr-defined]
        cls.__relationships__ = relationships  # type: ignore[attr-defined]
        cls.__primary_key__ = primary_key  # type: ignore[attr-defined]

        register_model(cls)  # type: ignore[arg-type]

        return cls


class ActiveRecord(metaclass=ModelMeta):
    """Base class for entities bound to one table.

    Conditions are chained on an instance and executed by a terminal call
    (``fetch``, ``fetch_all``, ``insert``, ``update``, ``delete``). Fetching
    hydrates the instance itself; ``fetch_all`` returns new instances.

    Example:
        >>> class User(ActiveRecord):
        ...     __tablename__ = "user"
        ...     id: Mapped[int] = mapped_column(primary_key=True)
        ...     name: Mapped[str]
        ...     contacts = relationship(HAS_MANY, "Contact", "user_id", backref="user")
        ...
        >>> user = User(name="demo")
        >>> user.insert()
        1
        >>> User().eq("name", "demo").order_by("id desc").fetch().id
        1
    """

    __tablename__: ClassVar[str]
    __columns__: ClassVar[dict[str, ColumnInfo]] = {}
    __relationships__: ClassVar[dict[str, RelationDefinition]] = {}
    __primary_key__: ClassVar[str] = DEFAULT_PRIMARY_KEY
    __placeholder_counter__: ClassVar[PlaceholderCounter] = DEFAULT_COUNTER
    __placeholder_prefix__: ClassVar[str] = DEFAULT_PLACEHOLDER_PREFIX

    _resolver: ClassVar[RelationResolver] = RelationResolver()

    _data: dict[str, Any]
    _dirty: DirtyTracker
    _binder: ParameterBinder
    _assembler: StatementAssembler
    _conditions: ConditionBuilder
    _loaded_relationships: dict[str, Any]
    _db: Database | None
    _table: str
    _primary_key_field: str

    def __init__(self, **kwargs: Any) -> None:
        """Initialize an entity with the given column values."""
        self._init_state()

        cls = type(self)
        for key, value in kwargs.items():
            if not cls.__columns__ or key in cls.__columns__ or key in cls.__relationships__:
                setattr(self, key, value)
            else:
                raise TypeError(f"Unknown column or relationship: {key}")

        for col_name, col_info in cls.__columns__.items():
            if col_name not in kwargs and col_info.default is not None:
                setattr(self, col_name, col_info.default_value())

        self.init()

    def _init_state(self) -> None:
        cls = type(self)
        binder = ParameterBinder(cls.__placeholder_counter__, cls.__placeholder_prefix__)
        assembler = StatementAssembler()
        self.__dict__.update(
            _data={},
            _dirty=DirtyTracker(),
            _binder=binder,
            _assembler=assembler,
            _conditions=ConditionBuilder(binder, assembler),
            _loaded_relationships={},
            _db=None,
            _table=cls.__tablename__,
            _primary_key_field=cls.__primary_key__,
        )

    def init(self) -> None:
        """Hook called at the end of construction; override in subclasses."""

    @classmethod
    def fetch_empty(cls) -> Self:
        return cls()

    @classmethod
    def _from_row(cls, row: Mapping[str, Any]) -> Self:
        """Create an instance from a database row without marking anything dirty."""
        instance = cls.__new__(cls)
        instance._init_state()
        instance._hydrate(row)
        instance.init()
        return instance

    def _hydrate(self, row: Mapping[str, Any]) -> None:
        with self._dirty.clean():
            for key, value in row.items():
                self._assign(key, value)
                self._dirty.discard(key)

    def _assign(self, name: str, value: Any) -> None:
        self._data[name] = value
        self._dirty.mark(name, value)

    # ========== Attribute access ==========

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

        cls = type(self)
        if name in cls.__relationships__:
            return self._resolver.resolve(self, name)
        if name in self._loaded_relationships:
            return self._loaded_relationships[name]
        if name in self._dirty:
            return self._dirty[name]
        if name in self._data:
            return self._data[name]
        if name in cls.__columns__:
            return None

        raise AttributeError(f"'{cls.__name__}' object has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        cls = type(self)
        if name.startswith("_") or isinstance(getattr(cls, name, None), property):
            object.__setattr__(self, name, value)
            return

        if name in cls.__relationships__ or name in self._loaded_relationships:
            if value is None or isinstance(value, ActiveRecord) or (
                isinstance(value, list) and all(isinstance(item, ActiveRecord) for item in value)
            ):
                self._set_relationship(name, value)
                return
            raise TypeError(f"Relationship '{name}' expects an entity or a list of entities")

        if cls.__columns__ and name not in cls.__columns__ and name not in self._data:
            raise AttributeError(f"'{cls.__name__}' has no column '{name}'")

        self._assign(name, value)

    def __delattr__(self, name: str) -> None:
        if name.startswith("_"):
            object.__delattr__(self, name)
            return
        self._data.pop(name, None)
        self._dirty.discard(name)
        self._loaded_relationships.pop(name, None)

    def __repr__(self) -> str:
        pk = self._primary_key_field
        if pk in self._data:
            return f"<{self.__class__.__name__} {pk}={self._data[pk]!r}>"
        return f"<{self.__class__.__name__}>"

    def _set_relationship(self, name: str, value: Any) -> None:
        """Store a resolved relation or back-reference, replacing any cached one.

        Back-references may use a name that is not a declared relation; the
        value is then readable as a plain attribute.
        """
        self._loaded_relationships[name] = value

    def get(self, name: str, default: Any = None) -> Any:
        """Get a field value, falling back to ``default`` when it is unset."""
        if name in self._dirty:
            return self._dirty[name]
        return self._data.get(name, default)

    def to_dict(self, include_relationships: bool = False) -> dict[str, Any]:
        """Convert the entity to a dictionary."""
        result = {col_name: None for col_name in self.__columns__}
        result.update(self._data)
        result.update(self._dirty.as_dict())

        if include_relationships:
            for rel_name, rel_value in self._loaded_relationships.items():
                if isinstance(rel_value, list):
                    result[rel_name] = [item.to_dict() for item in rel_value]
                elif rel_value is not None:
                    result[rel_name] = rel_value.to_dict()
                else:
                    result[rel_name] = None

        return result

    # ========== State accessors ==========

    @property
    def new_data_are_dirty(self) -> bool:
        """Whether assignments are currently recorded as dirty."""
        return self._dirty.enabled

    @new_data_are_dirty.setter
    def new_data_are_dirty(self, value: bool) -> None:
        self._dirty.enabled = value

    def get_dirty(self) -> dict[str, Any]:
        return self._dirty.as_dict()

    def get_params(self) -> dict[str, Any]:
        return dict(self._binder.params)

    def get_table(self) -> str:
        return self._table

    def set_table(self, table: str) -> Self:
        self._table = table
        return self

    def get_primary_key_field(self) -> str:
        return self._primary_key_field

    def set_primary_key_field(self, name: str) -> Self:
        cls = type(self)
        if cls.__columns__ and name not in cls.__columns__ and name not in self._data:
            raise ActiveRecordError(f"{cls.__name__}: primary key field {name!r} is not a field")
        self._primary_key_field = name
        return self

    def get_primary_key(self) -> Any:
        """The primary key value, or None when it is unset or falsy."""
        return self.get(self._primary_key_field) or None

    def set_primary_key(self, value: Any, dirty: bool = True) -> Self:
        """Set the primary key; ``dirty=False`` stores it as loaded data."""
        self._data[self._primary_key_field] = value
        if dirty:
            self._dirty.mark(self._primary_key_field, value, force=True)
        else:
            self._dirty.discard(self._primary_key_field)
        return self

    def get_db(self) -> Database:
        if self._db is None:
            self._db = get_database()
        return self._db

    def set_db(self, db: Database | None) -> Self:
        self._db = db
        return self

    def reset(self) -> Self:
        """Drop pending clauses and parameters."""
        self._binder.clear()
        self._assembler.clear()
        self._conditions.reset()
        return self

    def reset_dirty(self) -> Self:
        self._dirty.clear()
        return self

    def reset_relations(self) -> Self:
        """Forget resolved relations so the next access fetches again."""
        self._loaded_relationships.clear()
        return self

    # ========== Clause setters ==========

    def select(self, *columns: str) -> Self:
        self._conditions.set_clause(ClauseKind.SELECT, *columns)
        return self

    def from_(self, *tables: str) -> Self:
        self._conditions.set_clause(ClauseKind.FROM, *tables)
        return self

    def where(self, condition: str) -> Self:
        """Set a raw WHERE fragment.

        The fragment is inserted verbatim; it must come from trusted code.
        Conditions added afterwards are joined onto it.
        """
        self._conditions.set_clause(ClauseKind.WHERE, condition)
        return self

    def having(self, condition: str) -> Self:
        """Set a raw HAVING fragment (inserted verbatim, trusted input only)."""
        self._conditions.set_clause(ClauseKind.HAVING, condition)
        return self

    def group_by(self, *columns: str) -> Self:
        self._conditions.set_clause(ClauseKind.GROUP, *columns)
        return self

    def order_by(self, *columns: str) -> Self:
        """Set ORDER BY, e.g. ``order_by("id DESC", "name ASC")``."""
        self._conditions.set_clause(ClauseKind.ORDER, *columns)
        return self

    def limit(self, start: int, end: int | None = None) -> Self:
        """Set LIMIT ``start`` or LIMIT ``start,end``."""
        self._conditions.set_clause(ClauseKind.LIMIT, int(start), None if end is None else int(end))
        return self

    def join(self, table: str, on: str, kind: str = "LEFT") -> Self:
        """Add ``<kind> JOIN table ON on``; ``on`` is inserted verbatim."""
        self._conditions.join(table, on, kind)
        return self

    # ========== Conditions ==========

    def _condition(self, field: str, operator: Operator, value: Any = None, concat: str = "AND") -> Self:
        self._conditions.add_condition(self._table, field, operator, value, concat_operator(concat))
        return self

    def eq(self, field: str, value: Any = None, *, concat: str = "AND") -> Self:
        return self._condition(field, Operator.EQ, value, concat)

    def ne(self, field: str, value: Any, *, concat: str = "AND") -> Self:
        return self._condition(field, Operator.NE, value, concat)

    def gt(self, field: str, value: Any, *, concat: str = "AND") -> Self:
        return self._condition(field, Operator.GT, value, concat)

    def lt(self, field: str, value: Any, *, concat: str = "AND") -> Self:
        return self._condition(field, Operator.LT, value, concat)

    def ge(self, field: str, value: Any, *, concat: str = "AND") -> Self:
        return self._condition(field, Operator.GE, value, concat)

    def le(self, field: str, value: Any, *, concat: str = "AND") -> Self:
        return self._condition(field, Operator.LE, value, concat)

    def between(self, field: str, values: Iterable[Any], *, concat: str = "AND") -> Self:
        """Add ``field BETWEEN low AND high``; exactly two values are required."""
        return self._condition(field, Operator.BETWEEN, list(values), concat)

    def like(self, field: str, pattern: str, *, concat: str = "AND") -> Self:
        return self._condition(field, Operator.LIKE, pattern, concat)

    def in_(self, field: str, values: Iterable[Any], *, concat: str = "AND") -> Self:
        return self._condition(field, Operator.IN, list(values), concat)

    def not_in(self, field: str, values: Iterable[Any], *, concat: str = "AND") -> Self:
        return self._condition(field, Operator.NOT_IN, list(values), concat)

    def is_null(self, field: str, *, concat: str = "AND") -> Self:
        return self._condition(field, Operator.IS_NULL, concat=concat)

    def is_not_null(self, field: str, *, concat: str = "AND") -> Self:
        return self._condition(field, Operator.IS_NOT_NULL, concat=concat)

    equal = eq
    not_equal = ne
    greater_than = gt
    less_than = lt
    greater_than_or_equal = gte = ge
    less_than_or_equal = lte = le
    not_null = is_not_null

    def wrap(self, concat: str | None = None) -> Self:
        """Group conditions in parentheses.

        ``wrap()`` opens a group; the conditions that follow are collected
        instead of going to WHERE. ``wrap("AND")`` or ``wrap("OR")`` closes
        it and joins the group onto WHERE with that operator.

        Example:
            >>> user.eq("active", 1).wrap().lt("age", 18).gt("age", 65, concat="OR").wrap("AND")
        """
        if concat is None:
            self._conditions.open_wrap()
        else:
            self._conditions.close_wrap(concat)
        return self

    def apply(self, name: str, *args: Any) -> Self:
        """Call a condition or clause method by name.

        Condition arguments are ``field[, value][, "OR"]``. Used for
        relation modifiers.

        Raises:
            UnsupportedOperationError: If ``name`` is not a known method.
        """
        method = resolve_method(name)
        if isinstance(method, Operator):
            field, *rest = args
            if method.takes_value:
                value = rest[0] if rest else None
                concat = rest[1] if len(rest) > 1 else "AND"
            else:
                value = None
                concat = rest[0] if rest else "AND"
            return self._condition(field, method, value, concat)

        if method is ClauseKind.JOIN:
            self._conditions.join(*args)
        else:
            self._conditions.set_clause(method, *args)
        return self

    def to_sql(self, *clauses: ClauseKind) -> tuple[str, dict[str, Any]]:
        """Render pending clauses without executing them.

        Defaults to the SELECT clause order.
        """
        sql = self._assembler.render(clauses or SELECT_ORDER, self._table)
        return sql, self.get_params()

    # ========== Execution ==========

    def execute(self, sql: str, params: Mapping[str, Any] | None = None) -> ResultSet | int | bool:
        """Run raw SQL on this entity's database."""
        return self.get_db().execute(sql, params or {})

    def _execute_pending(self, order: Iterable[ClauseKind]) -> ResultSet | int | bool:
        """Render, clear the statement state, then execute."""
        sql = self._assembler.render(order, self._table)
        params = self.get_params()
        self.reset()
        return self.execute(sql, params)

    def _materialize(self, result: ResultSet | int | bool, single: bool = False) -> Any:
        if not isinstance(result, ResultSet):
            return False

        if single:
            return result.materialize_one(self) or False

        records = result.materialize_all(type(self))
        for record in records:
            record.set_db(self._db)
        return records

    def fetch(self, id: Any = None) -> Self | bool:
        """Fetch one row into this instance.

        Returns:
            The instance itself, or False when no row matched or the query failed.
        """
        if id is not None:
            self.reset().eq(self._primary_key_field, id)

        self.limit(1)
        return self._materialize(self._execute_pending(SELECT_ORDER), single=True)

    def fetch_all(self, ids: Iterable[Any] | None = None) -> list[Self] | bool:
        """Fetch all matching rows as new instances (False when the query failed)."""
        ids = list(ids) if ids is not None else None
        if ids:
            self.reset().in_(self._primary_key_field, ids)

        return self._materialize(self._execute_pending(SELECT_ORDER))

    def fetch_by_id(self, id: Any) -> Self:
        """Fetch by primary key.

        Raises:
            RecordNotFoundError: If no row has that key.
        """
        record = self.fetch_by_id_if_exists(id)
        if record is None:
            raise RecordNotFoundError(f"No row with primary key '{id}' in table '{self._table}'.")
        return record

    def fetch_by_id_if_exists(self, id: Any) -> Self | None:
        if id is None:
            return None
        return self.fetch(id) or None

    def fetch_by_ids(self, ids: Iterable[Any]) -> list[Self] | bool:
        ids = list(ids)
        if not ids:
            return []
        return self.fetch_all(ids)

    def fetch_by_ids_keyed(self, ids: Iterable[Any]) -> dict[Any, Self]:
        """Fetch by primary keys, indexed by primary key."""
        return {record.get_primary_key(): record for record in self.fetch_by_ids(ids) or []}

    def fetch_by_query(self, sql: str) -> list[Self]:
        """Run a raw SELECT and return one instance per row.

        Pending parameters are passed along, so a query may reference
        placeholders bound by earlier condition calls.
        """
        return self._materialize(self._execute_raw(sql)) or []

    fetch_many_by_query = fetch_by_query

    def _execute_raw(self, sql: str) -> ResultSet | int | bool:
        params = self.get_params()
        self.reset()
        return self.execute(sql, params)

    def fetch_one_by_query(self, sql: str) -> Self | None:
        """Run a raw SELECT expected to match at most one row.

        Returns:
            This instance hydrated with the row, or None when nothing matched.

        Raises:
            MultipleRecordsFoundError: If more than one row matched.
        """
        records = self.fetch_by_query(sql)
        if not records:
            return None
        if len(records) > 1:
            raise MultipleRecordsFoundError(f"Found {len(records)} rows | Query: {sql}")

        self._hydrate(records[0]._data)
        return self

    def fetch_one_by_query_or_raise(self, sql: str) -> Self:
        """Like fetch_one_by_query, but a query matching nothing raises.

        Raises:
            NoRecordFoundError: If no row matched.
            MultipleRecordsFoundError: If more than one row matched.
        """
        record = self.fetch_one_by_query(sql)
        if record is None:
            raise NoRecordFoundError(f"Query: {sql}")
        return record

    # ========== Persistence ==========

    def insert(self) -> Any:
        """Insert the dirty fields as a new row.

        Returns:
            True when nothing is dirty, the new primary key on success,
            False when the statement failed.
        """
        if not self._dirty:
            return True

        dirty = self._dirty.as_dict()
        self._assembler.set(
            ClauseKind.INSERT,
            Expression(operator=f"INSERT INTO {self._table}", target=ExpressionGroup(list(dirty))),
        )
        self._assembler.set(
            ClauseKind.VALUES,
            Expression(operator="VALUES", target=ExpressionGroup(self._binder.bind(list(dirty.values())))),
        )

        result = self._execute_pending(INSERT_ORDER)
        if not _is_count(result):
            return False

        self.set_primary_key(result, dirty=False)
        self._dirty.clear()
        logger.debug("record_inserted", table=self._table, id=result)
        return result

    def update(self) -> Any:
        """Write the dirty fields to the row with this primary key.

        Returns:
            True when nothing is dirty, the affected row count on success,
            False when the statement failed.
        """
        if not self._dirty:
            return True

        conditions = self._conditions
        for field, value in self._dirty.as_dict().items():
            conditions.commit(
                conditions.build(self._table, field, Operator.EQ, value, ClauseKind.SET),
                ",",
                ClauseKind.SET,
            )
        conditions.commit(
            conditions.build(self._table, self._primary_key_field, Operator.EQ, self.get(self._primary_key_field)),
            "AND",
        )

        result = self._execute_pending(UPDATE_ORDER)
        if not _is_count(result):
            return False

        self._dirty.clear()
        logger.debug("record_updated", table=self._table, id=self.get_primary_key(), affected=result)
        return result

    def delete(self, key: Any = None) -> bool:
        """Delete the row with ``key`` (default: this entity's primary key)."""
        if key is None:
            key = self.get(self._primary_key_field)

        conditions = self._conditions
        conditions.commit(conditions.build(self._table, self._primary_key_field, Operator.EQ, key), "AND")

        result = self._execute_pending(DELETE_ORDER)
        if result is False:
            return False

        self._dirty.clear()
        logger.debug("record_deleted", table=self._table, id=key)
        return True

    def copy(self, insert: bool = True) -> Self:
        """Duplicate this entity's fields into a new instance without a key.

        With ``insert`` the copy is persisted and receives its new key.
        """
        new = type(self)()
        new.set_db(self._db)
        new.set_table(self._table)

        values = {**self._data, **self._dirty.as_dict()}
        for name, value in values.items():
            if name != self._primary_key_field:
                new._assign(name, value)

        if insert:
            new.insert()
        return new


def _is_count(result: Any) -> bool:
    return isinstance(result, int) and not isinstance(result, bool)
