"""Relation declarations and lazy resolution."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from recordkit.exceptions import ActiveRecordError, RelationNotFoundError

if TYPE_CHECKING:
    from recordkit.base import ActiveRecord

logger = structlog.get_logger(__name__)

# Global model registry - maps table names and class names to entity classes
_model_registry: dict[str, type[ActiveRecord]] = {}


def register_model(model_cls: type[ActiveRecord]) -> None:
    """Register an entity class for relation target lookup.

    Class names always map to the latest class. A table name keeps the first
    class registered for it, so other entities sharing the table (joins,
    column-less views) do not take over string targets.
    """
    _model_registry.setdefault(model_cls.__tablename__, model_cls)
    _model_registry[model_cls.__name__] = model_cls


def get_model(name: str) -> type[ActiveRecord] | None:
    """Get an entity class by table name or class name."""
    return _model_registry.get(name)


class RelationKind(StrEnum):
    BELONGS_TO = "belongs_to"
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"


BELONGS_TO = RelationKind.BELONGS_TO
HAS_ONE = RelationKind.HAS_ONE
HAS_MANY = RelationKind.HAS_MANY


@dataclass
class RelationDefinition:
    """Declares how an entity reaches a related entity type.

    ``foreign_key`` lives on the child for HAS_ONE/HAS_MANY and on the
    declaring entity for BELONGS_TO. ``modifiers`` maps condition or clause
    method names to their arguments and is applied to the related query
    before the key condition. ``backref`` names the field on the fetched
    record(s) that is pointed back at the declaring instance.
    """

    kind: RelationKind
    target: type[ActiveRecord] | str
    foreign_key: str
    modifiers: Mapping[str, Any] | None = None
    backref: str | None = None
    name: str | None = None

    @property
    def is_collection(self) -> bool:
        return self.kind is RelationKind.HAS_MANY

    def target_model(self) -> type[ActiveRecord]:
        """Resolve the target entity class.

        Raises:
            ActiveRecordError: If a target given by name is not registered.
        """
        if isinstance(self.target, str):
            model = get_model(self.target)
            if model is None:
                raise ActiveRecordError(
                    f"Relation {self.name!r}: target class {self.target!r} does not exist"
                )
            return model
        return self.target


def relationship(
    kind: RelationKind | str,
    target: type[ActiveRecord] | str,
    foreign_key: str,
    *,
    modifiers: Mapping[str, Any] | None = None,
    backref: str | None = None,
) -> Any:
    """Declare a relation between entities.

    Args:
        kind: BELONGS_TO, HAS_ONE or HAS_MANY
        target: Related entity class, or its class/table name
        foreign_key: Column linking the two tables
        modifiers: Extra query methods applied to the related fetch,
            e.g. ``{"where": "active = 1", "order_by": "id desc"}``
        backref: Field on the related record(s) set to the declaring instance

    Returns:
        A RelationDefinition descriptor

    Raises:
        ValueError: If ``kind`` is not a relation kind

    Example:
        >>> class User(ActiveRecord):
        ...     contacts = relationship(HAS_MANY, "Contact", "user_id", backref="user")
        ...
        >>> class Contact(ActiveRecord):
        ...     user = relationship(BELONGS_TO, User, "user_id")
    """
    try:
        kind = RelationKind(kind)
    except ValueError:
        raise ValueError(f"kind: must be one of {', '.join(k.value for k in RelationKind)}, got {kind!r}") from None

    return RelationDefinition(
        kind=kind,
        target=target,
        foreign_key=foreign_key,
        modifiers=modifiers,
        backref=backref,
    )


class RelationResolver:
    """Fetches declared relations on first access and caches the result.

    Cached values are returned as they are, so a back-reference that points
    at an already materialized parent never triggers another query. Back
    references themselves are written straight into the fetched records'
    caches rather than resolved.
    """

    def resolve(self, owner: ActiveRecord, name: str) -> Any:
        loaded = owner._loaded_relationships
        if name in loaded:
            return loaded[name]

        definition = type(owner).__relationships__[name]
        related = definition.target_model()()
        related.set_db(owner.get_db())

        for method, args in (definition.modifiers or {}).items():
            related.apply(method, *(args if isinstance(args, (list, tuple)) else [args]))

        if definition.kind is RelationKind.HAS_ONE:
            value = related.eq(definition.foreign_key, owner.get_primary_key()).fetch() or None
            if value is not None and definition.backref:
                value._set_relationship(definition.backref, owner)
        elif definition.kind is RelationKind.HAS_MANY:
            value = related.eq(definition.foreign_key, owner.get_primary_key()).fetch_all() or []
            if definition.backref:
                for item in value:
                    item._set_relationship(definition.backref, owner)
        elif definition.kind is RelationKind.BELONGS_TO:
            value = related.eq(
                related.get_primary_key_field(), owner.get(definition.foreign_key)
            ).fetch() or None
            if value is not None and definition.backref:
                value._set_relationship(definition.backref, owner)
        else:
            raise RelationNotFoundError(name)

        logger.debug(
            "relation_resolved",
            relation=name,
            kind=definition.kind.value,
            owner=type(owner).__name__,
            found=len(value) if isinstance(value, list) else value is not None,
        )
        loaded[name] = value
        return value
