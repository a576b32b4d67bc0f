"""recordkit - Active Record entities over SQLAlchemy."""

from __future__ import annotations

from recordkit.base import ActiveRecord
from recordkit.conditions import Operator
from recordkit.config import DatabaseConfig
from recordkit.engine import Database, ResultSet, get_database, init_database, reset_database
from recordkit.exceptions import (
    ActiveRecordError,
    MultipleRecordsFoundError,
    NoRecordFoundError,
    RecordNotFoundError,
    RelationNotFoundError,
    UnsupportedOperationError,
)
from recordkit.expressions import Expression, ExpressionGroup
from recordkit.fields import Mapped, mapped_column
from recordkit.log import configure_logging, configure_logging_from_config
from recordkit.params import DEFAULT_COUNTER, ParameterBinder, PlaceholderCounter
from recordkit.relationships import BELONGS_TO, HAS_MANY, HAS_ONE, RelationKind, relationship

__version__ = "0.1.0"

__all__ = [
    # Model definition
    "ActiveRecord",
    "Mapped",
    "mapped_column",
    "relationship",
    "RelationKind",
    "BELONGS_TO",
    "HAS_ONE",
    "HAS_MANY",
    # Execution
    "Database",
    "ResultSet",
    "init_database",
    "get_database",
    "reset_database",
    # Query building
    "Operator",
    "Expression",
    "ExpressionGroup",
    "ParameterBinder",
    "PlaceholderCounter",
    "DEFAULT_COUNTER",
    # Configuration and logging
    "DatabaseConfig",
    "configure_logging",
    "configure_logging_from_config",
    # Errors
    "ActiveRecordError",
    "UnsupportedOperationError",
    "RelationNotFoundError",
    "RecordNotFoundError",
    "MultipleRecordsFoundError",
    "NoRecordFoundError",
]
