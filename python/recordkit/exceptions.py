"""Exceptions raised by recordkit."""

from __future__ import annotations


class ActiveRecordError(Exception):
    """Base class for errors caused by a misconfigured entity or bad usage."""


class UnsupportedOperationError(ActiveRecordError, AttributeError):
    """Raised when a condition or clause method name is not known."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Method {name} not exist.")
        self.name = name


class RelationNotFoundError(ActiveRecordError, KeyError):
    """Raised when a relation cannot be resolved for its declared kind."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Relation {name} not found.")
        self.name = name

    def __str__(self) -> str:
        return str(self.args[0])


class RecordNotFoundError(ActiveRecordError, LookupError):
    """Raised when a lookup by primary key finds no row."""


class MultipleRecordsFoundError(RecordNotFoundError):
    """Raised when a single-row query matches more than one row."""


class NoRecordFoundError(RecordNotFoundError):
    """Raised when a single-row query matches no row."""
