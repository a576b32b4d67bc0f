"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest
import sqlalchemy as sa

from recordkit import DEFAULT_COUNTER, Database, init_database, reset_database

SCHEMA = (
    "CREATE TABLE user (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, password TEXT)",
    "CREATE TABLE contact (id INTEGER PRIMARY KEY AUTOINCREMENT, user_id INTEGER, email TEXT, address TEXT)",
)


class CountingDatabase(Database):
    """Database that remembers every statement it was asked to run."""

    def __init__(self, engine: sa.Engine, logger: Any = None) -> None:
        super().__init__(engine, logger)
        self.statements: list[str] = []

    def execute(self, sql: str, params: Mapping[str, Any] | None = None):
        self.statements.append(sql)
        return super().execute(sql, params)

    @property
    def select_count(self) -> int:
        return sum(1 for sql in self.statements if sql.lstrip().upper().startswith("SELECT"))


@pytest.fixture(autouse=True)
def reset_placeholders():
    """Start every test with placeholder :ph1."""
    DEFAULT_COUNTER.reset()
    yield
    DEFAULT_COUNTER.reset()


@pytest.fixture
def db():
    """In-memory SQLite database with the user and contact tables, set as default."""
    database = CountingDatabase.from_url("sqlite://")
    for statement in SCHEMA:
        assert database.execute(statement) is True
    database.statements.clear()

    init_database(database)
    yield database
    reset_database()
    database.dispose()


def normalize(sql: str) -> str:
    """Collapse runs of whitespace so assertions don't depend on clause padding."""
    return " ".join(sql.split())
