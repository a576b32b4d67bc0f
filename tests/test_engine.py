"""Tests for the SQLAlchemy execution backend."""

import pytest
import sqlalchemy as sa

from recordkit import Database, DatabaseConfig, ResultSet, get_database, init_database, reset_database

from tests.models import User


@pytest.fixture
def database():
    database = Database.from_url("sqlite://")
    database.execute("CREATE TABLE item (id INTEGER PRIMARY KEY, name TEXT)")
    yield database
    database.dispose()


class TestExecute:
    """Tests for Database.execute return values."""

    def test_ddl_returns_true(self):
        """Statements without rows or counts give True."""
        database = Database.from_url("sqlite://")
        assert database.execute("CREATE TABLE t (id INTEGER PRIMARY KEY)") is True
        database.dispose()

    def test_insert_returns_last_id(self, database):
        """INSERT gives the new row id."""
        assert database.execute("INSERT INTO item (name) VALUES (:ph1)", {":ph1": "a"}) == 1
        assert database.execute("INSERT INTO item (name) VALUES (:ph2)", {":ph2": "b"}) == 2

    def test_select_returns_result_set(self, database):
        """Row-returning statements give a ResultSet of dicts."""
        database.execute("INSERT INTO item (name) VALUES ('a')")
        result = database.execute("SELECT id, name FROM item")
        assert isinstance(result, ResultSet)
        assert len(result) == 1
        assert list(result) == [{"id": 1, "name": "a"}]

    def test_update_and_delete_return_counts(self, database):
        """UPDATE/DELETE give the affected row count."""
        database.execute("INSERT INTO item (name) VALUES ('a')")
        database.execute("INSERT INTO item (name) VALUES ('b')")
        assert database.execute("UPDATE item SET name = :ph1", {":ph1": "c"}) == 2
        assert database.execute("DELETE FROM item WHERE id = 1") == 1
        assert database.execute("DELETE FROM item WHERE id = 1") == 0

    def test_placeholder_keys_without_colon(self, database):
        """Parameter keys may be given with or without the leading colon."""
        assert database.execute("INSERT INTO item (name) VALUES (:name)", {"name": "x"}) == 1

    def test_error_returns_false(self, database):
        """Driver errors are reported as False."""
        assert database.execute("SELECT * FROM nowhere") is False

    def test_injected_logger(self, database):
        """A logger passed to the constructor receives the events."""

        class Recorder:
            def __init__(self):
                self.calls = []

            def debug(self, event, **kw):
                self.calls.append(("debug", event, kw))

            def warning(self, event, **kw):
                self.calls.append(("warning", event, kw))

        recorder = Recorder()
        logged = Database(database.engine, logger=recorder)
        logged.execute("SELECT 1")
        logged.execute("SELECT * FROM nowhere")
        assert [(level, event) for level, event, _ in recorder.calls] == [
            ("debug", "query_executed"),
            ("warning", "query_failed"),
        ]
        assert recorder.calls[1][2]["sql"] == "SELECT * FROM nowhere"

    def test_repr(self, database):
        """repr names the engine URL."""
        assert "sqlite://" in repr(database)


class TestResultSet:
    """Tests for ResultSet materialization."""

    def test_first(self):
        """first() is the first row or None."""
        assert ResultSet([{"a": 1}, {"a": 2}]).first() == {"a": 1}
        assert ResultSet([]).first() is None

    def test_materialize_one_into_instance(self):
        """An instance is hydrated in place."""
        user = User()
        assert ResultSet([{"id": 1, "name": "x"}]).materialize_one(user) is user
        assert user.name == "x"
        assert user.get_dirty() == {}

    def test_materialize_one_from_class(self):
        """A class produces a new instance."""
        user = ResultSet([{"id": 2, "name": "y"}]).materialize_one(User)
        assert isinstance(user, User)
        assert user.id == 2

    def test_materialize_one_empty(self):
        """No rows gives None."""
        assert ResultSet([]).materialize_one(User) is None

    def test_materialize_all(self):
        """Every row becomes an instance."""
        users = ResultSet([{"id": 1}, {"id": 2}]).materialize_all(User)
        assert [u.id for u in users] == [1, 2]


class TestDefaultDatabase:
    """Tests for the module-level default database."""

    def test_not_initialized(self):
        """Using the default before init raises."""
        reset_database()
        with pytest.raises(RuntimeError, match="init_database"):
            get_database()

    def test_entities_fall_back_to_default(self, database):
        """Entities without their own database use the default."""
        init_database(database)
        try:
            assert User().get_db() is database
            assert User().set_db(None).get_db() is database
        finally:
            reset_database()

    def test_from_config(self):
        """A config URL creates the engine."""
        database = Database.from_config(DatabaseConfig(url="sqlite://", echo=True))
        assert isinstance(database.engine, sa.Engine)
        assert database.engine.echo is True
        database.dispose()

    def test_from_config_override(self):
        """An explicit URL wins over the config."""
        database = Database.from_config(DatabaseConfig(url="sqlite:///ignored.db"), url="sqlite://")
        assert database.engine.url.database is None
        database.dispose()

    def test_from_config_without_url(self):
        """A missing URL is a configuration error."""
        with pytest.raises(ValueError, match="No database URL"):
            Database.from_config(DatabaseConfig())
