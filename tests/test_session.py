"""Tests for the engine factory, RecordSession and SessionExecutor."""

from __future__ import annotations

from sqlalchemy import func, select

from recordkit.dialect import MySQLDialect, SQLiteDialect
from recordkit.orm import RecordSession, SessionExecutor, create_engine, create_engine_from_settings
from recordkit.orm.session import record_session_factory
from recordkit.protocols import SqlExecutor
from recordkit.settings import RecordkitSettings
from tests._support.models import Owner


class TestCreateEngine:
    def test_sqlite_enforces_foreign_keys(self, engine) -> None:
        with engine.connect() as conn:
            assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1

    def test_from_settings(self) -> None:
        settings = RecordkitSettings(_env_file=None, database_url="sqlite:///:memory:", echo=True)
        eng = create_engine_from_settings(settings)
        try:
            assert eng.url.database == ":memory:"
            assert eng.echo is True
        finally:
            eng.dispose()


class TestRecordSession:
    def test_no_expire_on_commit(self, engine) -> None:
        with RecordSession(bind=engine) as session:
            owner = Owner(name="Ada")
            session.add(owner)
            session.commit()
            assert "name" in owner.__dict__

    def test_factory(self, engine) -> None:
        factory = record_session_factory(engine)
        with factory() as session:
            assert isinstance(session, RecordSession)


class TestSessionExecutor:
    def test_satisfies_protocol(self, session) -> None:
        assert isinstance(SessionExecutor(session), SqlExecutor)

    def test_detects_dialect(self, session) -> None:
        assert isinstance(SessionExecutor(session).dialect, SQLiteDialect)
        assert isinstance(SessionExecutor(session, MySQLDialect()).dialect, MySQLDialect)

    def test_insert_reports_primary_key(self, session) -> None:
        executor = SessionExecutor(session)
        executor.insert(Owner.__table__, ["name"], ["Ada"])
        first = executor.last_insert_id()
        executor.insert("owners", ["name"], ["Grace"])

        assert first == 1
        assert executor.last_insert_id() == 2

    def test_update_and_delete_with_condition(self, session) -> None:
        executor = SessionExecutor(session)
        executor.insert("owners", ["name"], ["Ada"])
        executor.insert("owners", ["name"], ["Grace"])

        executor.update("owners", ["email"], ["x@example.com"], "name = 'Ada'")
        executor.delete("owners", "name = 'Grace'")

        rows = executor.execute("SELECT name, email FROM owners").all()
        assert [tuple(row) for row in rows] == [("Ada", "x@example.com")]

    def test_text_with_params(self, session) -> None:
        executor = SessionExecutor(session)
        executor.insert("owners", ["name"], ["Ada"])
        result = executor.execute("SELECT name FROM owners WHERE id = :id", {"id": 1})
        assert result.scalar() == "Ada"

    def test_text_without_params_is_not_parsed_for_binds(self, session) -> None:
        executor = SessionExecutor(session)
        assert executor.execute("SELECT 'at 12:30'").scalar() == "at 12:30"

    def test_rollback(self, session) -> None:
        executor = SessionExecutor(session)
        executor.begin()
        executor.insert("owners", ["name"], ["Ada"])
        executor.rollback()

        assert session.scalar(select(func.count()).select_from(Owner)) == 0

    def test_nested_rollback_keeps_outer_work(self, session) -> None:
        executor = SessionExecutor(session)
        executor.begin()
        executor.insert("owners", ["name"], ["Ada"])
        executor.begin()
        executor.insert("owners", ["name"], ["Grace"])
        executor.rollback()
        executor.commit()

        assert not session.in_transaction()
        assert session.scalars(select(Owner.name)).all() == ["Ada"]

    def test_escape_string(self, session) -> None:
        assert SessionExecutor(session).escape_string("it's") == "'it''s'"
