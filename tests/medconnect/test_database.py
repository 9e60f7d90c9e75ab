import pytest
from sqlalchemy import create_engine, inspect

from medconnect import database
from medconnect.database import Base, ensure_doctor_schema
from medconnect.models.doctor import Doctor
from medconnect.models.user import User


@pytest.fixture
def schema_engine(tmp_path, monkeypatch: pytest.MonkeyPatch):
    engine = create_engine(f'sqlite:///{tmp_path / "schema.db"}')
    monkeypatch.setattr(database, 'engine', engine)
    monkeypatch.setattr(database, '_doctor_schema_checked', False)
    try:
        yield engine
    finally:
        engine.dispose()


def _index_names(engine, table_name: str) -> set[str]:
    return {index['name'] for index in inspect(engine).get_indexes(table_name)}


def test_ensure_doctor_schema_creates_status_indexes(schema_engine) -> None:
    Base.metadata.create_all(bind=schema_engine, tables=[User.__table__, Doctor.__table__])

    ensure_doctor_schema()

    assert {'idx_doctors_status', 'idx_doctors_status_fee'} <= _index_names(schema_engine, 'doctors')
    assert database._doctor_schema_checked is True


def test_ensure_doctor_schema_skips_missing_doctors_table(schema_engine) -> None:
    ensure_doctor_schema()

    assert inspect(schema_engine).get_table_names() == []
    assert database._doctor_schema_checked is True


def test_ensure_doctor_schema_runs_once_per_process(schema_engine, monkeypatch: pytest.MonkeyPatch) -> None:
    Base.metadata.create_all(bind=schema_engine, tables=[User.__table__, Doctor.__table__])
    ensure_doctor_schema()

    def fail_inspect(_engine):
        raise AssertionError('schema was inspected twice')

    monkeypatch.setattr(database, 'inspect', fail_inspect)

    ensure_doctor_schema()
