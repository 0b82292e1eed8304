"""
Shared pytest fixtures for extupgrade tests.

Most tests work on in-memory snapshots: catalog records are decoded from
hand-made rows, exactly like rows coming from psycopg, and a FakeDatabase
answers the snapshot queries. Tests marked ``integration`` need a real
PostgreSQL server and are skipped when none is reachable.

Configuration via environment variables (integration tests only):
    PGHOST          PostgreSQL host     (default: libpq default)
    PGPORT          PostgreSQL port     (default: libpq default)
    PGUSER          PostgreSQL user     (default: libpq default)
    PGDATABASE      Database name       (default: postgres)
    PGPASSWORD      PostgreSQL password (default: None)

Run tests:
    pytest                          # all tests
    pytest -m "not integration"     # in-memory tests only
    pytest -k "render"              # filter by name
"""

from __future__ import annotations

import io
import os
from contextlib import contextmanager
from typing import Any, Generator, Iterable, Sequence

import pytest
from rich.console import Console

from extupgrade.compare import KeyedCollection, OrderedList
from extupgrade.database import DatabaseConnection
from extupgrade.errors import DatabaseError
from extupgrade.pgtypes import (
    ArrayOf, Bool, Char, ClassOptions, Integer, Real, Smallint,
)
from extupgrade.reporting import Reporter
from extupgrade.schema import PG_14, CatalogStruct, SnapshotContext
from extupgrade.catalog.relations import Attribute, PgClass, Relation


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------

def _default_value(kind: Any) -> Any:
    """A plausible non-NULL raw value for a column of *kind*."""
    if isinstance(kind, ArrayOf) or (isinstance(kind, type) and issubclass(kind, ClassOptions)):
        return []
    if kind is Char:
        return "a"
    if kind is Bool:
        return False
    if kind in (Smallint, Integer):
        return 0
    if kind is Real:
        return 0.0
    return ""


def make_row(cls: type[CatalogStruct], ident: str, **values: Any) -> dict[str, Any]:
    """
    Build a result row for *cls*, as psycopg would return it with dict_row.

    Nullable columns default to NULL, other columns to an empty value of
    their kind. *values* override any column.
    """
    row: dict[str, Any] = {}
    for field in cls.FIELDS:
        row[field.name] = None if field.nullable else _default_value(field.kind)
    row[cls.IDENT] = ident
    row.update(values)
    return row


def make_record(
    cls: type[CatalogStruct],
    ident: str,
    server_version_num: int = PG_14,
    **values: Any,
) -> CatalogStruct:
    """Decode a hand-made row into a catalog record."""
    return cls.from_row(make_row(cls, ident, **values), server_version_num)


def make_relation(
    name: str,
    columns: Sequence[str] = ("id",),
    server_version_num: int = PG_14,
    **values: Any,
) -> Relation:
    """A plain table with integer columns."""
    values.setdefault("relkind", "r")
    values.setdefault("relpersistence", "p")
    pgclass = make_record(PgClass, name, server_version_num, **values)
    attributes = OrderedList(
        make_record(Attribute, col, server_version_num, atttype="integer")
        for col in columns
    )
    return Relation(pgclass, attributes=attributes)


def relations_of(*relations: Relation) -> KeyedCollection:
    return KeyedCollection.of(Relation.TYPNAME, relations)


# ---------------------------------------------------------------------------
# Fake database
# ---------------------------------------------------------------------------

class FakeDatabase:
    """
    Stand-in for DatabaseConnection, answering queries from canned rows.

    Each response is a ``(fragment, rows)`` pair: a query gets the rows of
    the first response whose fragment it contains, or no row at all. Every
    statement is recorded in ``statements``.
    """

    def __init__(self, responses: Iterable[tuple[str, list[dict[str, Any]]]] = (),
                 server_version_num: int = PG_14):
        self.responses = list(responses)
        self.statements: list[tuple[str, Any]] = []
        self._server_version_num = server_version_num
        self.rolled_back = False
        self.closed = False

    def _rows(self, query: Any, params: Any) -> list[dict[str, Any]]:
        text = str(query)
        self.statements.append((text, params))
        for fragment, rows in self.responses:
            if fragment in text:
                return rows
        return []

    def execute(self, query: Any, params: Any = None) -> None:
        self._rows(query, params)

    def fetchall(self, query: Any, params: Any = None) -> list[dict[str, Any]]:
        return self._rows(query, params)

    def fetch_result(self, query: Any, params: Any = None):
        rows = self._rows(query, params)
        return (list(rows[0]) if rows else []), rows

    def fetchval(self, query: Any, params: Any = None) -> Any:
        rows = self._rows(query, params)
        return next(iter(rows[0].values())) if rows else None

    def server_version_num(self) -> int:
        return self._server_version_num

    def server_version(self) -> str:
        return f"{self._server_version_num // 10000}.0"

    def executed(self, fragment: str) -> list[str]:
        return [sql for sql, _ in self.statements if fragment in sql]

    @contextmanager
    def rollback_transaction(self) -> Generator[FakeDatabase, None, None]:
        try:
            yield self
        finally:
            self.rolled_back = True

    def __enter__(self) -> FakeDatabase:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def output() -> io.StringIO:
    """Captured console output (stdout and stderr consoles together)."""
    return io.StringIO()


@pytest.fixture()
def reporter(output: io.StringIO) -> Reporter:
    """Reporter writing plain text to ``output``."""
    console = Console(file=output, no_color=True, width=200, highlight=False)
    return Reporter(no_color=True, console=console, err_console=console)


@pytest.fixture()
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture()
def ctx(fake_db: FakeDatabase, reporter: Reporter) -> SnapshotContext:
    """Snapshot context over the fake database, for PostgreSQL 14."""
    return SnapshotContext(db=fake_db, server_version_num=PG_14, reporter=reporter)


@pytest.fixture()
def db() -> Generator[DatabaseConnection, None, None]:
    """
    Live connection, for tests marked ``integration``.

    Connection parameters come from the usual libpq environment variables.
    The test is skipped when the server is not reachable.
    """
    conn = DatabaseConnection(dbname=os.environ.get("PGDATABASE", "postgres"))
    try:
        conn.connect()
    except DatabaseError as exc:
        pytest.skip(f"PostgreSQL not reachable: {exc}")
    try:
        yield conn
    finally:
        conn.close()
