"""
Database connection management for extupgrade.

Provides the DatabaseConnection class used to run the extension scripts and
the catalog lookup queries. A validation run happens in a single
transaction that is always rolled back.
"""

from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional, Tuple

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from .errors import DatabaseError


class DatabaseConnection:
    """
    Wrapper around psycopg connection with helper methods.

    Unset connection parameters are left to libpq, which reads PGHOST,
    PGPORT, PGUSER, PGDATABASE and PGPASSWORD.
    """

    def __init__(
        self,
        dbname: Optional[str] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
    ):
        self.dbname = dbname
        self.host = host
        self.port = port
        self.user = user
        self._conn: Optional[psycopg.Connection] = None

    def connect(self) -> None:
        """Establish connection to the database."""
        connect_kwargs: Dict[str, Any] = {
            "row_factory": dict_row,
            "autocommit": False,
        }
        for key in ("host", "port", "user", "dbname"):
            value = getattr(self, key)
            if value is not None:
                connect_kwargs[key] = value

        try:
            self._conn = psycopg.connect(**connect_kwargs)
        except psycopg.Error as e:
            raise DatabaseError(f"Could not connect to the database: {e}") from e

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def _cursor(self) -> psycopg.Cursor:
        if not self._conn:
            raise DatabaseError("Not connected to database")
        return self._conn.cursor()

    def execute(self, query: Any, params: Optional[tuple] = None) -> None:
        """Execute a statement without returning results."""
        with self._cursor() as cur:
            try:
                cur.execute(query, params)
            except psycopg.Error as e:
                raise DatabaseError(self._describe(query, e)) from e

    def fetchall(self, query: Any, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """
        Execute query and return all rows as list of dicts.

        Returns empty list if no rows found.
        """
        with self._cursor() as cur:
            try:
                cur.execute(query, params)
                return cur.fetchall()
            except psycopg.Error as e:
                raise DatabaseError(self._describe(query, e)) from e

    def fetch_result(
        self, query: Any, params: Optional[tuple] = None
    ) -> Tuple[List[str], List[Dict[str, Any]]]:
        """Execute query and return the column names and all rows."""
        with self._cursor() as cur:
            try:
                cur.execute(query, params)
                columns = [col.name for col in cur.description or []]
                return columns, cur.fetchall() if cur.description else []
            except psycopg.Error as e:
                raise DatabaseError(self._describe(query, e)) from e

    def fetchone(self, query: Any, params: Optional[tuple] = None) -> Optional[Dict[str, Any]]:
        """
        Execute query and return single row as dict.

        Returns None if no rows found.
        """
        rows = self.fetchall(query, params)
        return rows[0] if rows else None

    def fetchval(self, query: Any, params: Optional[tuple] = None) -> Any:
        """
        Execute query and return single value from first column of first row.

        Returns None if no rows found.
        """
        row = self.fetchone(query, params)
        if row:
            return next(iter(row.values()))
        return None

    def server_version_num(self) -> int:
        return int(self.fetchval("SHOW server_version_num"))

    def server_version(self) -> str:
        return str(self.fetchval("SHOW server_version"))

    @contextmanager
    def rollback_transaction(self) -> Generator["DatabaseConnection", None, None]:
        """
        Run the block in a transaction that is always rolled back.

        The connection is not in autocommit mode, so the first statement
        opens the transaction.

        Example:
            with db.rollback_transaction():
                db.execute("CREATE EXTENSION ...")
                # Nothing survives the block
        """
        try:
            yield self
        finally:
            if self._conn and not self._conn.closed:
                self._conn.rollback()

    @staticmethod
    def _describe(query: Any, error: Exception) -> str:
        if isinstance(query, sql.Composable):
            return f"{error}"
        return f"{error}\nQuery: {query}"

    def __enter__(self) -> "DatabaseConnection":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def create_extension(db: DatabaseConnection, extname: str, version: str) -> None:
    """Install *extname* at *version*, with the extensions it requires."""
    db.execute(
        sql.SQL("CREATE EXTENSION {} VERSION {} CASCADE").format(
            sql.Identifier(extname), sql.Literal(version)
        )
    )


def update_extension(db: DatabaseConnection, extname: str, version: str) -> None:
    """Run the upgrade scripts of *extname* up to *version*."""
    db.execute(
        sql.SQL("ALTER EXTENSION {} UPDATE TO {}").format(
            sql.Identifier(extname), sql.Literal(version)
        )
    )


def drop_extension(db: DatabaseConnection, extname: str) -> None:
    db.execute(sql.SQL("DROP EXTENSION {}").format(sql.Identifier(extname)))


def extension_installed(db: DatabaseConnection, extname: str) -> bool:
    return db.fetchval(
        "SELECT count(*) FROM pg_extension WHERE extname = %s", (extname,)
    ) > 0
