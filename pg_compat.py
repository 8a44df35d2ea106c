"""PostgreSQL compatibility layer — wraps psycopg2 to match the sqlite3 API.

When DATABASE_URL starts with postgresql://, get_db() returns a
PgConnectionWrapper, so the stores in db_stores.py run unchanged:
  - ? placeholders → %s
  - INSERT OR IGNORE → INSERT ... ON CONFLICT DO NOTHING
  - lastrowid → RETURNING id on tables with a serial key
  - executescript() → split and execute
  - rows → dict-like PgRow objects
"""

from __future__ import annotations

import logging
import re
from typing import Any

import psycopg2

logger = logging.getLogger(__name__)

# Tables whose primary key is a serial "id" column.
SERIAL_ID_TABLES = frozenset({"users", "profile_contributions", "assignments", "audit_log"})

_INSERT_TABLE_RE = re.compile(r"^\s*INSERT\s+(?:OR\s+IGNORE\s+)?INTO\s+(\w+)", re.IGNORECASE)


class PgRow:
    """Dict-like row that mimics sqlite3.Row."""

    def __init__(self, columns: list[str], values: tuple):
        self._data = dict(zip(columns, values))

    def __getitem__(self, key: str | int) -> Any:
        if isinstance(key, int):
            return list(self._data.values())[key]
        return self._data[key]

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> list[str]:
        return list(self._data.keys())

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def __repr__(self) -> str:
        return f"PgRow({self._data})"


def translate_sql(sql: str) -> str:
    """Translate one SQLite statement to PostgreSQL."""
    translated = sql.replace("?", "%s")
    if re.search(r"INSERT\s+OR\s+IGNORE\s+INTO", translated, flags=re.IGNORECASE):
        translated = re.sub(r"INSERT\s+OR\s+IGNORE\s+INTO", "INSERT INTO", translated, flags=re.IGNORECASE)
        translated = translated.rstrip().rstrip(";") + " ON CONFLICT DO NOTHING"
    return translated


def translate_schema(sql: str) -> str:
    """Translate SQLite DDL to PostgreSQL DDL."""
    translated = re.sub(
        r"(\w+)\s+INTEGER\s+PRIMARY\s+KEY\s+AUTOINCREMENT",
        r"\1 SERIAL PRIMARY KEY",
        sql,
        flags=re.IGNORECASE,
    )
    translated = re.sub(r"PRAGMA\s+\w+\s*=\s*\w+\s*;?", "", translated, flags=re.IGNORECASE)
    translated = re.sub(r"\bREAL\b", "DOUBLE PRECISION", translated)
    return translated


def insert_target(sql: str) -> str | None:
    match = _INSERT_TABLE_RE.match(sql)
    return match.group(1).lower() if match else None


class PgCursorWrapper:
    """Wraps a psycopg2 cursor to match the sqlite3.Cursor interface."""

    def __init__(self, cursor):
        self._cursor = cursor
        self._last_id: int | None = None

    @property
    def lastrowid(self) -> int | None:
        return self._last_id

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    def execute(self, sql: str, params: tuple = ()) -> "PgCursorWrapper":
        translated = translate_sql(sql)
        self._last_id = None
        if insert_target(sql) in SERIAL_ID_TABLES and "RETURNING" not in translated.upper():
            self._cursor.execute(translated + " RETURNING id", params)
            row = self._cursor.fetchone()
            self._last_id = row[0] if row else None
            return self
        self._cursor.execute(translated, params)
        return self

    def _columns(self) -> list[str]:
        return [desc[0] for desc in self._cursor.description or ()]

    def fetchone(self) -> PgRow | None:
        row = self._cursor.fetchone()
        if row is None:
            return None
        return PgRow(self._columns(), row)

    def fetchall(self) -> list[PgRow]:
        if not self._cursor.description:
            return []
        columns = self._columns()
        return [PgRow(columns, row) for row in self._cursor.fetchall()]

    def close(self) -> None:
        self._cursor.close()


class PgConnectionWrapper:
    """Wraps a psycopg2 connection to match the sqlite3.Connection interface."""

    def __init__(self, conn):
        self._conn = conn
        self._conn.autocommit = False

    def execute(self, sql: str, params: tuple = ()) -> PgCursorWrapper:
        cursor = PgCursorWrapper(self._conn.cursor())
        return cursor.execute(sql, params)

    def executescript(self, sql: str) -> None:
        """Execute a multi-statement script, skipping already-applied DDL."""
        statements = [s.strip() for s in translate_schema(sql).split(";") if s.strip()]
        cursor = self._conn.cursor()
        for stmt in statements:
            try:
                cursor.execute(stmt)
            except psycopg2.Error as e:
                err_msg = str(e).lower()
                if "already exists" in err_msg or "duplicate column" in err_msg:
                    self._conn.rollback()
                    logger.debug("Skipping applied statement: %s", e)
                else:
                    raise
        cursor.close()

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()


def connect_pg(database_url: str) -> PgConnectionWrapper:
    """Create a PostgreSQL connection with a sqlite3-compatible interface."""
    return PgConnectionWrapper(psycopg2.connect(database_url))


def is_postgres_url(url: str) -> bool:
    """Check if a database URL is a PostgreSQL URL."""
    return url.startswith("postgresql://") or url.startswith("postgres://")
