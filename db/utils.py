"""Shared helpers for working with the catalog database."""

from __future__ import annotations

import logging
import os
import sqlite3
from collections.abc import Mapping
from contextlib import contextmanager
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Iterator, Sequence
from urllib.parse import unquote, urlparse

from flask import g, has_app_context
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

db_lock = Lock()
"""Module-level lock to guard write access to the catalog database."""

SQLITE = "sqlite"
MYSQL = "mysql"


class _DBRow(Mapping[str, Any]):
    """Lightweight row wrapper supporting mapping-style access."""

    __slots__ = ("_columns", "_values", "_mapping")

    def __init__(self, columns: Sequence[str], values: Sequence[Any]):
        self._columns = list(columns)
        self._values = list(values)
        self._mapping = dict(zip(self._columns, self._values))

    def __getitem__(self, key: int | str) -> Any:
        if isinstance(key, int):
            return self._values[key]
        return self._mapping[key]

    def get(self, key: str, default: Any | None = None) -> Any | None:
        return self._mapping.get(key, default)

    def __iter__(self):
        return iter(self._columns)

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._columns)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"_DBRow({self._mapping!r})"


class _CursorWrapper:
    """Thin wrapper normalizing DB-API cursor behaviour."""

    def __init__(self, cursor: Any):
        self._cursor = cursor
        description = cursor.description or []
        self._columns = [col[0] for col in description]

    def _wrap_row(self, values: Sequence[Any]) -> _DBRow:
        return _DBRow(self._columns, values)

    def fetchone(self) -> _DBRow | None:
        row = self._cursor.fetchone()
        if row is None:
            return None
        return self._wrap_row(row)

    def fetchall(self) -> list[_DBRow]:
        rows = self._cursor.fetchall()
        return [self._wrap_row(row) for row in rows]

    def close(self) -> None:
        try:
            self._cursor.close()
        except Exception:  # pragma: no cover - DBAPI edge cases
            pass

    @property
    def rowcount(self) -> int:
        return getattr(self._cursor, "rowcount", -1)

    @property
    def lastrowid(self) -> Any:
        return getattr(self._cursor, "lastrowid", None)


def _backend_for(engine: Engine) -> str:
    name = engine.dialect.name
    if name in {"mysql", "mariadb"}:
        return MYSQL
    return SQLITE


class DatabaseEngine:
    """Wrapper exposing context-managed SQLAlchemy connections."""

    def __init__(self, engine: Engine):
        self._engine = engine

    @property
    def engine(self) -> Engine:
        """Return the underlying SQLAlchemy :class:`~sqlalchemy.engine.Engine`."""

        return self._engine

    @property
    def backend(self) -> str:
        """Return ``"sqlite"`` or ``"mysql"`` for the active driver."""

        return _backend_for(self._engine)

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """Yield a DBAPI connection configured by the engine's pool."""

        raw = self._engine.raw_connection()
        try:
            yield raw
        finally:
            raw.close()

    def dispose(self) -> None:
        """Dispose the underlying engine's connection pool."""

        self._engine.dispose()


class DatabaseHandle:
    """Request-scoped DB-API connection with placeholder normalization.

    SQL is written with ``?`` placeholders and rewritten for drivers using the
    ``format`` paramstyle. Writes are grouped with :meth:`transaction`; a
    connection returned to the pool is rolled back, so uncommitted work is
    discarded at the end of a request.
    """

    def __init__(self, engine: DatabaseEngine):
        self._engine_wrapper = engine
        self._connection: Any | None = None

    @property
    def engine(self) -> Engine:
        return self._engine_wrapper.engine

    @property
    def backend(self) -> str:
        return self._engine_wrapper.backend

    @property
    def is_sqlite(self) -> bool:
        return self.backend == SQLITE

    def _get_connection(self) -> Any:
        if self._connection is None:
            self._connection = self._engine_wrapper.engine.raw_connection()
        return self._connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def _normalize_sql(self, sql: str) -> str:
        paramstyle = getattr(self.engine.dialect, "paramstyle", "qmark")
        if paramstyle in {"format", "pyformat"} and "?" in sql:
            return sql.replace("%", "%%").replace("?", "%s")
        return sql

    def execute(
        self,
        sql: str,
        parameters: Sequence[Any] | None = None,
    ) -> _CursorWrapper:
        cursor = self._get_connection().cursor()
        try:
            cursor.execute(self._normalize_sql(sql), tuple(parameters or ()))
        except Exception:
            cursor.close()
            raise
        return _CursorWrapper(cursor)

    def executemany(
        self,
        sql: str,
        seq_of_parameters: Sequence[Sequence[Any]],
    ) -> _CursorWrapper:
        cursor = self._get_connection().cursor()
        try:
            cursor.executemany(self._normalize_sql(sql), [tuple(p) for p in seq_of_parameters])
        except Exception:
            cursor.close()
            raise
        return _CursorWrapper(cursor)

    def insert_rows(
        self,
        table: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
    ) -> None:
        """Insert ``rows`` into ``table``.

        SQLite receives one statement per row; MySQL gets a single multi-row
        ``VALUES`` list.
        """

        if not rows:
            return
        column_sql = ", ".join(columns)
        row_placeholders = "(" + ", ".join("?" for _ in columns) + ")"
        if self.is_sqlite:
            self.executemany(
                f"INSERT INTO {table} ({column_sql}) VALUES {row_placeholders}",
                rows,
            )
            return
        values_sql = ", ".join(row_placeholders for _ in rows)
        flattened = [value for row in rows for value in row]
        self.execute(f"INSERT INTO {table} ({column_sql}) VALUES {values_sql}", flattened)

    def commit(self) -> None:
        self._get_connection().commit()

    def rollback(self) -> None:
        self._get_connection().rollback()

    @contextmanager
    def transaction(self) -> Iterator["DatabaseHandle"]:
        """Commit the statements issued in the block, or roll them back."""

        try:
            yield self
        except BaseException:
            try:
                self.rollback()
            except Exception:  # pragma: no cover - connection already broken
                logger.exception("Rollback failed")
            raise
        else:
            self.commit()

    def run_script(self, script: str) -> None:
        """Execute each ``;``-terminated statement of ``script`` and commit."""

        with self.transaction():
            cursor = self._get_connection().cursor()
            try:
                for statement in _split_sql_script(script):
                    cursor.execute(statement)
            finally:
                cursor.close()


def _split_sql_script(script: str) -> list[str]:
    statements: list[str] = []
    lines = [
        line for line in script.splitlines() if not line.strip().startswith("--")
    ]
    for chunk in "\n".join(lines).split(";"):
        if chunk.strip():
            statements.append(chunk.strip())
    return statements


_fallback_connection: DatabaseHandle | DatabaseEngine | None = None
_fallback_handle_cache: DatabaseHandle | None = None


def set_fallback_connection(conn: DatabaseHandle | DatabaseEngine | None) -> None:
    """Configure the engine returned when no Flask app context is active."""

    global _fallback_connection
    global _fallback_handle_cache

    _fallback_connection = conn
    if isinstance(conn, DatabaseHandle):
        _fallback_handle_cache = conn
    else:
        _fallback_handle_cache = None


def get_fallback_engine() -> DatabaseEngine | None:
    """Return the engine wrapper backing the fallback connection, if any."""

    if isinstance(_fallback_connection, DatabaseEngine):
        return _fallback_connection
    if isinstance(_fallback_connection, DatabaseHandle):
        return _fallback_connection._engine_wrapper
    return None


def _configure_sqlite_connection(conn: Any, *, busy_timeout: float | None = None) -> Any:
    """Apply timeout tuning to SQLite connections when available."""

    if not isinstance(conn, sqlite3.Connection):
        return conn

    busy_timeout_ms = None
    if busy_timeout is not None:
        busy_timeout_ms = int(max(busy_timeout, 0) * 1000) or None

    pragmas: tuple[tuple[str, str | int | None, bool], ...] = (
        ("busy_timeout", busy_timeout_ms, False),
        ("journal_mode", "WAL", True),
        ("foreign_keys", "ON", False),
    )

    for name, value, fetch_result in pragmas:
        if value is None:
            continue
        try:
            cursor = conn.execute(f"PRAGMA {name}={value}")
            if fetch_result:
                cursor.fetchone()
        except sqlite3.OperationalError:  # pragma: no cover - best effort only
            continue

    return conn


def _configure_mysql_connection(conn: Any, *, lock_timeout: float | None = None) -> Any:
    """Apply session-level settings for MySQL/MariaDB connections."""

    if lock_timeout is None:
        return conn

    timeout_value = max(int(lock_timeout), 1)
    cursor = conn.cursor()
    try:
        for variable in ("innodb_lock_wait_timeout", "lock_wait_timeout"):
            try:
                cursor.execute(f"SET SESSION {variable} = %s", (timeout_value,))
            except Exception:  # pragma: no cover - unavailable variable
                logger.debug("Unable to set %s on MySQL session", variable)
    finally:
        cursor.close()

    return conn


def _resolve_sqlite_path_from_dsn(dsn: str) -> str:
    """Extract a filesystem path from a ``sqlite:///`` DSN string."""

    prefix = "sqlite:///"
    if not dsn.startswith(prefix):
        raise ValueError(f"Unsupported DSN for SQLite resolver: {dsn}")

    # sqlite:///relative.db and sqlite:////abs/path.db
    path = unquote(dsn[len(prefix):].split("?", 1)[0])

    if not path:
        raise ValueError("SQLite DSN must include a filesystem path")

    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = candidate.resolve()
    return os.fspath(candidate)


def build_engine_from_dsn(
    dsn: str,
    *,
    timeout: float | None = None,
    pool_size: int = 5,
    pool_recycle: int = 1_800,
    pool_pre_ping: bool = True,
    ssl: bool = False,
) -> DatabaseEngine:
    """Return a :class:`DatabaseEngine` configured from ``dsn``."""

    parsed = urlparse(dsn)
    connect_args: dict[str, object] = {}
    effective_timeout = timeout if timeout is not None else 5.0
    dialect_name = parsed.scheme.split("+", 1)[0]

    if dialect_name == "sqlite":
        sqlite_path = _resolve_sqlite_path_from_dsn(dsn)
        Path(sqlite_path).parent.mkdir(parents=True, exist_ok=True)
        normalized_dsn = f"sqlite:///{sqlite_path}"
        connect_args["check_same_thread"] = False
    else:
        normalized_dsn = dsn
        connect_args["connect_timeout"] = max(int(effective_timeout), 1)
        if ssl:
            connect_args["ssl"] = {"check_hostname": False}

    engine = create_engine(
        normalized_dsn,
        future=True,
        pool_size=pool_size,
        pool_recycle=pool_recycle,
        pool_pre_ping=pool_pre_ping,
        connect_args=connect_args,
    )

    if dialect_name == "sqlite":

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_conn, connection_record):  # type: ignore[override]
            _configure_sqlite_connection(dbapi_conn, busy_timeout=effective_timeout)

    elif dialect_name in {"mysql", "mariadb"}:

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_conn, connection_record):  # type: ignore[override]
            _configure_mysql_connection(dbapi_conn, lock_timeout=effective_timeout)

    logger.info("Configured %s database engine", _backend_for(engine))
    return DatabaseEngine(engine)


def get_db(
    connection_factory: Callable[[], DatabaseHandle | DatabaseEngine] | None = None,
    *,
    context_key: str = 'db',
) -> DatabaseHandle:
    """Return the active :class:`DatabaseHandle`, creating one if necessary.

    Inside a Flask application context the handle is stored on ``g`` and
    closed on teardown; otherwise the process-wide fallback handle is used.
    """

    global _fallback_connection
    global _fallback_handle_cache

    def _coerce_handle(value: DatabaseHandle | DatabaseEngine) -> DatabaseHandle:
        if isinstance(value, DatabaseHandle):
            return value
        if isinstance(value, DatabaseEngine):
            return DatabaseHandle(value)
        raise TypeError('connection_factory must return DatabaseHandle or DatabaseEngine')

    if has_app_context():
        if not hasattr(g, context_key):
            if connection_factory is not None:
                setattr(g, context_key, _coerce_handle(connection_factory()))
            else:
                engine = get_fallback_engine()
                if engine is None:
                    raise RuntimeError('Database connection is not configured')
                setattr(g, context_key, DatabaseHandle(engine))
        value = getattr(g, context_key)
        if isinstance(value, DatabaseHandle):
            return value
        raise RuntimeError('Database connection is not configured correctly')

    if _fallback_connection is None:
        if connection_factory is None:
            raise RuntimeError('Database connection is not configured')
        set_fallback_connection(connection_factory())
    if _fallback_handle_cache is None:
        _fallback_handle_cache = _coerce_handle(_fallback_connection)  # type: ignore[arg-type]
    return _fallback_handle_cache


def close_db(context_key: str = 'db') -> None:
    """Return the request-scoped connection to the pool."""

    handle = g.pop(context_key, None)
    if handle is not None:
        handle.close()


__all__ = [
    "DatabaseEngine",
    "DatabaseHandle",
    "MYSQL",
    "SQLITE",
    "build_engine_from_dsn",
    "close_db",
    "db_lock",
    "get_db",
    "get_fallback_engine",
    "set_fallback_connection",
]
