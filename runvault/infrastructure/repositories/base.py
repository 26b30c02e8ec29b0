"""Shared plumbing for the sqlite repositories.

Repositories take a connection and return plain dicts; they never raise
vault errors themselves. sqlite3.IntegrityError is left to the services,
which decide whether a constraint hit means Conflict or a retry.
"""
from datetime import datetime, timezone
from typing import Protocol
import sqlite3


class ConnectionProtocol(Protocol):
    """The subset of sqlite3.Connection the repositories use."""

    def execute(self, sql: str, parameters: tuple = ...) -> sqlite3.Cursor: ...
    def executemany(self, sql: str, parameters: list = ...) -> sqlite3.Cursor: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...


def utc_now() -> str:
    """High-precision ISO timestamp; sorts lexicographically in creation order."""
    return datetime.now(timezone.utc).isoformat()


class Repository:
    """Base class for vault repositories.

    Example:
        class EventRepository(Repository):
            def get_by_id(self, event_id: str) -> dict | None:
                cursor = self._execute("SELECT * FROM events WHERE id = ?", (event_id,))
                return self._row_to_dict(cursor.fetchone())
    """

    def __init__(self, connection: ConnectionProtocol):
        self._conn = connection

    def _execute(self, sql: str, parameters: tuple = ()) -> sqlite3.Cursor:
        """Run one parameterized statement."""
        return self._conn.execute(sql, parameters)

    def _execute_many(self, sql: str, parameters_list: list[tuple]) -> sqlite3.Cursor:
        """Run one statement per parameter tuple (batched display-order updates)."""
        return self._conn.executemany(sql, parameters_list)

    def _commit(self) -> None:
        self._conn.commit()

    def _rollback(self) -> None:
        self._conn.rollback()

    def _row_to_dict(self, row: sqlite3.Row | None) -> dict | None:
        return dict(row) if row else None

    def _fetchall(self, sql: str, parameters: tuple = ()) -> list[dict]:
        """All rows of a query as dicts."""
        return [dict(row) for row in self._execute(sql, parameters).fetchall()]

    @staticmethod
    def _placeholders(values: list) -> str:
        """Comma separated ``?`` list for an IN clause."""
        return ",".join("?" * len(values))
