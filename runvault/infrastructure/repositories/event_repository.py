"""Event repository - the dated occasions ("runs") event folders mirror.

Events are owned by the event flows; the vault reads them and reacts to
their creation and deletion.
"""
import uuid
from datetime import date

from .base import Repository


class EventRepository(Repository):
    """Repository for event entity operations."""

    def create(self, event_date: date, created_by: str, title: str = None) -> str:
        """Create an event and return its UUID."""
        event_id = str(uuid.uuid4())
        self._execute(
            "INSERT INTO events (id, event_date, title, created_by) VALUES (?, ?, ?, ?)",
            (event_id, event_date.isoformat(), title, created_by)
        )
        self._commit()
        return event_id

    def get_by_id(self, event_id: str) -> dict | None:
        cursor = self._execute(
            "SELECT * FROM events WHERE id = ?",
            (event_id,)
        )
        return self._row_to_dict(cursor.fetchone())

    def delete(self, event_id: str) -> bool:
        cursor = self._execute(
            "DELETE FROM events WHERE id = ?",
            (event_id,)
        )
        self._commit()
        return cursor.rowcount > 0

    def list_all(self) -> list[dict]:
        """All events, oldest date first."""
        return self._fetchall("SELECT * FROM events ORDER BY event_date, created_at, id")
