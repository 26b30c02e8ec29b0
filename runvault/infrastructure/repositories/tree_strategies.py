"""Ancestor and descendant queries over the folder tree.

Two interchangeable strategies produce identical results:

- RecursiveQueryStrategy: one ``WITH RECURSIVE`` statement per call.
- IterativeWalkStrategy: one query per level, for stores without recursive CTEs.

FallbackTreeStrategy runs the recursive strategy and drops to the iterative
one whenever the recursive statement errors. ``select_tree_strategy`` probes
the connection once to decide which to use.

Both strategies stop at ``max_depth`` levels and raise CorruptTree instead of
looping forever on corrupted parent links.
"""
import logging
import sqlite3
from collections import deque
from typing import Protocol

from ...config import TREE_MAX_DEPTH
from ...errors import CorruptTree
from .base import Repository, ConnectionProtocol

logger = logging.getLogger(__name__)

BREADCRUMB_FIELDS = ("id", "name", "slug", "kind")


class TreeStrategy(Protocol):
    """Protocol for tree queries."""

    def ancestors(self, folder_id: str) -> list[dict]: ...
    def descendant_ids(self, folder_id: str) -> list[str]: ...


class RecursiveQueryStrategy(Repository):
    """Tree queries as single recursive CTE statements."""

    def __init__(self, connection: ConnectionProtocol, max_depth: int = TREE_MAX_DEPTH):
        super().__init__(connection)
        self.max_depth = max_depth

    def ancestors(self, folder_id: str) -> list[dict]:
        """Chain from the root down to folder_id (inclusive).

        Returns:
            List of {id, name, slug, kind} dicts, root first; empty if folder_id is unknown
        """
        cursor = self._execute(
            """WITH RECURSIVE chain(id, parent_id, name, slug, kind, depth) AS (
                SELECT id, parent_id, name, slug, kind, 0
                FROM folders WHERE id = ?
                UNION ALL
                SELECT f.id, f.parent_id, f.name, f.slug, f.kind, c.depth + 1
                FROM folders f
                JOIN chain c ON f.id = c.parent_id
                WHERE c.depth < ?
            )
            SELECT id, name, slug, kind, depth FROM chain ORDER BY depth DESC""",
            (folder_id, self.max_depth)
        )
        rows = cursor.fetchall()
        if rows and rows[0]["depth"] >= self.max_depth:
            raise CorruptTree(f"Ancestor chain of {folder_id} exceeds {self.max_depth} levels")
        return [{field: row[field] for field in BREADCRUMB_FIELDS} for row in rows]

    def descendant_ids(self, folder_id: str) -> list[str]:
        """folder_id plus every folder below it; empty if folder_id is unknown."""
        cursor = self._execute(
            """WITH RECURSIVE subtree(id, depth) AS (
                SELECT id, 0 FROM folders WHERE id = ?
                UNION ALL
                SELECT f.id, s.depth + 1
                FROM folders f
                JOIN subtree s ON f.parent_id = s.id
                WHERE s.depth < ?
            )
            SELECT id, depth FROM subtree""",
            (folder_id, self.max_depth)
        )
        rows = cursor.fetchall()
        if any(row["depth"] >= self.max_depth for row in rows):
            raise CorruptTree(f"Subtree of {folder_id} exceeds {self.max_depth} levels")
        return [row["id"] for row in rows]


class IterativeWalkStrategy(Repository):
    """Tree queries as repeated single-row / single-level reads."""

    def __init__(self, connection: ConnectionProtocol, max_depth: int = TREE_MAX_DEPTH):
        super().__init__(connection)
        self.max_depth = max_depth

    def ancestors(self, folder_id: str) -> list[dict]:
        chain = []
        current_id = folder_id
        depth = 0

        while current_id:
            cursor = self._execute(
                "SELECT id, parent_id, name, slug, kind FROM folders WHERE id = ?",
                (current_id,)
            )
            row = cursor.fetchone()
            if row is None:
                break
            if depth >= self.max_depth:
                raise CorruptTree(f"Ancestor chain of {folder_id} exceeds {self.max_depth} levels")

            chain.insert(0, {field: row[field] for field in BREADCRUMB_FIELDS})
            current_id = row["parent_id"]
            depth += 1

        return chain

    def descendant_ids(self, folder_id: str) -> list[str]:
        cursor = self._execute("SELECT id FROM folders WHERE id = ?", (folder_id,))
        if cursor.fetchone() is None:
            return []

        ids = [folder_id]
        queue = deque([(folder_id, 0)])
        while queue:
            parent_id, depth = queue.popleft()
            cursor = self._execute(
                "SELECT id FROM folders WHERE parent_id = ?",
                (parent_id,)
            )
            for row in cursor.fetchall():
                if depth + 1 >= self.max_depth:
                    raise CorruptTree(f"Subtree of {folder_id} exceeds {self.max_depth} levels")
                ids.append(row["id"])
                queue.append((row["id"], depth + 1))
        return ids


class FallbackTreeStrategy:
    """Recursive strategy first; iterative walk when the recursive query fails."""

    def __init__(self, primary: TreeStrategy, fallback: TreeStrategy):
        self.primary = primary
        self.fallback = fallback

    def ancestors(self, folder_id: str) -> list[dict]:
        try:
            return self.primary.ancestors(folder_id)
        except sqlite3.Error as e:
            logger.warning("Recursive ancestor query failed, walking parents instead: %s", e)
            return self.fallback.ancestors(folder_id)

    def descendant_ids(self, folder_id: str) -> list[str]:
        try:
            return self.primary.descendant_ids(folder_id)
        except sqlite3.Error as e:
            logger.warning("Recursive descendant query failed, walking children instead: %s", e)
            return self.fallback.descendant_ids(folder_id)


def supports_recursive_queries(connection: ConnectionProtocol) -> bool:
    """Probe whether the connection can run a recursive CTE."""
    try:
        connection.execute(
            "WITH RECURSIVE probe(n) AS (SELECT 1 UNION ALL SELECT n + 1 FROM probe WHERE n < 2) "
            "SELECT COUNT(*) FROM probe"
        ).fetchone()
    except sqlite3.Error:
        return False
    return True


def select_tree_strategy(connection: ConnectionProtocol, max_depth: int = TREE_MAX_DEPTH) -> TreeStrategy:
    """Pick the tree strategy for a connection.

    Returns the recursive strategy guarded by the iterative fallback when the
    store can run recursive queries, otherwise the iterative walk alone.
    """
    iterative = IterativeWalkStrategy(connection, max_depth)
    if supports_recursive_queries(connection):
        return FallbackTreeStrategy(RecursiveQueryStrategy(connection, max_depth), iterative)
    logger.info("Recursive queries unavailable, using iterative tree walk")
    return iterative
