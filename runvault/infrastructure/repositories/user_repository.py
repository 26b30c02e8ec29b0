"""User repository - minimal user lookups.

Accounts are provisioned by the authentication layer; the vault only needs
to resolve a user id and its role.
"""
import uuid

from ...config import ROLE_ADMIN, ROLE_MEMBER
from .base import Repository


class UserRepository(Repository):
    """Repository for user entity operations.

    Examples:
        >>> repo = UserRepository(db)
        >>> user_id = repo.create("jo", "Jo", role="admin")
        >>> repo.is_admin(user_id)
        True
    """

    def get_by_id(self, user_id: str) -> dict | None:
        """Get user by ID.

        Args:
            user_id: User ID

        Returns:
            User dict or None if not found
        """
        cursor = self._execute(
            "SELECT * FROM users WHERE id = ?",
            (user_id,)
        )
        return self._row_to_dict(cursor.fetchone())

    def create(self, username: str, display_name: str = None, role: str = ROLE_MEMBER, user_id: str = None) -> str:
        """Create new user.

        Args:
            username: Unique username
            display_name: Display name (defaults to username)
            role: 'admin' or 'member'
            user_id: Optional ID (generated if not provided)

        Returns:
            New user ID
        """
        if user_id is None:
            user_id = str(uuid.uuid4())
        self._execute(
            "INSERT INTO users (id, username, display_name, role) VALUES (?, ?, ?, ?)",
            (user_id, username.lower().strip(), (display_name or username).strip(), role)
        )
        self._commit()
        return user_id

    def is_admin(self, user_id: str) -> bool:
        """Check whether the user has the admin role."""
        user = self.get_by_id(user_id)
        return bool(user) and user["role"] == ROLE_ADMIN
