"""
Mock user directory.

In production, this would query the `users` relation populated by the
authentication service. The engine only needs display names for
notifications and a way to tell customers from staff.
"""

import logging
from typing import Optional

from table_assistant.schemas.customer_schema import Role, User

logger = logging.getLogger(__name__)

DEFAULT_USERS: list[User] = [
    User(id=1, name="Alice Admin", role=Role.ADMIN, email="admin@restaurant.local"),
    User(id=2, name="Marco Manager", role=Role.MANAGER, email="manager@restaurant.local"),
    User(id=10, name="John Smith", email="john.smith@email.com"),
    User(id=11, name="Sarah Johnson", email="sarah.j@email.com"),
]


class UserDirectory:
    """Id-keyed lookup of known users."""

    def __init__(self, users: Optional[list[User]] = None) -> None:
        self._users: dict[int, User] = {
            u.id: u for u in (DEFAULT_USERS if users is None else users)
        }

    def lookup(self, user_id: int) -> Optional[User]:
        """Look up a user by id. Returns None if not found."""
        return self._users.get(user_id)

    def display_name(self, user_id: int) -> str:
        """Name shown to managers; falls back to a generic label."""
        user = self._users.get(user_id)
        return user.name if user else "Customer"

    def add(self, user: User) -> User:
        self._users[user.id] = user
        logger.info("User registered in directory: %s (%d)", user.name, user.id)
        return user
