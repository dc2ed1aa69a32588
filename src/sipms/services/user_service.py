"""User registration and lookup."""

import logging
import threading
from typing import Optional

from sipms.core.exceptions import UserNotFoundError, ValidationError
from sipms.core.id_generator import IdGenerator
from sipms.core.models import User
from sipms.repositories.base import UserRepository

logger = logging.getLogger(__name__)


class UserService:
    """Registers investors and resolves them by id or email."""

    def __init__(self, user_repository: UserRepository, id_generator: IdGenerator):
        self.user_repository = user_repository
        self.id_generator = id_generator
        self._lock = threading.Lock()

    def register_user(self, name: str, email: str) -> User:
        """
        Register a new user.

        Args:
            name: Display name (non-empty)
            email: Email address, unique across users (case-insensitive)

        Returns:
            The created user

        Raises:
            ValidationError: If the name is empty, the email is malformed or
                already registered
        """
        name = (name or "").strip()
        email = (email or "").strip()

        if not name:
            raise ValidationError("User name cannot be empty", field="name")
        if "@" not in email:
            raise ValidationError(f"Invalid email address: {email!r}", field="email")

        with self._lock:
            if self.user_repository.get_by_email(email) is not None:
                raise ValidationError(f"Email already registered: {email}", field="email")

            user = User(id=self.id_generator.user_id(), name=name, email=email)
            self.user_repository.add(user)

        logger.info(f"Registered user {user.id} ({email})")
        return user

    def get_user(self, user_id: str) -> User:
        user = self.user_repository.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.user_repository.get_by_email(email)

    def user_exists(self, user_id: str) -> bool:
        return self.user_repository.exists(user_id)
