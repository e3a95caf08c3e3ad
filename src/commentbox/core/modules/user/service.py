from collections.abc import Iterable
from typing import Any
from uuid import UUID

import bcrypt
import structlog
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from commentbox.core.core import Service
from commentbox.core.modules.user.models import User
from commentbox.core.modules.user.validators import validate_email, validate_name, validate_password
from commentbox.errors import DuplicateEmailError, InvalidCredentialsError, NotFoundError

logger = structlog.get_logger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


class UserService(Service):
    """Credential store: registration, password checks and user lookup."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("users")

    async def on_start(self) -> None:
        """Create unique index on email."""
        await self._collection.create_index([("email", 1)], unique=True)
        logger.debug("user_service_started")

    async def get_user(self, user_id: UUID) -> User:
        """Get user by ID."""
        doc = await self._collection.find_one({"_id": user_id})
        if doc is None:
            raise NotFoundError(f"User '{user_id}' not found")
        return User.model_validate(doc)

    async def get_users(self, user_ids: Iterable[UUID]) -> dict[UUID, User]:
        """Get users by IDs in one query. Unknown IDs are absent from the result."""
        ids = list(set(user_ids))
        if not ids:
            return {}
        users = await User.list_cursor(self._collection.find({"_id": {"$in": ids}}))
        return {user.id: user for user in users}

    async def find_by_email(self, email: str) -> User | None:
        doc = await self._collection.find_one({"email": email})
        if doc is None:
            return None
        return User.model_validate(doc)

    async def create_user(self, name: str, email: str, password: str) -> User:
        """Create user with hashed password."""
        name = validate_name(name)
        email = validate_email(email)
        validate_password(password)

        if await self.find_by_email(email) is not None:
            raise DuplicateEmailError

        user = User(name=name, email=email, password_hash=hash_password(password))
        try:
            await self._collection.insert_one(user.to_mongo())
        except DuplicateKeyError as e:
            # Lost a registration race against the unique index
            raise DuplicateEmailError from e
        logger.info("user_registered", user_id=user.id)
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """Return the user whose email and password match, else raise InvalidCredentialsError."""
        user = await self.find_by_email(email.strip())
        if user is None or not check_password(password, user.password_hash):
            raise InvalidCredentialsError
        return user
