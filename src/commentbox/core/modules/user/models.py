from datetime import datetime
from uuid import UUID

from pydantic import Field

from commentbox.core.db import MongoModel, ViewModel
from commentbox.utils import now


class User(MongoModel):
    """User domain model with credentials."""

    name: str
    email: str  # Unique, exact match
    password_hash: str  # bcrypt hash
    created_at: datetime = Field(default_factory=now)


class UserView(ViewModel):
    """User account information (API representation)."""

    id: UUID = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")

    @classmethod
    def from_domain(cls, user: User) -> "UserView":
        """Create view model from domain model."""
        return cls(id=user.id, name=user.name, email=user.email)
