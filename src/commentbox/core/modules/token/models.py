"""Auth token models."""

from typing import NewType
from uuid import UUID

from pydantic import BaseModel

AuthToken = NewType("AuthToken", str)


class TokenPayload(BaseModel):
    """Identity carried by a verified token."""

    user_id: UUID
    email: str
