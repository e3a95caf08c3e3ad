"""Signed, expiring session tokens (JWT).

Tokens carry the user id in `sub` and the user's email. There is no refresh:
an expired token requires logging in again.
"""

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from commentbox.core.core import Service
from commentbox.core.modules.token.models import AuthToken, TokenPayload
from commentbox.errors import InvalidTokenError
from commentbox.utils import now, parse_uuid


def encode_token(
    user_id: UUID, email: str, secret: str, algorithm: str, expires_in: timedelta, issued_at: datetime | None = None
) -> AuthToken:
    """Create a signed token for the user, valid for `expires_in` from `issued_at`."""
    issued_at = issued_at or now()
    claims: dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "iat": issued_at,
        "exp": issued_at + expires_in,
    }
    return AuthToken(jwt.encode(claims, secret, algorithm=algorithm))


def decode_token(token: str, secret: str, algorithm: str) -> TokenPayload:
    """Verify signature and expiry and return the token identity.

    Raises:
        InvalidTokenError: If the token is malformed, badly signed, expired,
            or does not carry a valid user id and email.
    """
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError as e:
        raise InvalidTokenError from e

    user_id = parse_uuid(str(claims.get("sub", "")))
    email = claims.get("email")
    if user_id is None or not isinstance(email, str):
        raise InvalidTokenError
    return TokenPayload(user_id=user_id, email=email)


class TokenService(Service):
    """Issues and verifies auth tokens using the process-wide secret and algorithm."""

    def issue(self, user_id: UUID, email: str) -> AuthToken:
        config = self.core.config
        return encode_token(
            user_id, email, config.jwt_secret, config.jwt_algorithm, timedelta(days=config.jwt_expires_days)
        )

    def verify(self, token: str) -> TokenPayload:
        config = self.core.config
        return decode_token(token, config.jwt_secret, config.jwt_algorithm)
