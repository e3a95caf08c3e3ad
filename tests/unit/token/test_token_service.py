"""Tests for JWT issue and verification."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest
from jose import jwt

from commentbox.core.modules.access.service import AccessService
from commentbox.core.modules.token.service import TokenService, decode_token, encode_token
from commentbox.errors import InvalidTokenError, NotFoundError
from commentbox.utils import now

USER_ID = UUID("87654321-4321-8765-4321-876543218765")
SECRET = "test-secret"
ALGORITHM = "HS256"


def make_token(expires_in=timedelta(days=7), issued_at=None, secret=SECRET):
    return encode_token(USER_ID, "a@x.com", secret, ALGORITHM, expires_in, issued_at)


class TestEncodeDecode:
    def test_round_trip(self):
        payload = decode_token(make_token(), SECRET, ALGORITHM)

        assert payload.user_id == USER_ID
        assert payload.email == "a@x.com"

    def test_claims(self):
        """Test that the id travels in `sub` and expiry is issue time plus the lifetime."""
        issued_at = now().replace(microsecond=0)
        claims = jwt.get_unverified_claims(make_token(issued_at=issued_at))

        assert claims["sub"] == str(USER_ID)
        assert claims["email"] == "a@x.com"
        assert claims["exp"] - claims["iat"] == int(timedelta(days=7).total_seconds())

    def test_expired(self):
        token = make_token(issued_at=now() - timedelta(days=8))

        with pytest.raises(InvalidTokenError, match="Invalid or expired token"):
            decode_token(token, SECRET, ALGORITHM)

    def test_wrong_secret(self):
        with pytest.raises(InvalidTokenError):
            decode_token(make_token(secret="other-secret"), SECRET, ALGORITHM)

    def test_tampered(self):
        token = make_token()
        header, payload, signature = token.split(".")
        tampered = f"{header}.{payload}.{signature[::-1]}"

        with pytest.raises(InvalidTokenError):
            decode_token(tampered, SECRET, ALGORITHM)

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_malformed(self, token):
        with pytest.raises(InvalidTokenError):
            decode_token(token, SECRET, ALGORITHM)

    def test_sub_must_be_user_id(self):
        """Test that a correctly signed token without a valid id is rejected."""
        exp = now() + timedelta(days=1)
        token = jwt.encode({"sub": "not-a-uuid", "email": "a@x.com", "exp": exp}, SECRET, algorithm=ALGORITHM)

        with pytest.raises(InvalidTokenError):
            decode_token(token, SECRET, ALGORITHM)

    def test_email_required(self):
        exp = now() + timedelta(days=1)
        token = jwt.encode({"sub": str(USER_ID), "exp": exp}, SECRET, algorithm=ALGORITHM)

        with pytest.raises(InvalidTokenError):
            decode_token(token, SECRET, ALGORITHM)


class TestTokenService:
    def test_uses_config(self, test_config):
        core = MagicMock()
        core.config = test_config
        service = TokenService(MagicMock())
        service.set_core(core)

        token = service.issue(USER_ID, "a@x.com")

        assert service.verify(token).user_id == USER_ID
        with pytest.raises(InvalidTokenError):
            decode_token(token, "another-secret", ALGORITHM)


class TestAccessService:
    @pytest.fixture
    def access(self, test_config, mock_user):
        core = MagicMock()
        core.config = test_config
        token_service = TokenService(MagicMock())
        token_service.set_core(core)
        core.services.token = token_service
        core.services.user.get_user = AsyncMock(return_value=mock_user)
        service = AccessService(MagicMock())
        service.set_core(core)
        return service

    @pytest.mark.asyncio
    async def test_valid_token_returns_user(self, access, mock_user):
        token = access.core.services.token.issue(mock_user.id, mock_user.email)

        assert await access.ensure_authenticated(token) == mock_user

    @pytest.mark.asyncio
    async def test_deleted_user_is_invalid_token(self, access, mock_user):
        """Test that a valid token for a user who no longer exists is rejected as a token error."""
        access.core.services.user.get_user.side_effect = NotFoundError("gone")
        token = access.core.services.token.issue(mock_user.id, mock_user.email)

        with pytest.raises(InvalidTokenError):
            await access.ensure_authenticated(token)

    @pytest.mark.asyncio
    async def test_bad_token(self, access):
        with pytest.raises(InvalidTokenError):
            await access.ensure_authenticated("garbage")
