from commentbox.core.core import Service
from commentbox.core.modules.token.models import AuthToken
from commentbox.core.modules.user.models import User
from commentbox.errors import InvalidTokenError, NotFoundError


class AccessService(Service):
    async def ensure_authenticated(self, auth_token: AuthToken) -> User:
        """Ensure the token is valid and belongs to an existing user."""
        payload = self.core.services.token.verify(auth_token)
        try:
            return await self.core.services.user.get_user(payload.user_id)
        except NotFoundError as e:
            raise InvalidTokenError from e
