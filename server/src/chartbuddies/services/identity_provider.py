"""Thin adapter over Supabase Auth.

Session storage and token refresh belong to the SDK; this only exposes the
two calls the login flow needs.
"""

import logging

from supabase import Client, create_client

from chartbuddies.config import Settings, get_settings
from chartbuddies.exceptions import InvalidCredentialsError
from chartbuddies.models.identity import AuthenticatedUser, IdentityClaims

logger = logging.getLogger(__name__)


class SupabaseAuthGateway:
    """Sign-in and token lookup against Supabase Auth."""

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self.client: Client = create_client(settings.supabase_url, settings.supabase_key)

    @staticmethod
    def _to_user(user) -> AuthenticatedUser:
        return AuthenticatedUser(
            id=str(user.id),
            claims=IdentityClaims.from_user(user.email, user.user_metadata),
        )

    async def sign_in(self, email: str, password: str) -> tuple[AuthenticatedUser, str]:
        """Sign in with email and password.

        Args:
            email: Account email
            password: Account password

        Returns:
            The authenticated user and the session access token

        Raises:
            InvalidCredentialsError: If the provider rejects the credentials
        """
        try:
            response = self.client.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except Exception as e:
            logger.warning(f"Sign-in rejected for {email}: {e}")
            raise InvalidCredentialsError(str(e)) from e

        if not response.user or not response.session:
            raise InvalidCredentialsError()

        return self._to_user(response.user), response.session.access_token

    async def get_user(self, access_token: str) -> AuthenticatedUser | None:
        """Look up the user owning an access token.

        Returns:
            The user, or None if the token is invalid or expired
        """
        try:
            response = self.client.auth.get_user(jwt=access_token)
        except Exception as e:
            logger.debug(f"Token lookup failed: {e}")
            return None

        if not response or not response.user:
            return None
        return self._to_user(response.user)
