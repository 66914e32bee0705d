"""Supabase database clients for the user profile store.

Two clients with different trust levels:

- ``DatabaseClient`` reads ``user_profiles`` under the caller's session, so
  row-level security applies.
- ``PrivilegedProfileClient`` calls the SECURITY DEFINER functions that
  bypass row-level security for reading and creating a profile.
"""

import logging
from typing import Any

from postgrest.exceptions import APIError
from supabase import Client, ClientOptions, create_client

from chartbuddies.config import Settings, get_settings
from chartbuddies.exceptions import ProfileConflictError, ProfileCreateError
from chartbuddies.models.identity import Profile

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_CODE = "23505"


def is_unique_violation(error: APIError) -> bool:
    """Check whether a PostgREST error is a uniqueness violation."""
    if error.code == UNIQUE_VIOLATION_CODE:
        return True
    return "duplicate" in (error.message or "").lower()


def _build_client(url: str, key: str, access_token: str | None = None) -> Client:
    if access_token:
        options = ClientOptions(headers={"Authorization": f"Bearer {access_token}"})
        return create_client(url, key, options=options)
    return create_client(url, key)


class DatabaseClient:
    """Client for direct (policy-checked) profile reads."""

    def __init__(
        self,
        access_token: str | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            access_token: The caller's session token. Row-level security
                is evaluated as this user when given.
            settings: Settings override, defaults to the cached settings
        """
        self._settings = settings or get_settings()
        self.client: Client = _build_client(
            self._settings.supabase_url,
            self._settings.supabase_key,
            access_token,
        )

    async def get_profile(self, user_id: str) -> Profile | None:
        """Get a profile by user ID.

        Args:
            user_id: The identity provider's user ID

        Returns:
            The profile, or None if no row is visible to the caller

        Raises:
            APIError: If PostgREST refuses the query
        """
        result = (
            self.client.table(self._settings.profile_table)
            .select("*")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )

        if result.data:
            return Profile(**result.data[0])
        return None

    async def health_check(self) -> dict[str, Any]:
        """Check that the profile table answers.

        Returns:
            Dict with healthy flag and error
        """
        try:
            self.client.table(self._settings.profile_table).select("id").limit(1).execute()
            return {"healthy": True, "error": None}
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {"healthy": False, "error": str(e)}


class PrivilegedProfileClient:
    """Client for the RLS-bypassing profile functions.

    Only the resolver and reconciler should hold an instance of this.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        key = self._settings.supabase_service_role_key or self._settings.supabase_key
        self.client: Client = _build_client(self._settings.supabase_url, key)

    async def read_profile(self, user_id: str) -> list[Profile]:
        """Read a profile ignoring row-level security.

        Args:
            user_id: The identity provider's user ID

        Returns:
            Zero or one profiles

        Raises:
            APIError: If the function call fails
        """
        result = self.client.rpc(
            self._settings.profile_read_function,
            {"p_user_id": user_id},
        ).execute()

        return [Profile(**row) for row in result.data or []]

    async def create_profile(self, user_id: str, email: str, full_name: str) -> str:
        """Create a profile ignoring row-level security.

        Args:
            user_id: The identity provider's user ID
            email: Email to store on the profile
            full_name: Display name to store on the profile

        Returns:
            The new profile ID

        Raises:
            ProfileConflictError: If a profile already exists for the user
            ProfileCreateError: For any other failure
        """
        try:
            result = self.client.rpc(
                self._settings.profile_create_function,
                {
                    "p_user_id": user_id,
                    "p_email": email,
                    "p_full_name": full_name,
                },
            ).execute()
        except APIError as e:
            if is_unique_violation(e):
                raise ProfileConflictError(user_id, e.message or "duplicate key", e.code) from e
            raise ProfileCreateError(user_id, e.message or str(e), e.code) from e

        if not result.data:
            raise ProfileCreateError(user_id, "create function returned no id")

        logger.debug(f"Created profile {result.data} for user {user_id}")
        return str(result.data)
