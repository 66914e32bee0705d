"""Profile resolution: direct read with a privileged fallback.

The direct read runs under the caller's row-level security policy, which
can hide a row the caller itself just caused to be created. When it comes
back empty or errors, the RLS-bypassing read function is tried instead.
"""

import logging
from typing import Protocol

from chartbuddies.models.identity import Profile
from chartbuddies.models.resolution import ResolutionOutcome, ResolutionSource

logger = logging.getLogger(__name__)


class ProfileReader(Protocol):
    """Policy-checked profile reads."""

    async def get_profile(self, user_id: str) -> Profile | None:
        """Get a profile visible to the caller."""
        ...


class PrivilegedProfileOps(Protocol):
    """The RLS-bypassing capability. Held by the resolver and reconciler only."""

    async def read_profile(self, user_id: str) -> list[Profile]:
        """Read zero or one profiles ignoring visibility policy."""
        ...

    async def create_profile(self, user_id: str, email: str, full_name: str) -> str:
        """Create a profile ignoring visibility policy, returning its ID."""
        ...


class ProfileResolver:
    """Resolves a user ID to a profile in one pass, without retries."""

    def __init__(
        self,
        reader: ProfileReader,
        privileged: PrivilegedProfileOps,
    ) -> None:
        """Initialize the resolver.

        Args:
            reader: Direct, policy-checked reads
            privileged: Policy-bypassing reads
        """
        self._reader = reader
        self._privileged = privileged

    async def resolve(self, user_id: str) -> ResolutionOutcome:
        """Resolve a profile, first success wins.

        Args:
            user_id: The identity provider's user ID

        Returns:
            Found, Absent, or TransientError when the privileged read fails
        """
        try:
            profile = await self._reader.get_profile(user_id)
        except Exception as e:
            logger.info(f"Direct profile read failed for {user_id}, trying privileged read: {e}")
            profile = None

        if profile is not None:
            return ResolutionOutcome.found(profile, ResolutionSource.DIRECT)

        try:
            rows = await self._privileged.read_profile(user_id)
        except Exception as e:
            logger.warning(f"Privileged profile read failed for {user_id}: {e}")
            return ResolutionOutcome.transient_error(str(e))

        if rows:
            return ResolutionOutcome.found(rows[0], ResolutionSource.PRIVILEGED)

        logger.debug(f"No profile for {user_id}")
        return ResolutionOutcome.absent()
