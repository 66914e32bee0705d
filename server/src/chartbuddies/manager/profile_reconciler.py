"""Post-authentication profile reconciliation.

Makes sure a freshly authenticated user ends up with a readable profile:

    start                          resolve; found -> done, else await_propagation
    await_propagation              sleep, resolve; found -> done, else attempt_create
    attempt_create                 ok -> await_propagation_after_create
                                   duplicate key -> race_recover
                                   other error -> final_resolve
    await_propagation_after_create sleep, resolve; found -> done, else final_resolve
    race_recover                   sleep, resolve; found -> done, else final_resolve
    final_resolve                  resolve; found -> done, else failed

Every transition moves forward, so a run performs at most one create, four
resolves and two sleeps. Concurrent runs for the same user are not
coordinated here; the duplicate-key branch is what makes that race safe.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from chartbuddies.exceptions import ProfileConflictError, ProfileNotFoundError
from chartbuddies.manager.profile_resolver import PrivilegedProfileOps, ProfileResolver
from chartbuddies.models.identity import IdentityClaims, Profile
from chartbuddies.models.resolution import ReconcileResult, ReconcileState

logger = logging.getLogger(__name__)

DEFAULT_PROPAGATION_DELAY = 0.5  # seconds

TERMINAL_STATES = frozenset({ReconcileState.DONE, ReconcileState.FAILED})

Sleep = Callable[[float], Awaitable[None]]


class ProfileReconciler:
    """Resolves, creates if needed, and re-resolves a user's profile."""

    def __init__(
        self,
        resolver: ProfileResolver,
        privileged: PrivilegedProfileOps,
        propagation_delay: float = DEFAULT_PROPAGATION_DELAY,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the reconciler.

        Args:
            resolver: Single-pass profile resolver
            privileged: Capability used for the profile insert
            propagation_delay: Seconds to wait for backend side effects
                (e.g. a signup trigger) before re-reading
            sleep: Awaitable sleep, replaceable in tests
        """
        self._resolver = resolver
        self._privileged = privileged
        self._delay = propagation_delay
        self._sleep = sleep
        self._handlers = {
            ReconcileState.START: self._start,
            ReconcileState.AWAIT_PROPAGATION: self._await_propagation,
            ReconcileState.ATTEMPT_CREATE: self._attempt_create,
            ReconcileState.AWAIT_PROPAGATION_AFTER_CREATE: self._await_after_create,
            ReconcileState.RACE_RECOVER: self._race_recover,
            ReconcileState.FINAL_RESOLVE: self._final_resolve,
        }

    async def ensure(
        self,
        user_id: str,
        claims: IdentityClaims | None = None,
    ) -> Profile:
        """Return the user's profile, creating it if it does not exist yet.

        Args:
            user_id: The identity provider's user ID
            claims: Signup claims used to fill a newly created profile

        Returns:
            The authoritative profile

        Raises:
            ProfileNotFoundError: If no profile could be resolved
        """
        result = await self.ensure_with_trace(user_id, claims)
        if result.profile is None:
            raise ProfileNotFoundError(user_id)
        return result.profile

    async def ensure_with_trace(
        self,
        user_id: str,
        claims: IdentityClaims | None = None,
    ) -> ReconcileResult:
        """Run the reconciliation and report the path taken. Never raises."""
        result = ReconcileResult(user_id=user_id)
        claims = claims or IdentityClaims()
        state = ReconcileState.START

        while state not in TERMINAL_STATES:
            result.path.append(state)
            state = await self._handlers[state](result, claims)
        result.path.append(state)

        if state == ReconcileState.DONE:
            logger.debug(f"Profile for {user_id} resolved via {[s.value for s in result.path]}")
        else:
            logger.error(f"Profile for {user_id} not found after {[s.value for s in result.path]}")
        return result

    async def _resolve(
        self,
        result: ReconcileResult,
        otherwise: ReconcileState,
    ) -> ReconcileState:
        outcome = await self._resolver.resolve(result.user_id)
        if outcome.is_found:
            result.profile = outcome.profile
            return ReconcileState.DONE
        if outcome.reason:
            logger.warning(f"Resolve for {result.user_id} errored: {outcome.reason}")
        return otherwise

    async def _start(self, result: ReconcileResult, claims: IdentityClaims) -> ReconcileState:
        return await self._resolve(result, ReconcileState.AWAIT_PROPAGATION)

    async def _await_propagation(self, result: ReconcileResult, claims: IdentityClaims) -> ReconcileState:
        await self._sleep(self._delay)
        return await self._resolve(result, ReconcileState.ATTEMPT_CREATE)

    async def _attempt_create(self, result: ReconcileResult, claims: IdentityClaims) -> ReconcileState:
        logger.info(f"Profile not found for {result.user_id}, creating")
        result.create_attempted = True
        try:
            await self._privileged.create_profile(
                result.user_id,
                claims.email or "",
                claims.display_name,
            )
        except ProfileConflictError:
            logger.info(f"Profile for {result.user_id} already exists, re-resolving")
            return ReconcileState.RACE_RECOVER
        except Exception as e:
            logger.error(f"Failed to create profile for {result.user_id}: {e}")
            return ReconcileState.FINAL_RESOLVE
        return ReconcileState.AWAIT_PROPAGATION_AFTER_CREATE

    async def _await_after_create(self, result: ReconcileResult, claims: IdentityClaims) -> ReconcileState:
        await self._sleep(self._delay)
        return await self._resolve(result, ReconcileState.FINAL_RESOLVE)

    async def _race_recover(self, result: ReconcileResult, claims: IdentityClaims) -> ReconcileState:
        await self._sleep(self._delay)
        return await self._resolve(result, ReconcileState.FINAL_RESOLVE)

    async def _final_resolve(self, result: ReconcileResult, claims: IdentityClaims) -> ReconcileState:
        return await self._resolve(result, ReconcileState.FAILED)
