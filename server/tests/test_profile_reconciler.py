"""Tests for ProfileReconciler."""

from unittest.mock import AsyncMock

import pytest

from chartbuddies.exceptions import (
    PROFILE_NOT_FOUND_MESSAGE,
    ProfileConflictError,
    ProfileCreateError,
    ProfileNotFoundError,
)
from chartbuddies.manager.profile_reconciler import ProfileReconciler
from chartbuddies.manager.profile_resolver import ProfileResolver
from chartbuddies.models.identity import IdentityClaims, Profile, Role
from chartbuddies.models.resolution import ReconcileState


class FakeProfileStore:
    """In-memory user_profiles table with a row-visibility policy.

    ``rows`` holds every stored profile; ``visible`` holds the IDs the
    caller's policy lets it read directly.
    """

    def __init__(self) -> None:
        self.rows: dict[str, Profile] = {}
        self.visible: set[str] = set()
        self.direct_reads = 0
        self.privileged_reads = 0
        self.creates: list[tuple[str, str, str]] = []
        self.create_error: Exception | None = None
        self.create_writes = True
        self.read_failures = 0  # Privileged reads left to fail; -1 fails forever

    def put(self, user_id: str, visible: bool = True, role: Role = Role.NURSE) -> Profile:
        profile = Profile(
            id=user_id,
            email=f"{user_id}@example.com",
            full_name=user_id.upper(),
            role=role,
        )
        self.rows[user_id] = profile
        if visible:
            self.visible.add(user_id)
        return profile

    async def get_profile(self, user_id: str) -> Profile | None:
        self.direct_reads += 1
        if user_id in self.visible:
            return self.rows.get(user_id)
        return None

    async def read_profile(self, user_id: str) -> list[Profile]:
        self.privileged_reads += 1
        if self.read_failures:
            if self.read_failures > 0:
                self.read_failures -= 1
            raise ConnectionError("privileged read timed out")
        if user_id in self.rows:
            return [self.rows[user_id]]
        return []

    async def create_profile(self, user_id: str, email: str, full_name: str) -> str:
        self.creates.append((user_id, email, full_name))
        if self.create_error is not None:
            raise self.create_error
        if user_id in self.rows:
            raise ProfileConflictError(user_id, "duplicate key value", "23505")
        if self.create_writes:
            self.rows[user_id] = Profile(
                id=user_id, email=email, full_name=full_name, role=Role.NURSE,
            )
        return user_id

    @property
    def reads(self) -> int:
        return self.direct_reads + self.privileged_reads


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def store() -> FakeProfileStore:
    return FakeProfileStore()


@pytest.fixture
def sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def reconciler(store, sleep) -> ProfileReconciler:
    return ProfileReconciler(
        ProfileResolver(store, store),
        store,
        propagation_delay=0.5,
        sleep=sleep,
    )


@pytest.fixture
def claims() -> IdentityClaims:
    return IdentityClaims(email="new@example.com", full_name="New User")


# ---------------------------------------------------------------------------
# TestExistingProfile
# ---------------------------------------------------------------------------

class TestExistingProfile:
    """Profiles that already exist are returned without a create."""

    @pytest.mark.asyncio
    async def test_visible_profile_direct_only(self, reconciler, store, sleep):
        """A policy-visible profile comes back from the direct read alone."""
        expected = store.put("u0")

        profile = await reconciler.ensure("u0")

        assert profile == expected
        assert store.direct_reads == 1
        assert store.privileged_reads == 0
        assert store.creates == []
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_hidden_profile_privileged_fallback(self, reconciler, store, sleep):
        """A policy-hidden profile comes back from the privileged read."""
        expected = store.put("u0", visible=False)

        result = await reconciler.ensure_with_trace("u0")

        assert result.profile == expected
        assert result.path == [ReconcileState.START, ReconcileState.DONE]
        assert store.privileged_reads == 1
        assert store.creates == []
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_trigger_row_appears_after_delay(self, reconciler, store, sleep):
        """A row committed by a signup trigger during the first wait is used."""
        async def trigger_commits(delay):
            store.put("u0", visible=False)

        sleep.side_effect = trigger_commits

        result = await reconciler.ensure_with_trace("u0")

        assert result.succeeded
        assert result.path == [
            ReconcileState.START,
            ReconcileState.AWAIT_PROPAGATION,
            ReconcileState.DONE,
        ]
        assert not result.create_attempted
        sleep.assert_called_once_with(0.5)


# ---------------------------------------------------------------------------
# TestCreate
# ---------------------------------------------------------------------------

class TestCreate:
    """Missing profiles are created once and re-resolved."""

    @pytest.mark.asyncio
    async def test_missing_profile_created(self, reconciler, store, sleep, claims):
        """u1 has no row: create succeeds, wait, resolve finds it."""
        result = await reconciler.ensure_with_trace("u1", claims)

        assert result.profile.id == "u1"
        assert result.path == [
            ReconcileState.START,
            ReconcileState.AWAIT_PROPAGATION,
            ReconcileState.ATTEMPT_CREATE,
            ReconcileState.AWAIT_PROPAGATION_AFTER_CREATE,
            ReconcileState.DONE,
        ]
        assert store.creates == [("u1", "new@example.com", "New User")]
        assert sleep.call_count == 2

    @pytest.mark.asyncio
    async def test_full_name_falls_back_to_email(self, reconciler, store):
        """Without a full name claim the email is used as the name."""
        await reconciler.ensure("u1", IdentityClaims(email="a@example.com"))

        assert store.creates == [("u1", "a@example.com", "a@example.com")]

    @pytest.mark.asyncio
    async def test_no_claims_uses_placeholder_name(self, reconciler, store):
        """Without any claims the profile is created as 'User'."""
        await reconciler.ensure("u1")

        assert store.creates == [("u1", "", "User")]

    @pytest.mark.asyncio
    async def test_created_row_slow_to_appear(self, reconciler, store, claims):
        """A created row missed after the wait is caught by the final resolve."""
        store.create_writes = False
        read_profile = store.read_profile

        async def commit_before_last_read(user_id):
            if store.privileged_reads == 3:
                store.put(user_id, visible=False)
            return await read_profile(user_id)

        store.read_profile = commit_before_last_read

        result = await reconciler.ensure_with_trace("u1", claims)

        assert result.succeeded
        assert result.path[-3:] == [
            ReconcileState.AWAIT_PROPAGATION_AFTER_CREATE,
            ReconcileState.FINAL_RESOLVE,
            ReconcileState.DONE,
        ]
        assert len(store.creates) == 1


# ---------------------------------------------------------------------------
# TestUniquenessConflict
# ---------------------------------------------------------------------------

class TestUniquenessConflict:
    """A duplicate-key create is treated as a concurrent success."""

    @pytest.mark.asyncio
    async def test_conflict_re_resolves_existing_row(self, reconciler, store, sleep, claims):
        """u2: create hits a uniqueness violation, re-resolve finds the row."""
        store.create_error = ProfileConflictError("u2", "duplicate key", "23505")

        async def trigger_commits(delay):
            if store.create_error is not None and store.creates:
                store.put("u2", visible=False)

        sleep.side_effect = trigger_commits

        result = await reconciler.ensure_with_trace("u2", claims)

        assert result.profile.id == "u2"
        assert result.path == [
            ReconcileState.START,
            ReconcileState.AWAIT_PROPAGATION,
            ReconcileState.ATTEMPT_CREATE,
            ReconcileState.RACE_RECOVER,
            ReconcileState.DONE,
        ]
        assert len(store.creates) == 1

    @pytest.mark.asyncio
    async def test_conflict_then_final_resolve(self, reconciler, store, claims):
        """A conflict whose row is still unreadable after the wait fails."""
        store.create_error = ProfileConflictError("u2", "duplicate key", "23505")

        result = await reconciler.ensure_with_trace("u2", claims)

        assert not result.succeeded
        assert result.path[-3:] == [
            ReconcileState.RACE_RECOVER,
            ReconcileState.FINAL_RESOLVE,
            ReconcileState.FAILED,
        ]
        assert len(store.creates) == 1


# ---------------------------------------------------------------------------
# TestTerminalFailure
# ---------------------------------------------------------------------------

class TestTerminalFailure:
    """Non-recoverable create failures surface a single error."""

    @pytest.mark.asyncio
    async def test_other_create_error_fails(self, reconciler, store, sleep, claims):
        """A non-uniqueness create error gets one final resolve, then fails."""
        store.create_error = ProfileCreateError("u3", "permission denied", "42501")

        with pytest.raises(ProfileNotFoundError) as exc_info:
            await reconciler.ensure("u3", claims)

        assert exc_info.value.user_id == "u3"
        assert str(exc_info.value) == PROFILE_NOT_FOUND_MESSAGE
        assert len(store.creates) == 1
        # start, after first wait, final
        assert store.privileged_reads == 3
        assert sleep.call_count == 1

    @pytest.mark.asyncio
    async def test_other_create_error_path(self, reconciler, store, claims):
        store.create_error = RuntimeError("network down")

        result = await reconciler.ensure_with_trace("u3", claims)

        assert result.path == [
            ReconcileState.START,
            ReconcileState.AWAIT_PROPAGATION,
            ReconcileState.ATTEMPT_CREATE,
            ReconcileState.FINAL_RESOLVE,
            ReconcileState.FAILED,
        ]
        assert result.create_attempted

    @pytest.mark.asyncio
    async def test_row_exists_despite_create_error(self, reconciler, store, claims):
        """The final resolve still finds a row created despite the error."""

        class FlakyError(Exception):
            pass

        create_profile = store.create_profile

        async def create_then_fail(user_id, email, full_name):
            await create_profile(user_id, email, full_name)
            raise FlakyError("timeout after commit")

        store.create_profile = create_then_fail

        profile = await reconciler.ensure("u3", claims)

        assert profile.id == "u3"

    @pytest.mark.asyncio
    async def test_bounded_operation_counts(self, reconciler, store, sleep, claims):
        """The longest path does one create, four resolves and two waits."""
        store.create_writes = False

        with pytest.raises(ProfileNotFoundError):
            await reconciler.ensure("u4", claims)

        assert len(store.creates) == 1
        assert store.privileged_reads == 4
        assert store.direct_reads == 4
        assert sleep.call_count == 2


# ---------------------------------------------------------------------------
# TestReadErrors
# ---------------------------------------------------------------------------

class TestReadErrors:
    """Failed privileged reads advance the protocol like an absent row."""

    @pytest.mark.asyncio
    async def test_errors_then_row_after_create(self, reconciler, store, sleep, claims, caplog):
        """Two failed reads lead to a create, and the next read finds the row."""
        store.read_failures = 2

        result = await reconciler.ensure_with_trace("u5", claims)

        assert result.profile.id == "u5"
        assert result.path == [
            ReconcileState.START,
            ReconcileState.AWAIT_PROPAGATION,
            ReconcileState.ATTEMPT_CREATE,
            ReconcileState.AWAIT_PROPAGATION_AFTER_CREATE,
            ReconcileState.DONE,
        ]
        assert len(store.creates) == 1
        assert sleep.call_count == 2
        assert "privileged read timed out" in caplog.text

    @pytest.mark.asyncio
    async def test_reads_always_fail(self, reconciler, store, claims):
        """Persistent read errors surface only as ProfileNotFoundError."""
        store.read_failures = -1

        with pytest.raises(ProfileNotFoundError):
            await reconciler.ensure("u5", claims)

        assert store.privileged_reads == 4
        assert len(store.creates) == 1


# ---------------------------------------------------------------------------
# TestIdempotence
# ---------------------------------------------------------------------------

class TestIdempotence:
    """Repeated runs for a resolved user only read."""

    @pytest.mark.asyncio
    async def test_second_ensure_only_reads(self, reconciler, store, claims):
        first = await reconciler.ensure("u1", claims)
        creates_after_first = len(store.creates)
        reads_after_first = store.reads

        second = await reconciler.ensure("u1", claims)

        assert second == first
        assert len(store.creates) == creates_after_first == 1
        assert store.reads - reads_after_first == 2
