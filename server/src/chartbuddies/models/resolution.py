"""Outcome types for profile resolution and reconciliation."""

from enum import Enum

from pydantic import BaseModel, Field

from chartbuddies.models.identity import Profile


class ResolutionStatus(str, Enum):
    """Result tag of a single resolve attempt."""

    FOUND = "found"
    ABSENT = "absent"
    TRANSIENT_ERROR = "transient_error"


class ResolutionSource(str, Enum):
    """Which read path produced the outcome."""

    DIRECT = "direct"
    PRIVILEGED = "privileged"


class ResolutionOutcome(BaseModel):
    """Tagged result of ProfileResolver.resolve."""

    status: ResolutionStatus
    source: ResolutionSource | None = None  # Set only when found
    profile: Profile | None = None
    reason: str | None = None

    @classmethod
    def found(cls, profile: Profile, source: ResolutionSource) -> "ResolutionOutcome":
        return cls(status=ResolutionStatus.FOUND, source=source, profile=profile)

    @classmethod
    def absent(cls) -> "ResolutionOutcome":
        return cls(status=ResolutionStatus.ABSENT)

    @classmethod
    def transient_error(cls, reason: str) -> "ResolutionOutcome":
        return cls(status=ResolutionStatus.TRANSIENT_ERROR, reason=reason)

    @property
    def is_found(self) -> bool:
        return self.status == ResolutionStatus.FOUND


class ReconcileState(str, Enum):
    """States of the profile reconciliation protocol."""

    START = "start"
    AWAIT_PROPAGATION = "await_propagation"
    ATTEMPT_CREATE = "attempt_create"
    AWAIT_PROPAGATION_AFTER_CREATE = "await_propagation_after_create"
    RACE_RECOVER = "race_recover"
    FINAL_RESOLVE = "final_resolve"
    DONE = "done"
    FAILED = "failed"


class ReconcileResult(BaseModel):
    """Terminal result of one ensure run."""

    user_id: str
    profile: Profile | None = None
    path: list[ReconcileState] = Field(default_factory=list)
    create_attempted: bool = False

    @property
    def succeeded(self) -> bool:
        return self.profile is not None
