"""Pydantic models for the profile gate - the contracts."""

from chartbuddies.models.auth import HospitalAccess, LoginRequest, LoginResponse
from chartbuddies.models.identity import (
    AuthenticatedUser,
    IdentityClaims,
    Profile,
    Role,
)
from chartbuddies.models.resolution import (
    ReconcileResult,
    ReconcileState,
    ResolutionOutcome,
    ResolutionSource,
    ResolutionStatus,
)

__all__ = [
    "AuthenticatedUser",
    "HospitalAccess",
    "IdentityClaims",
    "LoginRequest",
    "LoginResponse",
    "Profile",
    "ReconcileResult",
    "ReconcileState",
    "ResolutionOutcome",
    "ResolutionSource",
    "ResolutionStatus",
    "Role",
]
