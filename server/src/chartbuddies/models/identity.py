"""Identity and profile models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Permission level of a profile.

    SUPERADMIN: Sees every hospital
    HOSPITAL_ADMIN: Manages one hospital
    DOCTOR: Clinical staff
    NURSE: Clinical staff
    """

    SUPERADMIN = "superadmin"
    HOSPITAL_ADMIN = "hospital_admin"
    DOCTOR = "doctor"
    NURSE = "nurse"


class Profile(BaseModel):
    """Application-level view of a user, one row of user_profiles."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: str
    full_name: str
    role: Role
    hospital_id: str | None = None


class IdentityClaims(BaseModel):
    """Claims supplied by the identity provider at signup time."""

    email: str | None = None
    full_name: str | None = None

    @classmethod
    def from_user(cls, email: str | None, user_metadata: dict[str, Any] | None) -> "IdentityClaims":
        """Build claims from a provider user's email and metadata."""
        metadata = user_metadata or {}
        return cls(email=email, full_name=metadata.get("full_name"))

    @property
    def display_name(self) -> str:
        """Name to store on a newly created profile."""
        return self.full_name or self.email or "User"


class AuthenticatedUser(BaseModel):
    """A user as reported by the identity provider."""

    id: str
    claims: IdentityClaims = Field(default_factory=IdentityClaims)
