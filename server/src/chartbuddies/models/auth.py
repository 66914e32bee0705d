"""Request and response models for the auth endpoints."""

from pydantic import BaseModel

from chartbuddies.models.identity import Profile


class LoginRequest(BaseModel):
    """Email/password sign-in."""

    email: str
    password: str


class LoginResponse(BaseModel):
    """Session token plus the reconciled profile."""

    access_token: str
    token_type: str = "bearer"
    user_id: str
    profile: Profile


class HospitalAccess(BaseModel):
    """Whether the current user may see a hospital."""

    hospital_id: str
    allowed: bool
