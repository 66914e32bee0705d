"""FastAPI routes for sign-in and the current user's profile."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from chartbuddies import __version__
from chartbuddies.api.auth import (
    BearerToken,
    CurrentUser,
    ReconcilerFactory,
    ResolverFactory,
    get_auth_gateway,
    get_db_client,
    get_reconciler_factory,
    get_resolver_factory,
)
from chartbuddies.db.client import DatabaseClient
from chartbuddies.exceptions import InvalidCredentialsError, ProfileNotFoundError
from chartbuddies.manager.access import can_access_hospital
from chartbuddies.models.auth import HospitalAccess, LoginRequest, LoginResponse
from chartbuddies.models.identity import Profile
from chartbuddies.services.identity_provider import SupabaseAuthGateway

logger = logging.getLogger(__name__)

router = APIRouter()


async def _current_profile(
    token: str,
    user_id: str,
    build_resolver: ResolverFactory,
) -> Profile | None:
    outcome = await build_resolver(token).resolve(user_id)
    return outcome.profile if outcome.is_found else None


@router.get("/health")
async def health(
    db: Annotated[DatabaseClient, Depends(get_db_client)],
) -> dict:
    """Report whether the profile store answers."""
    db_health = await db.health_check()
    if not db_health["healthy"]:
        logger.warning(f"Health check: database unhealthy: {db_health['error']}")
    return {
        "status": "ok" if db_health["healthy"] else "degraded",
        "version": __version__,
        "database": db_health,
    }


@router.post("/auth/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    gateway: Annotated[SupabaseAuthGateway, Depends(get_auth_gateway)],
    build_reconciler: Annotated[ReconcilerFactory, Depends(get_reconciler_factory)],
) -> LoginResponse:
    """Sign in and make sure the user has a profile."""
    try:
        user, access_token = await gateway.sign_in(request.email, request.password)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
        )

    try:
        profile = await build_reconciler(access_token).ensure(user.id, user.claims)
    except ProfileNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        )

    logger.info(f"User {user.id} signed in as {profile.role.value}")
    return LoginResponse(
        access_token=access_token,
        user_id=user.id,
        profile=profile,
    )


@router.get("/auth/me", response_model=Profile)
async def get_me(
    user: CurrentUser,
    token: BearerToken,
    build_resolver: Annotated[ResolverFactory, Depends(get_resolver_factory)],
) -> Profile:
    """Get the current user's profile without creating one."""
    profile = await _current_profile(token, user.id, build_resolver)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found",
        )
    return profile


@router.get("/auth/me/hospitals/{hospital_id}", response_model=HospitalAccess)
async def check_hospital_access(
    hospital_id: str,
    user: CurrentUser,
    token: BearerToken,
    build_resolver: Annotated[ResolverFactory, Depends(get_resolver_factory)],
) -> HospitalAccess:
    """Check whether the current user may see a hospital."""
    profile = await _current_profile(token, user.id, build_resolver)
    return HospitalAccess(
        hospital_id=hospital_id,
        allowed=can_access_hospital(profile, hospital_id),
    )
