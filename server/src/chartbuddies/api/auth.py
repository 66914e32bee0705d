"""API authentication dependencies."""

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from chartbuddies.config import get_settings
from chartbuddies.db.client import DatabaseClient, PrivilegedProfileClient
from chartbuddies.manager.profile_reconciler import ProfileReconciler
from chartbuddies.manager.profile_resolver import ProfileResolver
from chartbuddies.models.identity import AuthenticatedUser
from chartbuddies.services.identity_provider import SupabaseAuthGateway

logger = logging.getLogger(__name__)

_auth_gateway: SupabaseAuthGateway | None = None
_privileged_client: PrivilegedProfileClient | None = None
_db_client: DatabaseClient | None = None


def get_auth_gateway() -> SupabaseAuthGateway:
    """Get or create the Supabase Auth gateway."""
    global _auth_gateway
    if _auth_gateway is None:
        _auth_gateway = SupabaseAuthGateway()
    return _auth_gateway


def get_db_client() -> DatabaseClient:
    """Get or create the anonymous database client used for health checks."""
    global _db_client
    if _db_client is None:
        _db_client = DatabaseClient()
    return _db_client


def get_privileged_client() -> PrivilegedProfileClient:
    """Get or create the privileged profile client."""
    global _privileged_client
    if _privileged_client is None:
        _privileged_client = PrivilegedProfileClient()
    return _privileged_client


ResolverFactory = Callable[[str], ProfileResolver]
ReconcilerFactory = Callable[[str], ProfileReconciler]


def get_resolver_factory(
    privileged: Annotated[PrivilegedProfileClient, Depends(get_privileged_client)],
) -> ResolverFactory:
    """Build resolvers whose direct reads run under a user's session."""

    def build(access_token: str) -> ProfileResolver:
        return ProfileResolver(DatabaseClient(access_token=access_token), privileged)

    return build


def get_reconciler_factory(
    privileged: Annotated[PrivilegedProfileClient, Depends(get_privileged_client)],
    build_resolver: Annotated[ResolverFactory, Depends(get_resolver_factory)],
) -> ReconcilerFactory:
    """Build reconcilers bound to a user's session."""
    delay = get_settings().profile_propagation_delay

    def build(access_token: str) -> ProfileReconciler:
        return ProfileReconciler(
            build_resolver(access_token),
            privileged,
            propagation_delay=delay,
        )

    return build


async def get_bearer_token(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Extract the bearer token from the Authorization header.

    Raises:
        HTTPException: If the header is missing or malformed
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
        )

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
        )
    return token


async def get_current_user(
    token: Annotated[str, Depends(get_bearer_token)],
    gateway: Annotated[SupabaseAuthGateway, Depends(get_auth_gateway)],
) -> AuthenticatedUser:
    """Resolve the user owning the bearer token.

    Raises:
        HTTPException: If the token is invalid or expired
    """
    user = await gateway.get_user(token)
    if user is None:
        logger.warning("Rejected invalid or expired token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return user


# Type aliases for dependency injection
CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
BearerToken = Annotated[str, Depends(get_bearer_token)]
