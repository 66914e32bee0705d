"""Role and hospital scope checks on a resolved profile."""

from collections.abc import Iterable

from chartbuddies.models.identity import Profile, Role


def has_role(profile: Profile | None, roles: Iterable[Role]) -> bool:
    """Check whether the profile holds one of the given roles."""
    if profile is None:
        return False
    return profile.role in set(roles)


def can_access_hospital(profile: Profile | None, hospital_id: str) -> bool:
    """Check whether the profile may see a hospital's data.

    Superadmins see every hospital; everyone else only their own.
    """
    if profile is None:
        return False
    if profile.role == Role.SUPERADMIN:
        return True
    return profile.hospital_id == hospital_id
