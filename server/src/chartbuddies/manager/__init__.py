"""Profile resolution and reconciliation."""

from chartbuddies.manager.access import can_access_hospital, has_role
from chartbuddies.manager.profile_reconciler import ProfileReconciler
from chartbuddies.manager.profile_resolver import (
    PrivilegedProfileOps,
    ProfileReader,
    ProfileResolver,
)

__all__ = [
    "PrivilegedProfileOps",
    "ProfileReader",
    "ProfileReconciler",
    "ProfileResolver",
    "can_access_hospital",
    "has_role",
]
