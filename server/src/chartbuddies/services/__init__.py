"""Services for the profile gate."""

from chartbuddies.services.identity_provider import SupabaseAuthGateway

__all__ = ["SupabaseAuthGateway"]
