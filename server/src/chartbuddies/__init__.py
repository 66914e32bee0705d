"""Chartbuddies profile gate - sign-in with self-healing profile provisioning."""

__version__ = "0.1.0"

from chartbuddies.exceptions import ProfileNotFoundError

__all__ = ["__version__", "ProfileNotFoundError"]
