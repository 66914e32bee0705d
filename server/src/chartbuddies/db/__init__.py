"""Supabase access for the profile store."""

from chartbuddies.db.client import DatabaseClient, PrivilegedProfileClient

__all__ = ["DatabaseClient", "PrivilegedProfileClient"]
