"""Shared pytest setup for the profile gate tests."""

import os

import pytest


@pytest.fixture(autouse=True, scope="session")
def _supabase_env():
    """Provide placeholder Supabase credentials so Settings can load.

    Values already exported in the environment win, which lets the suite
    point at a real project when one is configured.
    """
    placeholders = {
        "SUPABASE_URL": "https://test.supabase.co",
        "SUPABASE_KEY": "test-supabase-key",
    }
    added = [key for key in placeholders if key not in os.environ]
    for key in added:
        os.environ[key] = placeholders[key]

    # Settings are cached; drop any instance built before the env was ready
    from chartbuddies.config import get_settings
    get_settings.cache_clear()

    yield

    for key in added:
        os.environ.pop(key, None)
    get_settings.cache_clear()
