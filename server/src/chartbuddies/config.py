"""Configuration and environment loading for the Chartbuddies profile gate."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Supabase
    supabase_url: str
    supabase_key: str
    supabase_service_role_key: str | None = None  # Used for privileged RPCs when set

    # Profile store
    profile_table: str = "user_profiles"
    profile_read_function: str = "get_user_profile_safe"
    profile_create_function: str = "create_user_profile_safe"
    profile_propagation_delay_ms: int = 500  # Wait for signup triggers to commit

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    @property
    def profile_propagation_delay(self) -> float:
        """Propagation delay in seconds."""
        return self.profile_propagation_delay_ms / 1000


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
