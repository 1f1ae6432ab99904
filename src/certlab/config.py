"""Engine settings via pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables with CERTLAB_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="CERTLAB_",
        env_file=".env",
        case_sensitive=False,
    )

    # --- Core ---
    app_version: str = "0.1.0"
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///./certlab.db"
    db_echo: bool = False
    log_level: str = "INFO"
    log_format: str = "json"
    default_tenant_id: int = 1

    # --- Daily rewards / streak freezes ---
    daily_reward_cycle_days: int = 7
    max_streak_freezes: int = 2
    weekly_streak_freezes: int = 1

    # --- Orchestration ---
    process_quests_on_quiz_completion: bool = True
    serialize_per_user: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached engine settings."""
    return Settings()
