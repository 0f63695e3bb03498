"""Configuration settings for the PARTTH dispute service."""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_key: str = ""

    # Key-value store
    kv_table: str = "kv_store_1c8a6aaa"
    store_backend: str = "supabase"  # "supabase" or "memory"

    # Dispute engine
    auto_resolve_min_confidence: float = 70.0
    mediation_sla_hours: int = 48

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and (self.supabase_service_key or self.supabase_key))


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
