"""Application configuration"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # Supabase (form + version storage, auth)
    supabase_url: str
    supabase_service_role_key: str
    supabase_anon_key: str

    # Application
    environment: str = "development"
    cors_origins: list[str] = ["*"]

    # Compiled artifact
    artifact_prefix: str = "qform-"
    artifact_storage_key: str = "qform-answers"
    redirect_delay_ms: int = 2000

    # Address lookup provider used when a form does not configure its own
    postcode_api_url: str = ""
    postcode_api_key: str = ""
    postcode_timeout_seconds: float = 10.0

    # Submission webhooks (best effort, never retried)
    webhook_timeout_seconds: float = 10.0

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
