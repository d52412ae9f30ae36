"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./fines.db"

    # Service
    service_name: str = "fine-service"
    log_level: str = "INFO"

    # Request limits
    business_flags_max_bytes: int = 1024


settings = Settings()
