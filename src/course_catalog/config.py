from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    api_title: str = Field("Course Catalog API", description="OpenAPI title")
    host: str = Field("0.0.0.0", description="Interface the server binds to")
    port: int = Field(3001, description="Port the server listens on")
    log_level: str = Field("INFO", description="Root logging level")
    jwt_secret: str = Field("your-secret-key", description="HMAC key for tokens")
    jwt_algorithm: str = Field("HS256", description="JWT signing algorithm")
    token_expire_hours: int = Field(24, description="Session token lifetime")
    store_backend: str = Field("memory", description="memory or sqlalchemy")
    database_url: str = Field("sqlite://", description="Used by the sqlalchemy backend")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


settings = Settings()
