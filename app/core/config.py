"""Core application configuration and settings.

Handles environment variables, database connection details, token and
password-hashing parameters, and general application settings.
"""
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings


# Load environment variables (real environment always wins over .env)
ROOT = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=ROOT / ".env", override=False)

DEVELOPMENT_SECRET = "development-secret-key-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # MongoDB
    mongo_uri: str = Field(
        default_factory=lambda: (
            os.getenv("MONGO_URI")
            or os.getenv("DATABASE_URL")
            or "mongodb://localhost:27017"
        ),
        alias="MONGO_URI"
    )
    mongo_db: str = Field(default="yoga_studio", alias="MONGO_DB")
    mongo_timeout_ms: int = Field(default=5000, alias="MONGO_TIMEOUT_MS")

    # JWT Authentication
    jwt_secret_key: str = Field(default=DEVELOPMENT_SECRET, alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=1440, alias="ACCESS_TOKEN_EXPIRE_MINUTES")  # 24 hours

    # Passwords
    bcrypt_rounds: int = Field(default=12, alias="BCRYPT_ROUNDS")
    min_password_length: int = Field(default=6, alias="MIN_PASSWORD_LENGTH")

    # Studio defaults
    default_class_capacity: int = Field(default=20, alias="DEFAULT_CLASS_CAPACITY")

    # Application Settings
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # API Settings
    api_prefix: str = Field(default="/api", alias="API_PREFIX")
    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://localhost:3000",
            "http://127.0.0.1:5173",
        ],
        alias="CORS_ORIGINS"
    )

    class Config:
        case_sensitive = False
        env_file = ".env"
        populate_by_name = True
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate_required_settings(self):
        """Validate that required settings are present."""
        if not self.mongo_uri:
            raise ValueError("MONGO_URI not set. Define MONGO_URI in .env.")
        if self.is_production and self.jwt_secret_key == DEVELOPMENT_SECRET:
            raise ValueError(
                "JWT_SECRET_KEY must be set to a secure value in production."
            )


# Global settings instance
settings = Settings()


# Validate settings on module import (only in non-test environments)
if settings.environment != "test":
    try:
        settings.validate_required_settings()
    except ValueError as e:
        print(f"Configuration Error: {e}")
        # Don't raise in development to allow partial setup
        if settings.is_production:
            raise
