"""
Application Configuration for Relay Chat Backend
"""
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

# Get the project root directory (where .env file is located)
PROJECT_ROOT = Path(__file__).parent.parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database Configuration
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432
    DATABASE_NAME: str = "relay_chat"
    DATABASE_USERNAME: str = "postgres"
    DATABASE_PASSWORD: str = "postgres"  # Default for development
    DATABASE_URL_OVERRIDE: Optional[str] = None

    @property
    def DATABASE_URL(self) -> str:
        """Construct database URL from components"""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return (
            f"postgresql://{self.DATABASE_USERNAME}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    # JWT Configuration
    JWT_SECRET_KEY: str = "dev-secret-key-change-in-production"  # Default for development
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days

    # Firebase Configuration (identity provider)
    FIREBASE_PROJECT_ID: str = "relay-chat"
    GOOGLE_APPLICATION_CREDENTIALS: str = "firebase-admin-sdk.json"

    # API Configuration
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8393
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "Relay Chat API"
    DEBUG: bool = True

    # CORS Configuration
    ALLOWED_ORIGINS: str = "*"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from string"""
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    # Object storage
    MEDIA_ROOT: str = str(PROJECT_ROOT / "media")
    MEDIA_BASE_URL: str = "/media"
    MEDIA_BUCKET: str = "chat-media"
    MAX_CHAT_MEDIA_MB: int = 50
    MAX_AVATAR_MB: int = 5

    # Profile search
    SEARCH_RESULT_LIMIT: int = 10
    SEARCH_RATE_LIMIT: str = "30/minute"

    # Environment
    ENVIRONMENT: str = "development"

    # Logging
    LOG_LEVEL: str = "INFO"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"


# Global settings instance
settings = Settings()
