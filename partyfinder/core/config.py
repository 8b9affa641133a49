from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings with type-safe configuration management."""

    # Database Configuration
    DATABASE_URL: str = "postgresql+asyncpg://postgres:postgres@db:5432/partyfinder"

    # Redis Configuration
    REDIS_URL: str = "redis://redis:6379/0"
    CACHE_PREFIX: str = "partyfinder"

    # Security Configuration
    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    ALGORITHM: str = "HS256"
    RATE_LIMIT_ENABLED: bool = True

    # CORS Configuration
    ALLOWED_ORIGINS: str = "http://localhost:8081,http://localhost:8000"

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: Optional[str] = None

    # Event rules
    CHECKIN_RADIUS_METERS: float = 100.0
    SHOW_OWN_FRIENDS_EVENTS: bool = False
    MEDIA_VIEW_PUBLIC: bool = True

    # Media storage
    MEDIA_ROOT: str = "uploads"
    MAX_UPLOAD_BYTES: int = 50 * 1024 * 1024

    # Client
    API_BASE_URL: str = "http://localhost:8000"
    HTTP_TIMEOUT_SECONDS: float = 15.0

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def allowed_origins_list(self) -> List[str]:
        """Convert comma-separated ALLOWED_ORIGINS string to list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]


# Create a single instance to be imported throughout the app
settings = Settings()
