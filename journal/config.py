"""
Configuration settings for the Football Journal backend
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Server Configuration
    APP_NAME: str = "Football Journal Backend"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    LOG_LEVEL: str = "INFO"

    # Firebase Configuration
    FIREBASE_CREDENTIALS_PATH: str = "./firebase-credentials.json"
    # Support for raw JSON credentials (env var)
    FIREBASE_CREDENTIALS_JSON: str = ""
    FIREBASE_STORAGE_BUCKET: str = ""
    FIREBASE_EMULATOR_HOST: str = ""
    DEV_MODE: bool = False

    # JWT Configuration
    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # CORS Configuration
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    @property
    def allowed_origins_list(self) -> List[str]:
        """Convert comma-separated origins to list"""
        origins = [origin.strip()
                   for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]
        if self.FRONTEND_URL and self.FRONTEND_URL not in origins:
            origins.append(self.FRONTEND_URL)
        return origins

    # Public URLs
    # Relative media paths ("/uploads/...") are prefixed with this in responses
    PUBLIC_BASE_URL: str = "http://localhost:5000"
    FRONTEND_URL: str = "http://localhost:3000"

    # Media / uploads
    UPLOAD_DIR: str = "./uploads"
    STORAGE_ROOT_FOLDER: str = "football-journal"
    DEFAULT_AUTHOR_IMAGE: str = "/uploads/profile/default.jpg"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    MAX_CONTENT_IMAGES: int = 10

    # Search
    SEARCH_MAX_LIMIT: int = 50

    # Email (Brevo transactional API)
    BREVO_API_KEY: str = ""
    BREVO_API_URL: str = "https://api.brevo.com/v3/smtp/email"
    EMAIL_FROM: str = ""
    EMAIL_SENDER_NAME: str = "Pure Tactics Cartel"

    model_config = {"env_file": ".env",
                    "case_sensitive": True, "extra": "allow"}


# Global settings instance
settings = Settings()
