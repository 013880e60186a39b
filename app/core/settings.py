"""
Core settings and environment variables for Civic Desk.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "Civic Desk"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - Frontend URLs allowed to access this API (comma separated)
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON

    # Mock DB mode for local development without Firebase credentials.
    # Empty MOCK_DB_PATH keeps the mock purely in memory.
    USE_MOCK_DB: bool = False
    MOCK_DB_PATH: str = "./mock_db.json"

    # Nearby complaints
    DEFAULT_NEARBY_RADIUS_KM: float = 5.0
    MAX_NEARBY_RADIUS_KM: float = 50.0

    # Civic credits
    CITIZEN_STARTING_CREDITS: int = 100
    LEDGER_MAX_RETRIES: int = 1  # Retries after transient storage contention (ratings and triage)

    # Reverse geocoding (Nominatim) fills a missing complaint address from its coordinates
    GEOCODING_ENABLED: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

    @property
    def cors_origins(self):
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
