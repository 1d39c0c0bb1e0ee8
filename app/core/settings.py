"""
Core settings and environment variables for CyberGuard.
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
    APP_NAME: str = "CyberGuard"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - Frontend URLs allowed to access this API
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON
    REPORTS_COLLECTION: str = "reports"

    # In-process report store for local development without Firebase credentials
    USE_MOCK_DB: bool = False

    # Geospatial aggregation & escalation
    ESCALATION_RADIUS_KM: float = 1.0
    CRITICAL_AREA_MIN_REPORTS: int = 3
    CELL_PRECISION: int = 4  # decimal places, ~11 m buckets

    # Authority channel (simulated cybercrime portal)
    AUTHORITY_NAME: str = "cybercrime authorities"

    # In-process intake sessions; the oldest is dropped once the cap is reached
    MAX_CONVERSATION_SESSIONS: int = 10000

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

    @property
    def cors_origins_list(self) -> list:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
