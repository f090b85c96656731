# hv_maintenance/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    # App Config
    APP_NAME: str = "HV Maintenance Dashboard"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database Config (in-memory by default, records live for the process lifetime)
    DATABASE_URL: str = "sqlite://"
    SEED_SAMPLE_DATA: bool = True

    # Gemini (AI Bridge)
    GEMINI_API_KEY: str = ""
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_TEXT_MODEL: str = "gemini-3-flash-preview"
    GEMINI_IMAGE_MODEL: str = "gemini-2.5-flash-image"
    AI_TIMEOUT_SECONDS: float = 60.0

    # Reports
    REPORT_HEADER: str = "HV TEAM - MAINTENANCE REPORT"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=True # Matches .env case
    )

@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
