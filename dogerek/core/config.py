from pydantic_settings import BaseSettings, NoDecode
from pydantic import Field, validator
from typing import Annotated, List
import secrets


class Settings(BaseSettings):
    # Application settings
    APP_NAME: str = "Dogerek API"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    LOG_LEVEL: str = "INFO"

    # Security settings
    JWT_SECRET_KEY: str = Field(default_factory=lambda: secrets.token_urlsafe(32))
    JWT_ALGORITHM: str = "HS256"

    # CORS settings
    # Comma-separated in the environment, e.g. "http://a.uz,http://b.uz"
    ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = ["*"]

    # Database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./dogerek.db"
    DATABASE_ECHO: bool = False

    # HEMIS registry settings
    HEMIS_API_URL: str = "https://student.karsu.uz/rest/v1"
    HEMIS_TOKEN: str = ""
    HEMIS_PAGE_SIZE: int = 200
    HEMIS_TIMEOUT: int = 30  # seconds per request
    HEMIS_MAX_RETRIES: int = 3
    HEMIS_RETRY_DELAY: float = 5.0
    HEMIS_PACING_EVERY: int = 5  # pages between pacing pauses
    HEMIS_PACING_DELAY: float = 2.0
    HEMIS_INSERT_BATCH_SIZE: int = 500

    @validator("ALLOWED_ORIGINS", pre=True)
    def parse_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @validator("DATABASE_URL")
    def validate_database_url(cls, v):
        if not v:
            raise ValueError("DATABASE_URL is required")
        return v

    @validator("HEMIS_API_URL")
    def validate_hemis_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError("HEMIS_API_URL must start with http:// or https://")
        return v.rstrip("/")

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
