from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: Optional[str] = None
    PGHOST: Optional[str] = None
    PGDATABASE: Optional[str] = None
    PGUSER: Optional[str] = None
    PGPASSWORD: Optional[str] = None
    PGSSLMODE: str = "require"

    # Security
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Booking credentials
    BOOKING_TOKEN_LENGTH: int = 12
    BOOKING_TOKEN_MAX_ATTEMPTS: int = 5
    BOOKING_TIMEZONE: str = "UTC"

    # QR codes
    QR_ERROR_CORRECTION: str = "M"
    QR_BOX_SIZE: int = 10
    QR_BORDER: int = 1

    # Application
    PROJECT_NAME: str = "Monument Ticketing System"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "standard"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]
    SEED_SAMPLE_DATA: bool = True

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.PGHOST:
            return f"postgresql://{self.PGUSER}:{self.PGPASSWORD}@{self.PGHOST}/{self.PGDATABASE}?sslmode={self.PGSSLMODE}"
        return "sqlite:///./monument_ticketing.db"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

settings = Settings()
