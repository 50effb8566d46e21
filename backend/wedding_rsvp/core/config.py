from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Application
    PROJECT_NAME: str = "Wedding RSVP"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"

    # Database
    DATABASE_URL: str = "sqlite:///./wedding.db"
    SQL_ECHO: bool = False

    # CORS
    CORS_ORIGINS: list = ["*"]

    # Household codes
    HOUSEHOLD_CODE_LENGTH: int = 6
    HOUSEHOLD_CODE_ATTEMPTS: int = 10  # Retries before giving up on a free code

    # Guest import
    IMPORT_BATCH_SIZE: int = 10  # Rows per chunk on the CSV upload path
    IMPORT_TIMEOUT_SECONDS: float = 60.0  # Whole-upload deadline on the client
    API_BASE_URL: str = "http://localhost:8000"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = "app.log"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

settings = Settings()
