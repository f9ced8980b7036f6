from pydantic import Field
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # Project
    PROJECT_NAME: str = "Snooker House API"
    PROJECT_VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # Security
    SECRET_KEY: str = Field(...)
    ALGORITHM: str = "HS256"

    # Auth sessions (hours)
    SESSION_EXPIRE_HOURS: int = 168
    REMEMBER_ME_EXPIRE_HOURS: int = 720
    AUTH_SESSION_CLEANUP_INTERVAL_SECONDS: int = 3600
    INACTIVE_SESSION_RETENTION_DAYS: int = 7

    # One-time passcodes and account locking
    OTP_EXPIRE_MINUTES: int = 10
    OTP_RESEND_COOLDOWN_SECONDS: int = 120
    OTP_MAX_ATTEMPTS: int = 3
    MAX_FAILED_ATTEMPTS: int = 5
    ACCOUNT_LOCK_MINUTES: int = 30

    # Database
    DATABASE_URL: str = Field(...)

    # Optional settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    SUPPORT_EMAIL: str = "support@example.com"
    REDIS_ENABLED: bool = True
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = []

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
