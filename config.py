"""
Configuration settings for the signature service
"""

import os
from typing import List
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Dealer Signatures"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    SECRET_KEY: str = os.getenv("SECRET_KEY", "change-this-secret-key")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./signatures.db")
    AUTO_CREATE_TABLES: bool = os.getenv("AUTO_CREATE_TABLES", "true").lower() == "true"
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "20"))
    DB_POOL_TIMEOUT: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    DB_POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", "3600"))

    # JWT
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_HOURS: int = 24

    # Security
    ALLOWED_HOSTS: List[str] = ["*"]
    ALLOWED_ORIGINS: List[str] = ["*"]

    # Blob storage
    STORAGE_PATH: str = os.getenv("STORAGE_PATH", "./storage")
    SIGNATURE_BUCKET: str = "signature-documents"
    MAX_DOCUMENT_SIZE: int = 25 * 1024 * 1024  # 25MB
    MAX_SIGNATURE_IMAGE_SIZE: int = 5 * 1024 * 1024  # 5MB

    # Signature requests
    SIGNATURE_REQUEST_EXPIRY_DAYS: int = 7
    STAMPING_TIMEOUT_SECONDS: float = 30.0
    SIGNED_LABEL_FONT_SIZE: float = 8.0

    # Email (Resend)
    APP_BASE_URL: str = os.getenv("APP_BASE_URL", "https://dealergrowth.solutions")
    RESEND_API_KEY: str = os.getenv("RESEND_API_KEY", "")
    DEFAULT_FROM_EMAIL: str = "Dealer Growth Solutions <noreply@dealergrowth.solutions>"

    # Celery
    NOTIFICATIONS_VIA_CELERY: bool = os.getenv("NOTIFICATIONS_VIA_CELERY", "false").lower() == "true"
    CELERY_BROKER_URL: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    CELERY_RESULT_BACKEND: str = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")
    CELERY_TASK_ALWAYS_EAGER: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def signature_storage_root(self) -> str:
        return os.path.join(self.STORAGE_PATH, self.SIGNATURE_BUCKET)


# Create global settings instance
settings = Settings()
