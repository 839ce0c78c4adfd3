import os
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    # Application Settings
    APP_NAME: str = "Complaints API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    BASE_URL: str = os.getenv("BASE_URL", "http://localhost:8000")

    # Database Settings
    DB_HOST: str = os.getenv("DB_HOST", "localhost")
    DB_PORT: int = int(os.getenv("DB_PORT", "3306"))
    DB_USER: str = os.getenv("DB_USER", "root")
    DB_PASSWORD: str = os.getenv("DB_PASSWORD", "")
    DB_NAME: str = os.getenv("DB_NAME", "complaints")
    # Full SQLAlchemy URL; takes precedence over the DB_* parts when set
    DATABASE_URL_OVERRIDE: Optional[str] = os.getenv("DATABASE_URL")

    # JWT Settings - access and refresh tokens are signed with separate secrets
    SECRET_KEY: str = os.getenv("SECRET_KEY", "complaints-access-secret-change-me")
    REFRESH_SECRET_KEY: str = os.getenv("REFRESH_SECRET_KEY", "complaints-refresh-secret-change-me")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))
    REFRESH_TOKEN_EXPIRE_DAYS: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))

    # Optional first admin, created at startup when no admin exists
    BOOTSTRAP_ADMIN_NATIONAL_ID: Optional[str] = os.getenv("BOOTSTRAP_ADMIN_NATIONAL_ID")
    BOOTSTRAP_ADMIN_PASSWORD: Optional[str] = os.getenv("BOOTSTRAP_ADMIN_PASSWORD")

    # CORS Settings
    CORS_ORIGINS: List[str] = ["*"]

    # Cloudinary
    CLOUDINARY_CLOUD_NAME: str = os.getenv("CLOUDINARY_CLOUD_NAME", "")
    CLOUDINARY_API_KEY: str = os.getenv("CLOUDINARY_API_KEY", "")
    CLOUDINARY_API_SECRET: str = os.getenv("CLOUDINARY_API_SECRET", "")
    CLOUDINARY_FOLDER_PREFIX: str = os.getenv("CLOUDINARY_FOLDER_PREFIX", "complaints-app")

    # Upload Settings
    COMPLAINT_IMAGE_MAX_FILES: int = 5
    COMPLAINT_IMAGE_MAX_SIZE: int = 5 * 1024 * 1024  # 5MB
    COMPLAINT_IMAGE_EXTENSIONS: List[str] = ["jpg", "jpeg", "png", "pdf"]
    PROFILE_IMAGE_MAX_SIZE: int = 2 * 1024 * 1024  # 2MB
    PROFILE_IMAGE_EXTENSIONS: List[str] = ["jpg", "jpeg", "png"]

    # Pagination
    DEFAULT_PAGE_SIZE: int = 10

    # Redis
    REDIS_ENABLED: bool = os.getenv("REDIS_ENABLED", "False").lower() == "true"
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return f"mysql+pymysql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
