"""
Docstring for quillpost.config

Конфигурация приложения.
Всё берется из .env файла или переменных окружения.
"""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Pydantic Settings конфиг
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str

    # Redis (реестр refresh-токенов)
    REDIS_URL: str

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    EMAIL_VERIFICATION_EXPIRE_HOURS: int = 24

    # Server
    DEBUG: bool = False
    API_PREFIX: str = "/api"
    APP_URL: str = "http://localhost:4000"
    CORS_ORIGINS: List[str] = ["http://localhost:4000"]
    LOG_LEVEL: str = "INFO"

    # RATE-LIMITS
    REGISTER_RATE_LIMIT: str = "5/minute" # Значения по-умолчанию, на случай
    LOGIN_RATE_LIMIT: str = "10/minute"   # если в .env не указаны иные значения

    # Почта. Без SMTP_HOST ссылка подтверждения просто пишется в лог
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    MAIL_FROM_NAME: str = "Quillpost"

    # Вход через Google
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_TOKENINFO_URL: str = "https://oauth2.googleapis.com/tokeninfo"

    # Посты и комментарии
    MODERATION_ROLES: List[str] = ["ADMIN"]
    COMMENT_TREE_DEPTH: int = 3
    DEFAULT_PAGE_LIMIT: int = 10
    MAX_PAGE_LIMIT: int = 100

# Создаем глобальный объект settings
settings = Settings()
