# chat_server/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    PROJECT_NAME: str = "Chat Sync API"
    PROJECT_VERSION: str = "1.0.0"
    PROJECT_DESCRIPTION: str = "Rooms, direct messages, friends and live presence"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_SECRET_KEY: str
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    REDIS_HOST: str
    REDIS_PORT: int
    DATABASE_URL: str = "sqlite+aiosqlite:///:memory:"
    LOG_LEVEL: str = "INFO"

    MAIN_ROOM_NAME: str = "main"
    MESSAGE_MAX_LENGTH: int = 2000
    HISTORY_PAGE_SIZE: int = 50

    model_config = SettingsConfigDict(env_file=".env", extra="allow")
