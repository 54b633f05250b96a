from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    APP_NAME: str = "Bookswap API"

    # Comma separated list of allowed frontend origins
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:8080"

    LOG_LEVEL: str = "INFO"

    # Pagination defaults for list endpoints
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Realtime consumers log a warning once this many events are queued
    REALTIME_QUEUE_WARN_SIZE: int = 100

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
