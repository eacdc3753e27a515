from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./users.db"
    SERVICE_NAME: str = "users-service"
    LOG_LEVEL: str = "INFO"
    CREATE_SCHEMA: bool = True

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 3600
    DB_POOL_TIMEOUT: int = 30  # seconds

    # none | console | otlp
    TRACING_EXPORTER: str = "none"
    OTLP_ENDPOINT: str = "http://localhost:4318/v1/traces"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
