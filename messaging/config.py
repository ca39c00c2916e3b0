# messaging/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    PROJECT_NAME: str = "Messaging API"
    PROJECT_VERSION: str = "1.0.0"
    PROJECT_DESCRIPTION: str = "Conversation and message fan-out service"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    DATABASE_URL: str = "sqlite+aiosqlite:///:memory:"

    MAX_ATTACHMENTS_PER_MESSAGE: int = 5
    MAX_ATTACHMENT_SIZE_BYTES: int = 25 * 1024 * 1024
    LAST_MESSAGE_PREVIEW_LENGTH: int = 100
    NOTIFICATION_BODY_LENGTH: int = 100
    DELETED_MESSAGE_PLACEHOLDER: str = "[Message deleted]"
    TYPING_INACTIVITY_SECONDS: float = 3.0

    S3_BUCKET_NAME: str = "messaging-attachments"
    S3_ENDPOINT_URL: str | None = None
    S3_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: str | None = None
    AWS_SECRET_ACCESS_KEY: str | None = None

    model_config = SettingsConfigDict(env_file=".env", extra="allow")
