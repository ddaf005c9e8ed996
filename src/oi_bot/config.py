from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache

class Settings(BaseSettings):
    SLACK_SIGNING_SECRET: str = Field(..., description="Slack app signing secret")
    OPENAI_API_KEY: str = Field(..., description="OpenAI API Key")
    OPENAI_MODEL: str = "gpt-3.5-turbo"
    OPENAI_TIMEOUT_SECONDS: float = 60.0
    CALLBACK_TIMEOUT_SECONDS: float = Field(60.0, description="Timeout for POSTs to response_url")
    DB_PATH: str = Field("./oi.sqlite", description="Path to the event bus SQLite database")
    LOG_LEVEL: str = "INFO"

    # Event bus / worker
    EVENT_MAX_ATTEMPTS: int = Field(3, ge=1, description="Deliveries before an event is marked failed")
    EVENT_VISIBILITY_TIMEOUT_SECONDS: int = Field(300, description="Claimed events older than this are redelivered")
    WORKER_CONCURRENCY: int = Field(4, ge=1)
    WORKER_POLL_INTERVAL_SECONDS: float = 1.0

    # Ingest
    SIGNATURE_MAX_AGE_SECONDS: int = 60 * 5
    ALLOW_TEST_MODE: bool = Field(False, description="Honour the X-Test-Mode bypass header")
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

@lru_cache()
def get_settings() -> Settings:
    return Settings()
