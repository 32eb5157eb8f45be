"""
Application configuration using Pydantic Settings.
Loads from environment variables / .env file.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "SEO Content Creator API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # MongoDB
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "seo_content"

    # OpenAI
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_TEMPERATURE: float = 0.2
    OPENAI_MAX_TOKENS: int = 8000
    LLM_TIMEOUT_MS: int = 60000  # per call; (1 + refinement rounds) calls must fit the task soft limit
    LLM_MAX_REFINEMENT_ROUNDS: int = 2
    LENGTH_TOLERANCE_PERCENT: float = 5.0

    # Crawler
    SCRAPE_MAX_PAGES: int = 5
    SCRAPE_CONCURRENCY: int = 3
    SCRAPE_TIMEOUT_MS: int = 8000
    SCRAPE_MAX_WORDS_PER_PAGE: int = 1200

    # Job queue
    JOB_MAX_RETRIES: int = 3
    JOB_STUCK_THRESHOLD_MS: int = 600000  # 10 minutes
    JOB_RETENTION_MS: int = 86400000  # 24 hours
    JOB_HEALTH_STUCK_MS: int = 300000  # 5 minutes
    JOBS_LIST_MAX_LIMIT: int = 200

    # Worker trigger (empty = open, for cron callers without headers)
    WORKER_API_KEY: str = ""

    # Celery (cron driver)
    CELERY_BROKER_URL: str = "sqs://"
    CELERY_QUEUE_PREFIX: str = "seo-content-"
    AWS_REGION: str = "us-east-1"
    SQS_DEFAULT_QUEUE_URL: str = ""
    CELERY_VISIBILITY_TIMEOUT: int = 600
    CELERY_TASK_TIME_LIMIT: int = 300
    CELERY_TASK_SOFT_TIME_LIMIT: int = 270
    WORKER_SCHEDULE_MINUTE: str = "*"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"



@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
