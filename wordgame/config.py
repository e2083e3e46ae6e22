"""Configuration settings for the application."""

import os
from typing import Optional, ClassVar


class Config:
    """Application configuration with type hints."""

    # Redis (persistence gateway)
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_PASSWORD: Optional[str] = os.getenv("REDIS_PASSWORD") or None
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    REDIS_SOCKET_TIMEOUT: float = float(os.getenv("REDIS_SOCKET_TIMEOUT", "5"))

    # Key expirations
    SESSION_TTL_SECONDS: int = int(os.getenv("SESSION_TTL_SECONDS", str(60 * 60 * 24)))
    WORD_STATE_TTL_SECONDS: int = int(os.getenv("WORD_STATE_TTL_SECONDS", "3600"))  # refreshed on every new word
    SUMMARY_TTL_SECONDS: int = int(os.getenv("SUMMARY_TTL_SECONDS", "3600"))

    # Session boundary retries (start / end only)
    START_RETRY_ATTEMPTS: int = int(os.getenv("START_RETRY_ATTEMPTS", "3"))
    START_RETRY_BACKOFF_SECONDS: float = float(os.getenv("START_RETRY_BACKOFF_SECONDS", "2"))

    # Game settings
    FREE_LIFE_INTERVAL: int = int(os.getenv("FREE_LIFE_INTERVAL", "5"))
    LEADERBOARD_SIZE: int = int(os.getenv("LEADERBOARD_SIZE", "5"))
    WORDS_FILE: str = os.getenv("WORDS_FILE", "words.txt")

    # PostHog Analytics
    POSTHOG_API_KEY: str = os.getenv("POSTHOG_API_KEY", "")
    POSTHOG_HOST: str = os.getenv("POSTHOG_HOST", "https://eu.i.posthog.com")

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Class-level instance
    _instance: ClassVar[Optional['Config']] = None

    @classmethod
    def validate(cls):
        """Validate configuration values."""
        if cls.START_RETRY_ATTEMPTS < 1:
            raise ValueError("START_RETRY_ATTEMPTS must be at least 1")

        if cls.START_RETRY_BACKOFF_SECONDS < 0:
            raise ValueError("START_RETRY_BACKOFF_SECONDS cannot be negative")

        if cls.FREE_LIFE_INTERVAL < 1:
            raise ValueError("FREE_LIFE_INTERVAL must be at least 1")

        if cls.LEADERBOARD_SIZE < 1:
            raise ValueError("LEADERBOARD_SIZE must be at least 1")

        for name in ("SESSION_TTL_SECONDS", "WORD_STATE_TTL_SECONDS", "SUMMARY_TTL_SECONDS"):
            if getattr(cls, name) <= 0:
                raise ValueError(f"{name} must be positive")

        if not cls.POSTHOG_API_KEY:
            print("Warning: Missing optional configuration: POSTHOG_API_KEY")


config = Config()
