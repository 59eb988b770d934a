import logging
import os
from dataclasses import dataclass
from functools import lru_cache

import redis.asyncio as redis
from dotenv import load_dotenv

load_dotenv()

_BACKENDS = ("memory", "redis")


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Generation cache
    cache_backend: str = os.getenv("CACHE_BACKEND", "memory")
    cache_ttl: int = int(os.getenv("CACHE_TTL", "600"))  # 10 minutes default
    cache_key_prefix: str = os.getenv("CACHE_KEY_PREFIX", "generation_cache")

    # Conversation state
    state_backend: str = os.getenv("STATE_BACKEND", "memory")
    state_ttl: int = int(os.getenv("STATE_TTL", "0"))  # 0 = never expires
    state_key_prefix: str = os.getenv("STATE_KEY_PREFIX", "conversation_state")

    # Prompt assembly
    history_window: int = int(os.getenv("HISTORY_WINDOW", "5"))

    # Personalization thresholds (attitude scores are 0-100)
    tech_high_threshold: int = int(os.getenv("TECH_HIGH_THRESHOLD", "150"))
    tech_low_threshold: int = int(os.getenv("TECH_LOW_THRESHOLD", "60"))
    significant_attitude_threshold: int = int(os.getenv("SIGNIFICANT_ATTITUDE_THRESHOLD", "70"))
    default_attitude_value: int = int(os.getenv("DEFAULT_ATTITUDE_VALUE", "50"))

    # Generator (OpenAI Responses API compatible)
    generator_base_url: str = os.getenv("GENERATOR_BASE_URL", "https://api.openai.com/v1")
    generator_model: str = os.getenv("GENERATOR_MODEL", "gpt-4o-mini")
    generator_timeout: float = float(os.getenv("GENERATOR_TIMEOUT", "60"))
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.cache_backend not in _BACKENDS:
            raise ValueError(f"CACHE_BACKEND must be one of {_BACKENDS}, got {self.cache_backend!r}")

        if self.state_backend not in _BACKENDS:
            raise ValueError(f"STATE_BACKEND must be one of {_BACKENDS}, got {self.state_backend!r}")

        if self.cache_ttl < 0 or self.state_ttl < 0:
            raise ValueError("CACHE_TTL and STATE_TTL must be >= 0")

        if self.history_window < 1:
            raise ValueError("HISTORY_WINDOW must be at least 1")

        if self.tech_low_threshold >= self.tech_high_threshold:
            raise ValueError(
                f"TECH_LOW_THRESHOLD ({self.tech_low_threshold}) must be lower than "
                f"TECH_HIGH_THRESHOLD ({self.tech_high_threshold})"
            )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> redis.Redis:
    """Create an async Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
    )


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for scripts and service entry points."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
