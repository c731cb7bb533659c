import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _optional(name: str) -> str | None:
    value = os.getenv(name)
    return value or None


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Cache max-ages (seconds), checked at read time
    post_cache_max_age: float = float(os.getenv("POST_CACHE_MAX_AGE", "300"))
    user_cache_max_age: float = float(os.getenv("USER_CACHE_MAX_AGE", "600"))
    reel_cache_max_age: float = float(os.getenv("REEL_CACHE_MAX_AGE", "300"))
    review_cache_max_age: float = float(os.getenv("REVIEW_CACHE_MAX_AGE", "300"))
    message_cache_max_age: float = float(os.getenv("MESSAGE_CACHE_MAX_AGE", "60"))
    status_cache_max_age: float = float(os.getenv("STATUS_CACHE_MAX_AGE", "300"))
    portfolio_cache_max_age: float = float(os.getenv("PORTFOLIO_CACHE_MAX_AGE", "300"))
    saved_cache_max_age: float = float(os.getenv("SAVED_CACHE_MAX_AGE", "600"))
    tag_cache_max_age: float = float(os.getenv("TAG_CACHE_MAX_AGE", "300"))

    # Queries
    default_page_size: int = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))
    search_fetch_cap: int = int(os.getenv("SEARCH_FETCH_CAP", "100"))

    # Domain policy
    review_max_per_pair: int = int(os.getenv("REVIEW_MAX_PER_PAIR", "0"))  # 0 = unlimited
    status_lifetime_hours: int = int(os.getenv("STATUS_LIFETIME_HOURS", "24"))
    trending_window_days: int = int(os.getenv("TRENDING_WINDOW_DAYS", "7"))
    notification_retention_days: int = int(os.getenv("NOTIFICATION_RETENTION_DAYS", "30"))
    tag_retention_days: int = int(os.getenv("TAG_RETENTION_DAYS", "90"))

    # Push dispatch
    push_endpoint_url: str | None = _optional("PUSH_ENDPOINT_URL")
    push_server_key: str | None = _optional("PUSH_SERVER_KEY")
    push_timeout: float = float(os.getenv("PUSH_TIMEOUT", "10.0"))

    # Blob storage
    media_base_url: str = os.getenv("MEDIA_BASE_URL", "memory://media")

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "true").lower() == "true"

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        max_ages = {
            "POST_CACHE_MAX_AGE": self.post_cache_max_age,
            "USER_CACHE_MAX_AGE": self.user_cache_max_age,
            "REEL_CACHE_MAX_AGE": self.reel_cache_max_age,
            "REVIEW_CACHE_MAX_AGE": self.review_cache_max_age,
            "MESSAGE_CACHE_MAX_AGE": self.message_cache_max_age,
            "STATUS_CACHE_MAX_AGE": self.status_cache_max_age,
            "PORTFOLIO_CACHE_MAX_AGE": self.portfolio_cache_max_age,
            "SAVED_CACHE_MAX_AGE": self.saved_cache_max_age,
            "TAG_CACHE_MAX_AGE": self.tag_cache_max_age,
        }
        for name, value in max_ages.items():
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")

        if self.default_page_size < 1:
            raise ValueError("DEFAULT_PAGE_SIZE must be at least 1")

        if self.search_fetch_cap < 1:
            raise ValueError("SEARCH_FETCH_CAP must be at least 1")

        if self.review_max_per_pair < 0:
            raise ValueError("REVIEW_MAX_PER_PAIR must be >= 0 (0 disables the limit)")

        if self.status_lifetime_hours < 1:
            raise ValueError("STATUS_LIFETIME_HOURS must be at least 1")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"LOG_LEVEL must be a logging level name, got {self.log_level}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
