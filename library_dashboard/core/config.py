import os
import logging
from dataclasses import dataclass, field
from typing import List


def _split(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


@dataclass
class Settings:
    database_url: str = os.getenv("LIBRARY_DATABASE_URL", "sqlite:///./library.db")
    log_level: str = os.getenv("LIBRARY_LOG_LEVEL", "INFO")

    secret_key: str = os.getenv("LIBRARY_SECRET_KEY", "change-me-in-production")
    token_algorithm: str = "HS256"
    token_expire_minutes: int = int(os.getenv("LIBRARY_TOKEN_EXPIRE_MINUTES", "60"))

    default_due_days: int = int(os.getenv("LIBRARY_DEFAULT_DUE_DAYS", "14"))
    max_due_days: int = int(os.getenv("LIBRARY_MAX_DUE_DAYS", "3650"))
    cors_origins: List[str] = field(
        default_factory=lambda: _split(os.getenv("LIBRARY_CORS_ORIGINS", "*"))
    )


settings = Settings()


def configure_logging():
    logging.basicConfig(level=settings.log_level,
                        format="%(asctime)s %(levelname)s %(name)s - %(message)s")
