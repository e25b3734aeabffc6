"""
Gateway configuration.

Values come from the environment; a ``.env`` file in the working directory
is loaded first when present.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_UPSTREAM_BASE_URL = "https://api-inference.huggingface.co/models"


@dataclass(frozen=True)
class Settings:
    huggingface_api_key: str = ""
    upstream_base_url: str = DEFAULT_UPSTREAM_BASE_URL
    upstream_timeout_seconds: Optional[float] = None
    retry_max_attempts: int = 3
    retry_backoff_seconds: float = 3.0
    history_page_size: int = 10
    database_url: str = "sqlite:///./infergate.db"

    @classmethod
    def from_env(cls) -> "Settings":
        timeout = os.getenv("UPSTREAM_TIMEOUT_SECONDS", "")
        return cls(
            huggingface_api_key=os.getenv("HUGGINGFACE_API_KEY", ""),
            upstream_base_url=os.getenv("UPSTREAM_BASE_URL", DEFAULT_UPSTREAM_BASE_URL).rstrip("/"),
            upstream_timeout_seconds=float(timeout) if timeout else None,
            retry_max_attempts=int(os.getenv("RETRY_MAX_ATTEMPTS", "3")),
            retry_backoff_seconds=float(os.getenv("RETRY_BACKOFF_SECONDS", "3.0")),
            history_page_size=int(os.getenv("HISTORY_PAGE_SIZE", "10")),
            database_url=os.getenv("DATABASE_URL", "sqlite:///./infergate.db"),
        )
