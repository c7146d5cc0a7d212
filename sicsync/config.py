"""
Runtime configuration.

Values come from the environment (optionally seeded from a .env file in
the working directory) and can be overridden by CLI flags. The registry
API key is handed to the client through a provider object rather than
read from a global.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .database import CONFIG_RECORD_ID, Config
from .ratelimit import REGISTRY_MAX_CALLS
from .registry import DEFAULT_BASE_URL, DEFAULT_TIMEOUT


def load_env() -> None:
    """Load .env from the working directory if present."""
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)


@dataclass
class Settings:
    db_path: Path = Path("data/sicsync.db")
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = DEFAULT_TIMEOUT
    batch_limit: int = REGISTRY_MAX_CALLS
    max_workers: int = 1
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Raises:
            ValueError: if SICSYNC_BATCH_LIMIT is below 1
        """
        batch_limit = int(os.getenv("SICSYNC_BATCH_LIMIT", REGISTRY_MAX_CALLS))
        if batch_limit < 1:
            raise ValueError(f"SICSYNC_BATCH_LIMIT must be at least 1, got {batch_limit}")
        return cls(
            db_path=Path(os.getenv("SICSYNC_DB", "data/sicsync.db")),
            api_key=os.getenv("COMPANIES_HOUSE_API_KEY") or None,
            base_url=os.getenv("COMPANIES_HOUSE_BASE_URL", DEFAULT_BASE_URL),
            request_timeout=float(os.getenv("SICSYNC_REQUEST_TIMEOUT", DEFAULT_TIMEOUT)),
            batch_limit=min(batch_limit, REGISTRY_MAX_CALLS),
            max_workers=max(1, int(os.getenv("SICSYNC_MAX_WORKERS", "1"))),
            log_level=os.getenv("SICSYNC_LOG_LEVEL", "INFO"),
        )


class StaticApiKeyProvider:
    def __init__(self, api_key: Optional[str]):
        self._api_key = api_key or ""

    def get_api_key(self) -> str:
        return self._api_key


class ConfigRecordApiKeyProvider:
    """Reads the API key from the configuration record (id 1)."""

    def __init__(self, engine: Engine, record_id: int = CONFIG_RECORD_ID):
        self._session_factory = sessionmaker(bind=engine)
        self.record_id = record_id

    def get_api_key(self) -> str:
        with self._session_factory() as session:
            config = session.get(Config, self.record_id)
            if config is None:
                return ""
            return config.companies_house_api_key or ""

    def set_api_key(self, api_key: str) -> None:
        with self._session_factory() as session, session.begin():
            config = session.get(Config, self.record_id)
            if config is None:
                session.add(Config(id=self.record_id, companies_house_api_key=api_key))
            else:
                config.companies_house_api_key = api_key


def api_key_provider(settings: Settings, engine: Engine):
    """Explicit key (env or flag) wins over the configuration record."""
    if settings.api_key:
        return StaticApiKeyProvider(settings.api_key)
    return ConfigRecordApiKeyProvider(engine)
