# adsync/config.py
"""Runtime settings read from the environment (and `.env` when present)."""
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from dotenv import load_dotenv

load_dotenv()


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def parse_auth_tokens(value: Optional[str]) -> Dict[str, str]:
    """Parse `token:owner,token2:owner2` into a token -> owner mapping."""
    tokens = {}
    for entry in _csv(value):
        token, sep, owner = entry.partition(":")
        if not sep or not token.strip() or not owner.strip():
            raise RuntimeError(f"Malformed AUTH_TOKENS entry: {entry!r}")
        tokens[token.strip()] = owner.strip()
    return tokens


def normalize_database_url(url: str) -> str:
    # SQLAlchemy 2.x doesn't accept 'postgres://'
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg2://", 1)
    return url


@dataclass
class Settings:
    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 10
    api_prefix: str = ""
    auth_tokens: Dict[str, str] = field(default_factory=dict)
    cors_origins: List[str] = field(default_factory=list)
    rate_limit_max: int = 1000
    rate_limit_window: int = 15 * 60
    scheduler_enabled: bool = True
    device_sweep_hours: int = 1
    device_stale_days: int = 90
    host: str = "0.0.0.0"
    port: int = 3000

    @classmethod
    def from_env(cls) -> "Settings":
        url = os.getenv("POSTGRES_URL") or os.getenv("DATABASE_URL")
        if not url:
            raise RuntimeError("POSTGRES_URL not set")
        return cls(
            database_url=normalize_database_url(url),
            db_pool_size=int(os.getenv("DB_POOL_SIZE", 5)),
            db_max_overflow=int(os.getenv("DB_MAX_OVERFLOW", 10)),
            api_prefix=os.getenv("API_PREFIX", "").rstrip("/"),
            auth_tokens=parse_auth_tokens(os.getenv("AUTH_TOKENS")),
            cors_origins=_csv(os.getenv("CORS_ORIGINS")),
            rate_limit_max=int(os.getenv("RATE_LIMIT_MAX", 1000)),
            rate_limit_window=int(os.getenv("RATE_LIMIT_WINDOW", 15 * 60)),
            scheduler_enabled=_flag(os.getenv("SCHEDULER_ENABLED", "1")),
            device_sweep_hours=int(os.getenv("DEVICE_SWEEP_HOURS", 1)),
            device_stale_days=int(os.getenv("DEVICE_STALE_DAYS", 90)),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", 3000)),
        )
