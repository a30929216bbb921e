"""Configuration settings loaded from the environment."""

import re
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# Repository root: src/fitup/config.py -> repo/
PROJECT_ROOT = Path(__file__).parent.parent.parent
DATA_DIR = PROJECT_ROOT / "data"

MIN_SECRET_LENGTH = 32

# Values shipped in sample env files; never acceptable as a real secret.
PLACEHOLDER_SECRETS = {
    "changeme",
    "change-me",
    "secret",
    "your-secret-key",
    "your_jwt_secret",
    "your-jwt-secret-key-change-in-production",
    "replace-with-a-long-random-secret-value",
}

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str | int) -> int:
    """Parse a duration like ``3600``, ``"15m"`` or ``"24h"`` into seconds."""
    if isinstance(value, int):
        return value
    match = _DURATION_PATTERN.match(value)
    if not match:
        raise ValueError(f"invalid duration: {value!r}")
    amount, unit = match.groups()
    return int(amount) * _DURATION_UNITS[unit]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage
    database_url: str = f"sqlite:///{DATA_DIR / 'fitup.db'}"
    catalog_path: Path | None = None

    # Auth
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_exp: str = "24h"
    refresh_token_exp: str = "168h"

    # Server
    port: int = 8080
    frontend_url: str = "http://localhost:3000"
    log_level: str = "INFO"

    # OAuth providers
    google_client_id: str = ""
    google_client_secret: str = ""
    facebook_client_id: str = ""
    facebook_client_secret: str = ""
    github_client_id: str = ""
    github_client_secret: str = ""

    # Email
    resend_api_key: str = ""

    # Deadlines (seconds)
    read_timeout: float = 5.0
    write_timeout: float = 10.0
    pdf_export_timeout: float = 30.0
    ws_read_timeout: float = 60.0

    @field_validator("jwt_secret")
    @classmethod
    def _check_jwt_secret(cls, value: str) -> str:
        if value.strip().lower() in PLACEHOLDER_SECRETS:
            raise ValueError("JWT_SECRET is a placeholder value")
        if len(value) < MIN_SECRET_LENGTH:
            raise ValueError(f"JWT_SECRET must be at least {MIN_SECRET_LENGTH} characters")
        return value

    @field_validator("jwt_exp", "refresh_token_exp")
    @classmethod
    def _check_duration(cls, value: str) -> str:
        parse_duration(value)
        return value

    @property
    def database_path(self) -> Path:
        """Filesystem path of the SQLite database named by DATABASE_URL."""
        url = self.database_url
        for prefix in ("sqlite+aiosqlite:///", "sqlite:///"):
            if url.startswith(prefix):
                return Path(url[len(prefix):])
        return Path(url)

    @property
    def jwt_exp_seconds(self) -> int:
        return parse_duration(self.jwt_exp)

    @property
    def refresh_token_exp_seconds(self) -> int:
        return parse_duration(self.refresh_token_exp)

    class Config:
        env_file = str(PROJECT_ROOT / ".env")
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
