"""Runtime configuration for the receipt scanner API.

Settings come from the process environment, optionally seeded from a
``.env`` file.  The repository-root ``.env`` is read first, then whatever
``find_dotenv`` locates from the working directory; neither overrides
variables that are already exported, so deployment environments always win.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_REPO_ROOT = Path(__file__).resolve().parents[3]


def _discover_env_files() -> tuple[str, ...]:
    found: list[str] = []
    root_env = _REPO_ROOT / ".env"
    if root_env.exists():
        found.append(str(root_env))
    cwd_env = find_dotenv(usecwd=True)
    if cwd_env and cwd_env not in found:
        found.append(cwd_env)
    return tuple(found)


ENV_FILES = _discover_env_files()
for _path in ENV_FILES:
    load_dotenv(dotenv_path=_path, override=False)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=ENV_FILES or (".env",),
        case_sensitive=True,
        extra="allow",
    )

    PROJECT_NAME: str = "Receipt Scanner API"
    ENVIRONMENT: str = Field(default="development")
    LOG_LEVEL: str = Field(default="INFO")

    # MongoDB.  The database name is taken from the URI path when present.
    MONGODB_URI: Optional[str] = Field(default=None)
    MONGODB_DATABASE: str = Field(default="receipts")
    MONGODB_COLLECTION: str = Field(default="receipts")
    MONGODB_CONNECT_TIMEOUT_MS: int = Field(default=10000)
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = Field(default=10000)
    MONGODB_MAX_POOL_SIZE: int = Field(default=10)
    MONGODB_SOCKET_TIMEOUT_MS: int = Field(default=45000)

    # Firebase Auth.  Without a credentials path the Admin SDK falls back to
    # Application Default Credentials.
    FIREBASE_PROJECT_ID: Optional[str] = Field(default=None)
    FIREBASE_CREDENTIALS_PATH: Optional[str] = Field(default=None)
    FIREBASE_CHECK_REVOKED: bool = Field(default=False)

    # Extraction: "gemini" or "openai"
    EXTRACTION_PROVIDER: str = Field(default="gemini")
    EXTRACTION_MODEL: Optional[str] = Field(default=None)
    GEMINI_API_KEY: Optional[str] = Field(default=None)
    OPENAI_API_KEY: Optional[str] = Field(default=None)

    # Receipt access: "allow_all" or "creator_only"
    ACCESS_POLICY: str = Field(default="allow_all")

    # Origins allowed outside development
    BACKEND_CORS_ORIGINS: list[str] = Field(
        default=["http://localhost:8081", "http://127.0.0.1:8081"],
    )

    # Sentry is off unless a DSN is set
    SENTRY_DSN: Optional[str] = Field(default=None)
    SENTRY_TRACES_SAMPLE_RATE: float = Field(default=0.0)
    SENTRY_RELEASE: Optional[str] = Field(default=None)

    def mongo_client_options(self) -> dict[str, int]:
        """Keyword arguments passed to ``MongoClient``."""
        return {
            "connectTimeoutMS": self.MONGODB_CONNECT_TIMEOUT_MS,
            "serverSelectionTimeoutMS": self.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
            "maxPoolSize": self.MONGODB_MAX_POOL_SIZE,
            "socketTimeoutMS": self.MONGODB_SOCKET_TIMEOUT_MS,
        }


settings = Settings()


def is_development() -> bool:
    return (settings.ENVIRONMENT or "development").lower() == "development"


__all__ = ["Settings", "settings", "is_development"]
