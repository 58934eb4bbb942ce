from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from fragments.exceptions import ConfigurationError

# Load .env file from project root
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


StorageBackendName = Literal["memory", "local", "s3"]


class StorageSettings(BaseModel):
    backend: StorageBackendName = "memory"
    backend_env: str = "FRAGMENTS_STORAGE"
    root: Path = Path("data/fragments")
    bucket: str | None = None
    prefix: str = "fragments"
    region: str | None = None
    endpoint_url: str | None = None

    @field_validator("prefix", mode="before")
    @classmethod
    def _strip_prefix(cls, value: str | None) -> str:
        return (value or "").strip("/")

    @property
    def effective_backend(self) -> str:
        """Backend name, honouring the environment override when it is set."""
        override = os.getenv(self.backend_env, "").strip().lower()
        return override or self.backend


class ApiSettings(BaseModel):
    url: str = "http://localhost:8080"
    url_env: str = "API_URL"
    max_body_mb: int = Field(5, ge=1, le=1024)

    @property
    def public_url(self) -> str:
        return (os.getenv(self.url_env) or self.url).rstrip("/")

    @property
    def max_body_bytes(self) -> int:
        return self.max_body_mb * 1024 * 1024


class AuthSettings(BaseModel):
    htpasswd_file_env: str = "HTPASSWD_FILE"

    @property
    def htpasswd_file(self) -> Path | None:
        value = os.getenv(self.htpasswd_file_env)
        return Path(value) if value else None


class Settings(BaseModel):
    storage: StorageSettings = Field(default_factory=StorageSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from a YAML configuration file.

        Args:
            path: Optional path to configuration file. If not provided, uses
                FRAGMENTS_CONFIG environment variable or defaults to config/default.yaml.

        Returns:
            Settings instance. A missing default file yields built-in defaults.

        Raises:
            ConfigurationError: If an explicitly requested file is missing or
                the configuration is invalid.
        """
        explicit = path or os.getenv("FRAGMENTS_CONFIG")
        config_path = Path(explicit) if explicit else Path("config/default.yaml")
        if not config_path.exists():
            if explicit:
                raise ConfigurationError(
                    f"Configuration file not found: {config_path}",
                    {"path": str(config_path)},
                )
            return cls()
        try:
            with config_path.open("r", encoding="utf-8") as fp:
                payload = yaml.safe_load(fp) or {}
            return cls(**payload)
        except Exception as exc:
            raise ConfigurationError(
                f"Invalid configuration: {exc}", {"path": str(config_path)}
            ) from exc


@lru_cache(maxsize=1)
def get_settings(path: str | None = None) -> Settings:
    return Settings.load(Path(path) if path else None)


__all__ = [
    "Settings",
    "StorageSettings",
    "ApiSettings",
    "AuthSettings",
    "get_settings",
]
