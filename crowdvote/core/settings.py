"""Paramètres de configuration de crowdvote.

Objectif du module
------------------
- Charger les paramètres (environnement puis fichier `.env`) via Pydantic Settings.
- Vérifier la cohérence des bornes de vote et des TTL dès le démarrage.

Le fichier `.env` lu est choisi dans cet ordre: ENV_FILE, `.env.{APP_ENV}`, `.env`.
"""

import logging
import os
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _resolve_env_file() -> Path:
    explicit = os.getenv("ENV_FILE")
    if explicit:
        return Path(explicit)
    specific = Path.cwd() / f".env.{os.getenv('APP_ENV', 'dev')}"
    return specific if specific.exists() else Path.cwd() / ".env"


_ENV_FILE_PATH = _resolve_env_file()


class Settings(BaseSettings):
    """Configuration applicative (valeurs par défaut adaptées au développement local)."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
    )
    APP_NAME: str = "crowdvote"
    APP_ENV: str = "dev"
    APP_DEBUG: bool = True

    DATABASE_URL: str | None = None
    REDIS_URL: str | None = None
    REQUIRE_REDIS: bool = False

    CACHE_TTL_SECONDS: int = Field(default=300, gt=0)
    COMMIT_TTL_SECONDS: int = Field(default=7 * 24 * 3600, gt=0)

    MIN_VOTING_PERIOD_SECONDS: int = Field(default=60, gt=0)
    MAX_VOTING_PERIOD_SECONDS: int = Field(default=7 * 24 * 3600, gt=0)
    DEFAULT_VOTING_PERIOD_SECONDS: int = Field(default=60, gt=0)

    BLOCKCHAIN_NETWORK: str = "localhost"
    IPFS_API_URL: str | None = None
    LEDGER_GATEWAY_URL: str | None = None
    LEDGER_GATEWAY_TOKEN: str | None = None
    HTTP_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)

    @field_validator("BLOCKCHAIN_NETWORK")
    @classmethod
    def _lower_network(cls, value: str) -> str:
        return value.strip().lower()

    @model_validator(mode="after")
    def _check_voting_bounds(self) -> "Settings":
        lo, hi = self.MIN_VOTING_PERIOD_SECONDS, self.MAX_VOTING_PERIOD_SECONDS
        if lo > hi:
            raise ValueError("MIN_VOTING_PERIOD_SECONDS must not exceed MAX_VOTING_PERIOD_SECONDS")
        if not lo <= self.DEFAULT_VOTING_PERIOD_SECONDS <= hi:
            raise ValueError("DEFAULT_VOTING_PERIOD_SECONDS must lie within the voting bounds")
        return self

    @property
    def log_level(self) -> int:
        return logging.DEBUG if self.APP_DEBUG else logging.INFO

    @property
    def json_logs(self) -> bool:
        """Logs JSON hors développement."""
        return self.APP_ENV.lower() not in ("dev", "test")


def get_settings() -> Settings:
    """Construit la configuration depuis l'environnement courant."""
    return Settings()
