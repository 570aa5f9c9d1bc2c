from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    App settings.

    Notes:
    - Defaults are local and deterministic (SQLite file next to the repo).
    - Every value can be overridden with a ``GEOSCOPE_``-prefixed env var.
    - ``scope_token_secret`` must be overridden outside local development.
    """

    model_config = SettingsConfigDict(env_prefix="GEOSCOPE_", extra="ignore")

    db_url: str | None = None
    sql_dialect: str | None = None
    security_config_path: str | None = None
    log_level: str = "INFO"

    scope_token_secret: str = "dev-only-change-me"
    scope_token_algorithm: str = "HS256"
    scope_token_ttl_seconds: int = 3600

    # How long a resolved AuthorizedAreaSet may be reused before recomputing.
    area_set_cache_ttl_seconds: int = 300

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "geoscope.db"
        return f"sqlite:///{db_path}"

    def resolved_sql_dialect(self) -> str:
        if self.sql_dialect:
            return self.sql_dialect
        url = self.resolved_db_url()
        return "postgresql" if url.startswith("postgres") else "sqlite"

    def resolved_security_config_path(self) -> Path:
        if self.security_config_path:
            return Path(self.security_config_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "config" / "security_config.yaml"


@lru_cache
def get_settings() -> Settings:
    return Settings()
