from __future__ import annotations

from pathlib import Path
from typing import Any, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_origins(raw: Any) -> List[str]:
    """
    Normalize CORS allow origins from env.

    Supports:
      - list[str] (already parsed)
      - "*"
      - comma-separated string: "https://a.com, https://b.com"
    """
    if raw is None:
        return ["*"]

    if isinstance(raw, list):
        items = [str(x).strip() for x in raw]
        items = [x for x in items if x]
        return items or ["*"]

    s = str(raw).strip()
    if not s or s == "*":
        return ["*"]

    if "," in s:
        parts = [p.strip() for p in s.split(",")]
        parts = [p for p in parts if p]
        return parts or ["*"]

    return [s]


class Settings(BaseSettings):
    """
    Central app settings.

    - Normalize user-provided values (CORS, log level, DB URL)
    - Provide a single resolved DB URL source of truth
    - Upload limits and the default team live here so tests can override them
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # App identity
    env: str = Field(default="local", alias="APP_ENV")
    app_name: str = Field(default="voter-analytics", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Server runtime (uvicorn)
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"], alias="CORS_ALLOW_ORIGINS")

    # Preferred: a real SQLAlchemy URL (SQLite locally, Postgres when hosted)
    database_url: str = Field(default="", alias="DATABASE_URL")
    db_path: str = Field(default="./data/voter_analytics.sqlite", alias="DB_PATH")

    # OpenAI (natural-language query)
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_timeout_s: float = Field(default=55.0, alias="OPENAI_TIMEOUT")

    # CSV ingestion
    upload_max_mb: int = Field(default=10, alias="UPLOAD_MAX_MB")
    upload_batch_size: int = Field(default=100, alias="UPLOAD_BATCH_SIZE")
    default_team: str = Field(default="Team Tony", alias="DEFAULT_TEAM")

    # Error reporting (optional webhook, best-effort)
    error_webhook_url: str = Field(default="", alias="ERROR_WEBHOOK_URL")
    error_dedup_ttl_s: float = Field(default=60.0, alias="ERROR_DEDUP_TTL")
    error_max_failures: int = Field(default=3, alias="ERROR_MAX_FAILURES")

    # -------------------------
    # Validators / normalizers
    # -------------------------

    @field_validator("log_level", mode="before")
    @classmethod
    def _norm_log_level(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip().upper()
        return s or "INFO"

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _norm_cors_allow_origins(cls, v: Any) -> list[str]:
        return _split_origins(v)

    @field_validator("host", mode="before")
    @classmethod
    def _norm_host(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        return s or "127.0.0.1"

    @field_validator("database_url", "openai_api_key", mode="before")
    @classmethod
    def _norm_strip(cls, v: Any) -> str:
        return ("" if v is None else str(v)).strip()

    @field_validator("error_webhook_url", mode="before")
    @classmethod
    def _norm_webhook_url(cls, v: Any) -> str:
        return ("" if v is None else str(v)).strip().rstrip("/")

    @field_validator("db_path", mode="before")
    @classmethod
    def _norm_db_path(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        return s or "./data/voter_analytics.sqlite"

    @field_validator("default_team", mode="before")
    @classmethod
    def _norm_default_team(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        return s or "Team Tony"

    @field_validator("upload_batch_size", "upload_max_mb", mode="after")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    # -------------------------
    # Derived helpers
    # -------------------------

    @property
    def upload_max_bytes(self) -> int:
        return int(self.upload_max_mb) * 1024 * 1024

    @property
    def resolved_database_url(self) -> str:
        """
        Priority:
        1) DATABASE_URL if provided
        2) Build sqlite:/// URL from DB_PATH (file path or full sqlite URL)
        """
        if self.database_url:
            return self.database_url

        path = (self.db_path or "").strip() or "./data/voter_analytics.sqlite"
        if path.startswith("sqlite:"):
            return path

        p = Path(path)
        if not p.is_absolute():
            if str(p).startswith("./"):
                return f"sqlite:///{p.as_posix()}"
            return f"sqlite:///./{p.as_posix()}"

        # Absolute path needs 4 slashes after scheme (sqlite:////abs/path)
        return f"sqlite:////{p.as_posix().lstrip('/')}"


settings = Settings()
