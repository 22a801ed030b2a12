"""Environment driven configuration for the spool bridge."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings derived from environment variables (and an optional ``.env``)."""

    ftp_root: Path = Field(default=Path("./spool"), alias="FTP_ROOT")
    fax_dir: str = Field(default="synergyfaxq", alias="FAX_DIR")

    send_webhook_url: str | None = Field(default=None, alias="SEND_WEBHOOK_URL")
    send_webhook_user: str = Field(default="", alias="SEND_WEBHOOK_USER")
    send_webhook_pass: str = Field(default="", alias="SEND_WEBHOOK_PASS")
    fax_number: str = Field(default="", alias="FAX_NUMBER")
    send_timeout: float = Field(default=30.0, alias="SEND_TIMEOUT", gt=0)

    document_extensions: str = Field(default=".pdf", alias="DOCUMENT_EXTENSIONS")
    notify_correlation_field: Literal["uuid", "call_uuid"] = Field(
        default="uuid", alias="NOTIFY_CORRELATION_FIELD"
    )

    unpaired_retention: float = Field(default=3600.0, alias="UNPAIRED_RETENTION", ge=0)
    sweep_interval: float = Field(default=60.0, alias="SWEEP_INTERVAL", gt=0)
    # unchanged-size polls required before a file is processed
    settle_polls: int = Field(default=3, alias="SETTLE_POLLS", ge=1)
    settle_interval: float = Field(default=0.5, alias="SETTLE_INTERVAL", ge=0)
    submit_workers: int = Field(default=4, alias="SUBMIT_WORKERS", ge=1)
    shutdown_grace: float = Field(default=30.0, alias="SHUTDOWN_GRACE", ge=0)

    http_host: str = Field(default="0.0.0.0", alias="HTTP_HOST")
    http_port: int = Field(default=8000, alias="HTTP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # consumed by the external file-transfer server
    ftp_user: str | None = Field(default=None, alias="FTP_USER")
    ftp_pass: str | None = Field(default=None, alias="FTP_PASS")
    ftp_port: int | None = Field(default=None, alias="FTP_PORT")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("fax_dir")
    @classmethod
    def _strip_fax_dir(cls, value: str) -> str:
        return value.strip().strip("/")

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @property
    def spool_dir(self) -> Path:
        """Directory shared with legacy tooling."""

        root = Path(self.ftp_root).expanduser()
        return root / self.fax_dir if self.fax_dir else root

    @property
    def document_suffixes(self) -> frozenset[str]:
        suffixes: set[str] = set()
        for item in self.document_extensions.split(","):
            item = item.strip().lower()
            if not item:
                continue
            suffixes.add(item if item.startswith(".") else f".{item}")
        return frozenset(suffixes or {".pdf"})


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()
