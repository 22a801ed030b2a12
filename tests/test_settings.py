from __future__ import annotations

from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest
from pydantic import ValidationError

from faxbridge.core.settings import Settings


def test_defaults(monkeypatch: pytest.MonkeyPatch):
    for name in ("FTP_ROOT", "FAX_DIR", "SEND_WEBHOOK_URL", "DOCUMENT_EXTENSIONS", "NOTIFY_CORRELATION_FIELD"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.spool_dir == Path("spool") / "synergyfaxq"
    assert settings.send_webhook_url is None
    assert settings.document_suffixes == frozenset({".pdf"})
    assert settings.notify_correlation_field == "uuid"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.setenv("FTP_ROOT", str(tmp_path))
    monkeypatch.setenv("FAX_DIR", "/synergyfaxq/")
    monkeypatch.setenv("SEND_WEBHOOK_URL", "https://fax.example.test/send")
    monkeypatch.setenv("FAX_NUMBER", "+15550009999")
    monkeypatch.setenv("DOCUMENT_EXTENSIONS", "pdf, .TIF,,tiff")
    monkeypatch.setenv("NOTIFY_CORRELATION_FIELD", "call_uuid")
    monkeypatch.setenv("SUBMIT_WORKERS", "8")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.spool_dir == tmp_path / "synergyfaxq"
    assert settings.send_webhook_url == "https://fax.example.test/send"
    assert settings.fax_number == "+15550009999"
    assert settings.document_suffixes == frozenset({".pdf", ".tif", ".tiff"})
    assert settings.notify_correlation_field == "call_uuid"
    assert settings.submit_workers == 8
    assert settings.log_level == "DEBUG"


def test_empty_fax_dir_uses_root(tmp_path: Path):
    settings = Settings(ftp_root=tmp_path, fax_dir="", _env_file=None)

    assert settings.spool_dir == tmp_path


def test_env_file_is_read(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.delenv("FAX_NUMBER", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("FAX_NUMBER=+15551110000\n")

    settings = Settings(_env_file=env_file)

    assert settings.fax_number == "+15551110000"


@pytest.mark.parametrize(
    "overrides",
    [
        {"notify_correlation_field": "job_id"},
        {"submit_workers": 0},
        {"send_timeout": 0},
    ],
)
def test_invalid_values_are_rejected(overrides: dict):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)
