from __future__ import annotations

from pathlib import Path

import pytest

from sheet_upload.config import load_settings


def test_defaults(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    settings = load_settings({})
    assert settings.credentials_dir == tmp_path
    assert settings.category_id == "22"
    assert settings.chunk_size == 8 * 1024 * 1024
    assert settings.max_retries == 5
    assert settings.default_sheet == "Output_100"
    assert settings.id_column == "編號"
    assert settings.log_level == "INFO"
    assert settings.no_browser is False


def test_environment_overrides(tmp_path: Path):
    settings = load_settings({
        "SHEET_UPLOAD_CREDENTIALS_DIR": str(tmp_path),
        "YOUTUBE_CATEGORY_ID": "27",
        "YOUTUBE_UPLOAD_CHUNK_MB": "2",
        "YOUTUBE_UPLOAD_MAX_RETRIES": "0",
        "SHEET_UPLOAD_DEFAULT_SHEET": "Videos",
        "SHEET_UPLOAD_ID_COLUMN": "Code",
        "SHEET_UPLOAD_LOG_LEVEL": "debug",
        "SHEET_UPLOAD_NO_BROWSER": "yes",
    })
    assert settings.credentials_dir == tmp_path
    assert settings.category_id == "27"
    assert settings.chunk_size == 2 * 1024 * 1024
    assert settings.max_retries == 1
    assert settings.default_sheet == "Videos"
    assert settings.id_column == "Code"
    assert settings.log_level == "DEBUG"
    assert settings.no_browser is True


def test_invalid_numbers_rejected():
    with pytest.raises(ValueError):
        load_settings({"YOUTUBE_UPLOAD_CHUNK_MB": "lots"})


def test_dotenv_file_is_loaded(monkeypatch, tmp_path: Path):
    (tmp_path / ".env").write_text("SHEET_UPLOAD_DEFAULT_SHEET=FromDotenv\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SHEET_UPLOAD_DEFAULT_SHEET", raising=False)
    settings = load_settings()
    assert settings.default_sheet == "FromDotenv"
    monkeypatch.delenv("SHEET_UPLOAD_DEFAULT_SHEET", raising=False)
