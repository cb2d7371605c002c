"""Environment-driven settings for the sheet uploader."""
from __future__ import annotations

import os
import pathlib
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .headers import DEFAULT_ID_COLUMN


def _flag(value: Optional[str]) -> bool:
    return (value or '').strip().lower() in {'1', 'true', 'yes', 'on'}


@dataclass
class Settings:
    credentials_dir: pathlib.Path
    category_id: str = '22'
    chunk_size: int = 8 * 1024 * 1024
    max_retries: int = 5
    default_sheet: str = 'Output_100'
    id_column: str = DEFAULT_ID_COLUMN
    log_level: str = 'INFO'
    no_browser: bool = False


def load_settings(environ: Optional[Mapping[str, str]] = None, *, dotenv: bool = True) -> Settings:
    """Build Settings from *environ* (default: os.environ after loading .env)."""

    if environ is None:
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        environ = os.environ

    credentials_dir = environ.get('SHEET_UPLOAD_CREDENTIALS_DIR')
    try:
        chunk_mb = int(environ.get('YOUTUBE_UPLOAD_CHUNK_MB', '8'))
        max_retries = int(environ.get('YOUTUBE_UPLOAD_MAX_RETRIES', '5'))
    except ValueError as exc:
        raise ValueError(f"Invalid numeric upload setting: {exc}") from exc

    return Settings(
        credentials_dir=pathlib.Path(credentials_dir).expanduser() if credentials_dir else pathlib.Path.cwd(),
        category_id=environ.get('YOUTUBE_CATEGORY_ID', '22'),
        chunk_size=max(1, chunk_mb) * 1024 * 1024,
        max_retries=max(1, max_retries),
        default_sheet=environ.get('SHEET_UPLOAD_DEFAULT_SHEET', 'Output_100'),
        id_column=environ.get('SHEET_UPLOAD_ID_COLUMN', DEFAULT_ID_COLUMN),
        log_level=environ.get('SHEET_UPLOAD_LOG_LEVEL', 'INFO').upper(),
        no_browser=_flag(environ.get('SHEET_UPLOAD_NO_BROWSER')),
    )
