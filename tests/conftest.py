# Shared pytest fixtures
from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest
from openpyxl import Workbook

from sheet_upload.models import PublishError


class FakePublisher:
    """Records publish calls; identifiers listed in *fail_on* raise PublishError."""

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.calls: list[dict] = []

    def publish(self, media_path, title, description, tags, publish_at, *, cancel_event=None):
        self.calls.append({
            "media_path": Path(media_path),
            "title": title,
            "description": description,
            "tags": list(tags),
            "publish_at": publish_at,
        })
        if Path(media_path).stem in self.fail_on:
            raise PublishError(f"quotaExceeded for {Path(media_path).name}")
        return f"vid-{Path(media_path).stem}"


@pytest.fixture()
def fake_publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture()
def media_folder(tmp_path: Path) -> Path:
    folder = tmp_path / "videos"
    folder.mkdir()
    return folder


@pytest.fixture()
def make_media(media_folder: Path):
    def _make(*names: str) -> Path:
        for name in names:
            (media_folder / name).write_bytes(b"\x00")
        return media_folder
    return _make


@pytest.fixture()
def fixed_now():
    stamp = dt.datetime(2025, 3, 1, 12, 0, tzinfo=dt.timezone.utc)
    return lambda: stamp


@pytest.fixture()
def make_workbook(tmp_path: Path):
    def _make(rows: list[list[object]], sheet: str = "Output_100", name: str = "data.xlsx") -> Path:
        path = tmp_path / name
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = sheet
        for row in rows:
            worksheet.append(row)
        workbook.save(path)
        return path
    return _make
