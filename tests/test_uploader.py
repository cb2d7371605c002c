from __future__ import annotations

import datetime as dt
import json
import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import httplib2
import pytest
from googleapiclient.errors import HttpError

from sheet_upload.config import Settings
from sheet_upload.models import PublishError
from sheet_upload.uploader import (
    CredentialSetupError,
    UploadCancelled,
    YoutubePublisher,
    build_video_body,
    ensure_credentials,
    should_retry,
)


def _http_error(status: int, reason: str = "backendError", message: str = "boom") -> HttpError:
    content = json.dumps({"error": {"message": message, "errors": [{"reason": reason}]}}).encode("utf-8")
    return HttpError(httplib2.Response({"status": status}), content)


def _publisher(tmp_path: Path, request) -> tuple[YoutubePublisher, MagicMock]:
    service = MagicMock()
    service.videos.return_value.insert.return_value = request
    settings = Settings(credentials_dir=tmp_path, max_retries=3)
    publisher = YoutubePublisher(settings, service=service)
    publisher.sleep = lambda seconds: None
    return publisher, service


@pytest.fixture()
def video(tmp_path: Path) -> Path:
    path = tmp_path / "1.mp4"
    path.write_bytes(b"\x00" * 16)
    return path


def test_scheduled_body_is_private_with_publish_at():
    when = dt.datetime(2025, 1, 1, 8, 0, tzinfo=dt.timezone(dt.timedelta(hours=8)))
    body = build_video_body("T", "D", ["a"], when)
    assert body["status"]["privacyStatus"] == "private"
    assert body["status"]["publishAt"] == "2025-01-01T00:00:00Z"
    assert body["snippet"] == {"title": "T", "description": "D", "tags": ["a"], "categoryId": "22"}


def test_immediate_body_is_public():
    body = build_video_body("T", "", [], None, category_id="10")
    assert body["status"]["privacyStatus"] == "public"
    assert "publishAt" not in body["status"]
    assert body["snippet"]["categoryId"] == "10"


@patch("sheet_upload.uploader.MediaFileUpload")
def test_publish_returns_video_id(media_upload, tmp_path, video):
    request = MagicMock()
    request.next_chunk.side_effect = [(MagicMock(progress=lambda: 0.5), None), (None, {"id": "abc123"})]
    publisher, service = _publisher(tmp_path, request)

    assert publisher.publish(video, "T", "D", ["x"], None) == "abc123"
    kwargs = service.videos.return_value.insert.call_args.kwargs
    assert kwargs["part"] == "snippet,status"
    assert kwargs["body"]["status"]["privacyStatus"] == "public"


@patch("sheet_upload.uploader.MediaFileUpload")
def test_transient_errors_are_retried(media_upload, tmp_path, video):
    request = MagicMock()
    request.next_chunk.side_effect = [_http_error(503), (None, {"id": "later"})]
    publisher, _ = _publisher(tmp_path, request)
    assert publisher.publish(video, "T", "D", [], None) == "later"


@patch("sheet_upload.uploader.MediaFileUpload")
def test_rejections_become_publish_errors(media_upload, tmp_path, video):
    request = MagicMock()
    request.next_chunk.side_effect = _http_error(403, "quotaExceeded", "quota exceeded")
    publisher, _ = _publisher(tmp_path, request)
    with pytest.raises(PublishError) as excinfo:
        publisher.publish(video, "T", "D", [], None)
    assert excinfo.value.message == "quota exceeded"
    assert request.next_chunk.call_count == 1


@patch("sheet_upload.uploader.MediaFileUpload")
def test_retries_are_bounded(media_upload, tmp_path, video):
    request = MagicMock()
    request.next_chunk.side_effect = _http_error(500)
    publisher, _ = _publisher(tmp_path, request)
    with pytest.raises(PublishError):
        publisher.publish(video, "T", "D", [], None)
    assert request.next_chunk.call_count == 3


@patch("sheet_upload.uploader.MediaFileUpload")
def test_cancel_event_aborts_upload(media_upload, tmp_path, video):
    request = MagicMock()
    publisher, _ = _publisher(tmp_path, request)
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(UploadCancelled):
        publisher.publish(video, "T", "D", [], None, cancel_event=cancel)
    request.next_chunk.assert_not_called()


def test_missing_video_is_publish_error(tmp_path):
    publisher, _ = _publisher(tmp_path, MagicMock())
    with pytest.raises(PublishError):
        publisher.publish(tmp_path / "gone.mp4", "T", "D", [], None)


def test_should_retry():
    assert should_retry(_http_error(502))
    assert should_retry(_http_error(403, "userRateLimitExceeded"))
    assert not should_retry(_http_error(400, "invalidTitle"))


def test_missing_client_secret(tmp_path):
    with pytest.raises(CredentialSetupError):
        ensure_credentials(tmp_path)


@patch("sheet_upload.uploader.Credentials")
def test_no_browser_requires_valid_token(credentials, tmp_path):
    (tmp_path / "credentials.json").write_text("{}")
    (tmp_path / "token.json").write_text("{}")
    credentials.from_authorized_user_file.return_value = MagicMock(valid=False, expired=False)
    with pytest.raises(CredentialSetupError):
        ensure_credentials(tmp_path, allow_browser=False)


@patch("sheet_upload.uploader.Credentials")
def test_cached_token_is_reused(credentials, tmp_path):
    (tmp_path / "credentials.json").write_text("{}")
    (tmp_path / "token.json").write_text("{}")
    creds = MagicMock(valid=True, expired=False)
    creds.to_json.return_value = '{"token": "x"}'
    credentials.from_authorized_user_file.return_value = creds
    assert ensure_credentials(tmp_path, allow_browser=False) is creds
    assert (tmp_path / "token.json").read_text() == '{"token": "x"}'
