"""Google API client wrapper that publishes (optionally scheduled) YouTube uploads."""
from __future__ import annotations

import datetime as dt
import json
import logging
import pathlib
import threading
import time
from typing import List, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from google.auth.transport.requests import Request

from .config import Settings
from .models import PublishError, SheetUploadError, format_instant

TOKEN_FILENAME = "token.json"
CLIENT_SECRET_FILENAME = "credentials.json"
SCOPES = [
    "https://www.googleapis.com/auth/youtube.upload",
    "https://www.googleapis.com/auth/youtube",
]
RETRYABLE_STATUS = {500, 502, 503, 504}
RETRYABLE_REASONS = {"rateLimitExceeded", "userRateLimitExceeded", "backendError"}

logger = logging.getLogger("sheet_upload.uploader")


class CredentialSetupError(SheetUploadError, RuntimeError):
    """Raised when OAuth credentials cannot be prepared."""


class UploadCancelled(PublishError):
    """Raised when the run's cancel event is set during an upload."""

    def __init__(self) -> None:
        super().__init__("upload cancelled")


def ensure_credentials(directory: pathlib.Path, *, allow_browser: bool = True) -> Credentials:
    """Load cached credentials or run the OAuth flow to create them."""

    token_path = directory / TOKEN_FILENAME
    client_secret_path = directory / CLIENT_SECRET_FILENAME

    if not client_secret_path.exists():
        raise CredentialSetupError(
            f"Missing {client_secret_path}. Create an OAuth client (Desktop) in Google Cloud Console "
            f"and save its JSON as {CLIENT_SECRET_FILENAME}."
        )

    creds: Optional[Credentials] = None
    if token_path.exists():
        logger.info("Using cached OAuth token at %s", token_path)
        creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)

    if creds and creds.expired and creds.refresh_token:
        try:
            logger.info("Refreshing expired credentials")
            creds.refresh(Request())
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to refresh cached credentials: %s", exc)
            if not allow_browser:
                raise CredentialSetupError(
                    "Cached credentials expired and could not be refreshed automatically. Re-run authentication."
                ) from exc
            creds = None

    if not creds or not creds.valid:
        if not allow_browser:
            raise CredentialSetupError("No valid cached credentials available. Run the CLI locally to authenticate.")
        logger.info("Launching OAuth browser flow for YouTube upload scope")
        flow = InstalledAppFlow.from_client_secrets_file(str(client_secret_path), SCOPES)
        creds = flow.run_local_server(port=0)

    token_path.write_text(creds.to_json())
    logger.info("OAuth token updated at %s", token_path)
    return creds


def parse_error_reason(error: HttpError) -> str:
    try:
        data = json.loads(error.content.decode("utf-8"))
        return data["error"]["errors"][0].get("reason", "unknown")
    except Exception:  # noqa: BLE001
        return "unknown"


def error_message(error: HttpError) -> str:
    try:
        data = json.loads(error.content.decode("utf-8"))
        return data["error"].get("message") or str(error)
    except Exception:  # noqa: BLE001
        return str(error)


def should_retry(error: HttpError) -> bool:
    if error.resp.status in RETRYABLE_STATUS:
        return True
    return parse_error_reason(error) in RETRYABLE_REASONS


def build_video_body(
    title: str,
    description: str,
    tags: List[str],
    publish_at: Optional[dt.datetime],
    *,
    category_id: str = "22",
) -> dict:
    """Request body for videos.insert; scheduled uploads stay private until publishAt."""

    if publish_at is not None:
        status = {"privacyStatus": "private", "publishAt": format_instant(publish_at)}
    else:
        status = {"privacyStatus": "public"}
    status["selfDeclaredMadeForKids"] = False
    return {
        "snippet": {
            "title": title,
            "description": description,
            "tags": list(tags),
            "categoryId": category_id,
        },
        "status": status,
    }


class YoutubePublisher:
    """Publish local video files to the authenticated YouTube channel."""

    def __init__(self, settings: Settings, *, service=None, allow_browser: Optional[bool] = None) -> None:
        self.settings = settings
        if service is None:
            if allow_browser is None:
                allow_browser = not settings.no_browser
            creds = ensure_credentials(settings.credentials_dir, allow_browser=allow_browser)
            service = build("youtube", "v3", credentials=creds, cache_discovery=False)
        self.service = service
        self.sleep = time.sleep

    def publish(
        self,
        media_path: pathlib.Path,
        title: str,
        description: str,
        tags: List[str],
        publish_at: Optional[dt.datetime],
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        try:
            return self._upload(media_path, title, description, tags, publish_at, cancel_event)
        except PublishError:
            raise
        except HttpError as exc:
            raise PublishError(error_message(exc)) from exc
        except Exception as exc:  # noqa: BLE001
            raise PublishError(str(exc) or exc.__class__.__name__) from exc

    def _upload(
        self,
        media_path: pathlib.Path,
        title: str,
        description: str,
        tags: List[str],
        publish_at: Optional[dt.datetime],
        cancel_event: Optional[threading.Event],
    ) -> str:
        media_path = pathlib.Path(media_path)
        if not media_path.exists():
            raise PublishError(f"Video file not found: {media_path}")

        body = build_video_body(title, description, tags, publish_at, category_id=self.settings.category_id)
        media = MediaFileUpload(str(media_path), chunksize=self.settings.chunk_size, resumable=True)
        request = self.service.videos().insert(part="snippet,status", body=body, media_body=media)

        attempts = 0
        max_retries = self.settings.max_retries
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise UploadCancelled()
            try:
                status, response = request.next_chunk()
                if status:
                    logger.debug("Upload progress %.2f%% for %s", status.progress() * 100, media_path.name)
                if response is not None:
                    video_id = response.get("id")
                    if not video_id:
                        raise PublishError(f"Upload finished without a video id: {response}")
                    logger.info("Uploaded %s (videoId=%s)", media_path.name, video_id)
                    return video_id
            except HttpError as exc:
                attempts += 1
                if not should_retry(exc) or attempts >= max_retries:
                    raise
                logger.warning("YouTube API error on attempt %s/%s: %s", attempts, max_retries, exc)
                self.sleep(min(2 ** attempts, 60))
            except (ConnectionError, TimeoutError) as exc:
                attempts += 1
                if attempts >= max_retries:
                    raise
                logger.warning("Network error on attempt %s/%s: %s", attempts, max_retries, exc)
                self.sleep(min(2 ** attempts, 60))
