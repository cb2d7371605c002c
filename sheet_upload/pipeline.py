"""Row-by-row processing: match media, plan publish time, publish, record status."""
from __future__ import annotations

import datetime as dt
import logging
import threading
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Sequence

from .headers import DEFAULT_ID_COLUMN, resolve_fields
from .media import find_media_file
from .models import (
    Failed,
    FieldIndex,
    MissingFile,
    PublishError,
    Publisher,
    RowOutcome,
    RowResult,
    RowState,
    RunReport,
    ScheduleConfig,
    SheetMatrix,
    SheetUploadError,
    Simulated,
    Skipped,
    Uploaded,
    UploadJob,
    is_scheduled,
)
from .schedule import publish_at as compute_publish_at

logger = logging.getLogger("sheet_upload.pipeline")

Clock = Callable[[], dt.datetime]


class EmptySheetError(SheetUploadError):
    """Raised when the worksheet has no header row."""


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# ----------------------------------------------------------------------
# Job composition
# ----------------------------------------------------------------------
def compose_title(primary: str, secondary: str, fallback: str) -> str:
    primary, secondary = primary.strip(), secondary.strip()
    joiner = ' / ' if primary and secondary else ''
    return f"{primary}{joiner}{secondary}".strip() or fallback


def compose_description(primary: str, secondary: str, hashtags: str) -> str:
    primary, secondary = primary.strip(), secondary.strip()
    joiner = '\n\n' if primary and secondary else ''
    description = f"{primary}{joiner}{secondary}".strip()
    hashtags = hashtags.strip()
    if hashtags:
        description = f"{description}\n\n{hashtags}" if description else hashtags
    return description


def split_tags(raw: str) -> List[str]:
    return [tag.strip() for tag in raw.split(',') if tag.strip()]


def build_job(row_number: int, row: List[str], fields: FieldIndex, media_folder: Path) -> Optional[UploadJob]:
    """Derive the upload job for *row*; None when the identifier cell is empty."""

    identifier = fields.value(row, 'identifier').strip()
    if not identifier:
        return None
    return UploadJob(
        row_number=row_number,
        identifier=identifier,
        media_path=find_media_file(media_folder, identifier),
        title=compose_title(
            fields.value(row, 'title_primary'),
            fields.value(row, 'title_secondary'),
            identifier,
        ),
        description=compose_description(
            fields.value(row, 'description_primary'),
            fields.value(row, 'description_secondary'),
            fields.value(row, 'hashtags'),
        ),
        tags=split_tags(fields.value(row, 'tags')),
    )


# ----------------------------------------------------------------------
# Per-row state machine
# ----------------------------------------------------------------------
def process_row(
    row_number: int,
    row: List[str],
    *,
    fields: FieldIndex,
    media_folder: Path,
    schedule: ScheduleConfig,
    slot: int,
    publisher: Optional[Publisher] = None,
    simulate: bool = False,
    now: Clock = utc_now,
    cancel_event: Optional[threading.Event] = None,
) -> RowResult:
    """Run one row through Pending -> MatchFailed | Ready -> Simulated | Uploaded | Failed.

    *slot* is the number of scheduled uploads that succeeded so far; the
    returned RowResult carries the value to use for the following row.
    """

    job = build_job(row_number, row, fields, media_folder)
    if job is None:
        logger.info("Row %s has no identifier, skipping", row_number)
        return RowResult(row_number, '', RowState.SKIPPED, Skipped(), slot)

    if job.media_path is None:
        logger.warning("Row %s (%s): no matching file in %s", row_number, job.identifier, media_folder)
        return RowResult(row_number, job.identifier, RowState.MATCH_FAILED, MissingFile(), slot, job)

    scheduled = is_scheduled(schedule)
    if scheduled:
        job.slot = slot
    job.publish_at = compute_publish_at(slot, schedule)
    advanced = slot + 1 if scheduled else slot

    logger.info(
        "Row %s id=%s file=%s title=%r publishAt=%s",
        row_number,
        job.identifier,
        job.media_path.name,
        job.title,
        job.publish_at.isoformat() if job.publish_at else 'NOW',
    )

    if simulate:
        outcome: RowOutcome = Simulated(now(), job.media_path.name, job.publish_at)
        return RowResult(row_number, job.identifier, RowState.SIMULATED, outcome, advanced, job)

    if publisher is None:
        raise ValueError("A publisher is required unless simulate=True")

    try:
        remote_id = publisher.publish(
            job.media_path,
            job.title,
            job.description,
            job.tags,
            job.publish_at,
            cancel_event=cancel_event,
        )
    except PublishError as exc:
        logger.error("Row %s (%s) upload failed: %s", row_number, job.identifier, exc.message)
        return RowResult(row_number, job.identifier, RowState.FAILED, Failed(exc.message), slot, job)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Row %s (%s) upload failed unexpectedly", row_number, job.identifier)
        message = str(exc) or 'upload failed'
        return RowResult(row_number, job.identifier, RowState.FAILED, Failed(message), slot, job)

    logger.info("Row %s uploaded, videoId=%s", row_number, remote_id)
    outcome = Uploaded(now(), remote_id, job.publish_at)
    return RowResult(row_number, job.identifier, RowState.UPLOADED, outcome, advanced, job)


# ----------------------------------------------------------------------
# Status cell text
# ----------------------------------------------------------------------
def _parse_timestamp(value: str) -> Optional[dt.datetime]:
    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    try:
        return dt.datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_status(text: str) -> Optional[RowOutcome]:
    """Parse a status cell written by this tool back into a RowOutcome."""

    text = (text or '').strip()
    if not text:
        return None
    if text == 'MISSING FILE':
        return MissingFile()
    if text.startswith('ERROR:'):
        return Failed(text[len('ERROR:'):].strip())

    parts = [part.strip() for part in text.split(' | ')]
    if len(parts) < 3 or not parts[-1].startswith('publishAt:'):
        return None
    timestamp = _parse_timestamp(parts[0])
    if timestamp is None:
        return None
    publish_raw = parts[-1][len('publishAt:'):].strip()
    publish_value = None if publish_raw == 'NOW' else _parse_timestamp(publish_raw)
    if publish_raw != 'NOW' and publish_value is None:
        return None

    if len(parts) == 3 and parts[1].startswith('videoId:'):
        return Uploaded(timestamp, parts[1][len('videoId:'):].strip(), publish_value)
    if len(parts) == 4 and parts[1] == 'SIMULATED' and parts[2].startswith('file:'):
        return Simulated(timestamp, parts[2][len('file:'):].strip(), publish_value)
    return None


def write_status(row: List[str], fields: FieldIndex, outcome: RowOutcome) -> None:
    text = outcome.status_text()
    if text is None:
        return
    pos = fields.status
    if len(row) <= pos:
        row.extend([''] * (pos + 1 - len(row)))
    row[pos] = text


# ----------------------------------------------------------------------
# Whole-sheet run
# ----------------------------------------------------------------------
def run_pipeline(
    matrix: SheetMatrix,
    *,
    media_folder: Path,
    schedule: ScheduleConfig,
    publisher: Optional[Publisher] = None,
    simulate: bool = False,
    id_column: str = DEFAULT_ID_COLUMN,
    labels: Optional[Mapping[str, Sequence[str]]] = None,
    skip_completed: bool = False,
    cancel_event: Optional[threading.Event] = None,
    now: Clock = utc_now,
) -> RunReport:
    """Process every data row of *matrix* in order, writing statuses in place.

    Header problems raise before any row is touched. Row-level problems are
    recorded in the status column and never stop the run.
    """

    if not matrix:
        raise EmptySheetError("Worksheet has no rows")
    if not simulate and publisher is None:
        raise ValueError("A publisher is required unless simulate=True")

    fields = resolve_fields(matrix[0], id_column, labels=labels)
    report = RunReport(fields=fields)
    slot = 0

    for index in range(1, len(matrix)):
        row_number = index + 1
        if cancel_event is not None and cancel_event.is_set():
            logger.warning("Run cancelled before row %s; remaining rows left untouched", row_number)
            report.cancelled = True
            break

        row = matrix[index]
        if skip_completed and isinstance(parse_status(fields.value(row, 'status')), Uploaded):
            identifier = fields.value(row, 'identifier').strip()
            logger.info("Row %s (%s) already uploaded, skipping", row_number, identifier)
            result = RowResult(row_number, identifier, RowState.SKIPPED, Skipped(), slot)
        else:
            result = process_row(
                row_number,
                row,
                fields=fields,
                media_folder=media_folder,
                schedule=schedule,
                slot=slot,
                publisher=publisher,
                simulate=simulate,
                now=now,
                cancel_event=cancel_event,
            )
        write_status(row, fields, result.outcome)
        slot = result.next_slot
        report.results.append(result)

    return report
