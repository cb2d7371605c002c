"""Dataclasses describing sheet rows, schedules and per-row outcomes."""
from __future__ import annotations

import datetime as dt
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union

SheetMatrix = List[List[str]]

FIELD_NAMES = (
    'title_primary',
    'title_secondary',
    'description_primary',
    'description_secondary',
    'tags',
    'hashtags',
    'identifier',
    'status',
)

NOW_MARKER = 'NOW'


class SheetUploadError(Exception):
    """Base class for errors that abort a whole run."""


class PublishError(Exception):
    """Raised by a publisher when the remote service rejects an upload."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Publisher(Protocol):
    """Anything that can push one media file to the remote service."""

    def publish(
        self,
        media_path: Path,
        title: str,
        description: str,
        tags: List[str],
        publish_at: Optional[dt.datetime],
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """Upload and return the remote id; raise PublishError on rejection."""


@dataclass
class FieldIndex:
    """Semantic field name -> zero-based column position."""

    columns: Dict[str, int]

    @property
    def identifier(self) -> int:
        return self.columns['identifier']

    @property
    def status(self) -> int:
        return self.columns['status']

    def value(self, row: List[str], name: str) -> str:
        """Return the cell for *name* on *row*, or '' when the field or cell is absent."""

        pos = self.columns.get(name)
        if pos is None or pos >= len(row):
            return ''
        cell = row[pos]
        return '' if cell is None else str(cell)


# ----------------------------------------------------------------------
# Schedule configuration
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class Immediate:
    """Publish as soon as the upload completes."""


@dataclass(frozen=True)
class FixedInterval:
    start_at: dt.datetime
    interval_minutes: float


@dataclass(frozen=True)
class DailyBatches:
    start_date: dt.date
    time_of_day: dt.time
    per_day: int
    spacing_minutes: float


ScheduleConfig = Union[Immediate, FixedInterval, DailyBatches]


def is_scheduled(config: ScheduleConfig) -> bool:
    return not isinstance(config, Immediate)


# ----------------------------------------------------------------------
# Jobs
# ----------------------------------------------------------------------
@dataclass
class UploadJob:
    """One row's derived publish request."""

    row_number: int  # 1-based, as shown in the spreadsheet
    identifier: str
    media_path: Optional[Path]
    title: str
    description: str
    tags: List[str]
    slot: Optional[int] = None
    publish_at: Optional[dt.datetime] = None


# ----------------------------------------------------------------------
# Outcomes
# ----------------------------------------------------------------------
def format_instant(value: Optional[dt.datetime]) -> str:
    """Render an instant as ISO-8601 UTC, or NOW when absent."""

    if value is None:
        return NOW_MARKER
    if value.tzinfo is None:
        value = value.astimezone()
    return value.astimezone(dt.timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


@dataclass(frozen=True)
class Uploaded:
    timestamp: dt.datetime
    remote_id: str
    publish_at: Optional[dt.datetime]

    kind = 'uploaded'

    def status_text(self) -> str:
        return f"{format_instant(self.timestamp)} | videoId: {self.remote_id} | publishAt: {format_instant(self.publish_at)}"


@dataclass(frozen=True)
class Simulated:
    timestamp: dt.datetime
    media_file_name: str
    publish_at: Optional[dt.datetime]

    kind = 'simulated'

    def status_text(self) -> str:
        return (
            f"{format_instant(self.timestamp)} | SIMULATED | file: {self.media_file_name} "
            f"| publishAt: {format_instant(self.publish_at)}"
        )


@dataclass(frozen=True)
class MissingFile:
    kind = 'missing'

    def status_text(self) -> str:
        return 'MISSING FILE'


@dataclass(frozen=True)
class Failed:
    message: str

    kind = 'failed'

    def status_text(self) -> str:
        return f"ERROR: {self.message}"


@dataclass(frozen=True)
class Skipped:
    kind = 'skipped'

    def status_text(self) -> Optional[str]:
        # Skipped rows keep whatever their status cell already holds.
        return None


RowOutcome = Union[Uploaded, Simulated, MissingFile, Failed, Skipped]


class RowState(str, Enum):
    PENDING = 'pending'
    MATCH_FAILED = 'match_failed'
    READY = 'ready'
    SIMULATED = 'simulated'
    UPLOADED = 'uploaded'
    FAILED = 'failed'
    SKIPPED = 'skipped'


@dataclass
class RowResult:
    """Outcome of one row plus the slot counter to hand to the next row."""

    row_number: int
    identifier: str
    state: RowState
    outcome: RowOutcome
    next_slot: int
    job: Optional[UploadJob] = None


@dataclass
class RunReport:
    """Summary of a pipeline run, in row order."""

    fields: FieldIndex
    results: List[RowResult] = field(default_factory=list)
    cancelled: bool = False

    def count(self, kind: str) -> int:
        return sum(1 for result in self.results if result.outcome.kind == kind)

    @property
    def uploaded(self) -> int:
        return self.count('uploaded')

    @property
    def simulated(self) -> int:
        return self.count('simulated')

    @property
    def missing(self) -> int:
        return self.count('missing')

    @property
    def failed(self) -> int:
        return self.count('failed')

    @property
    def skipped(self) -> int:
        return self.count('skipped')
