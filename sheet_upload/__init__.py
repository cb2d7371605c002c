"""Spreadsheet-driven, scheduled YouTube uploads."""

from .headers import DEFAULT_ID_COLUMN, MissingIdentifierColumnError, resolve_fields  # noqa: F401
from .media import find_media_file  # noqa: F401
from .models import (  # noqa: F401
    DailyBatches,
    Failed,
    FieldIndex,
    FixedInterval,
    Immediate,
    MissingFile,
    PublishError,
    RowState,
    RunReport,
    SheetUploadError,
    Simulated,
    Skipped,
    Uploaded,
    UploadJob,
)
from .pipeline import EmptySheetError, parse_status, process_row, run_pipeline  # noqa: F401
from .schedule import ScheduleConfigError, build_schedule, publish_at  # noqa: F401
from .workbook import WorkbookNotFoundError, read_sheet, write_sheet  # noqa: F401

__all__ = [
    "DEFAULT_ID_COLUMN",
    "DailyBatches",
    "EmptySheetError",
    "Failed",
    "FieldIndex",
    "FixedInterval",
    "Immediate",
    "MissingFile",
    "MissingIdentifierColumnError",
    "PublishError",
    "RowState",
    "RunReport",
    "ScheduleConfigError",
    "SheetUploadError",
    "Simulated",
    "Skipped",
    "UploadJob",
    "Uploaded",
    "WorkbookNotFoundError",
    "build_schedule",
    "find_media_file",
    "parse_status",
    "process_row",
    "publish_at",
    "read_sheet",
    "resolve_fields",
    "run_pipeline",
    "write_sheet",
]
