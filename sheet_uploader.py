"""CLI tool that uploads the videos listed in an Excel sheet and records the results in it."""
from __future__ import annotations

import argparse
import datetime as dt
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Iterable, Optional, Sequence

from sheet_upload import SheetUploadError, build_schedule, read_sheet, run_pipeline, write_sheet
from sheet_upload.config import Settings, load_settings
from sheet_upload.report import iter_preview_lines, summary_lines, write_report_csv
from sheet_upload.schedule import SCHEDULE_TYPES, describe_schedule

logger = logging.getLogger("sheet_upload.cli")


def print_lines(lines: Iterable[str]) -> None:
    for line in lines:
        print(line)


def prompt(message: str, default: str | None = None) -> str:
    suffix = f" [{default}]" if default else ""
    while True:
        value = input(f"{message}{suffix}: ").strip()
        if value:
            return value
        if default:
            return default
        print("Value required. Please try again.")


def confirm(message: str, default: bool = False) -> bool:
    hint = "Y/n" if default else "y/N"
    choice = input(f"{message} [{hint}]: ").strip().lower()
    if not choice:
        return default
    return choice in {"y", "yes"}


def parse_args(argv: Sequence[str], settings: Settings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Upload videos listed in an Excel sheet to YouTube, optionally scheduling their release.'
    )
    parser.add_argument('--excel', help='Path to the .xlsx workbook.')
    parser.add_argument('--sheet', help=f"Worksheet name (default: {settings.default_sheet}).")
    parser.add_argument(
        '--id-column',
        help=f"Header of the column matching video file names (default: {settings.id_column}).",
    )
    parser.add_argument('--folder', help='Folder containing the video files.')
    parser.add_argument(
        '--run',
        action='store_true',
        help='Upload to YouTube. Default is a simulation that only writes SIMULATED statuses.',
    )
    parser.add_argument('--schedule', type=str.lower, choices=SCHEDULE_TYPES, help='Publish schedule (default: none).')
    parser.add_argument('--start-at', help='interval: first publish time, ISO 8601 (naive = local time; default: five minutes from now).')
    parser.add_argument('--interval', help='interval: minutes between videos (default: 10).')
    parser.add_argument('--start-date', help='daily: first publish date YYYY-MM-DD (default: today).')
    parser.add_argument('--time', dest='time_of_day', help='daily: publish time HH:MM (default: 10:00).')
    parser.add_argument('--per-day', help='daily: videos per day (default: 1).')
    parser.add_argument('--spacing', help='daily: minutes between videos on the same day (default: 1).')
    parser.add_argument(
        '--skip-completed',
        action='store_true',
        help='Skip rows whose status already records a successful upload.',
    )
    parser.add_argument('--report', help='Optional path for a CSV report of the run.')
    parser.add_argument(
        '--no-browser',
        action='store_true',
        help='Disable launching a browser for OAuth; requires a valid cached token.',
    )
    parser.add_argument(
        '--interactive',
        action='store_true',
        help='Prompt for any option not given on the command line.',
    )
    return parser.parse_args(argv)


def fill_interactively(args: argparse.Namespace, settings: Settings) -> None:
    """Ask for every missing option, the way the original prompt-driven tool did."""

    args.excel = args.excel or prompt('Excel file to read (.xlsx)', './data.xlsx')
    args.sheet = args.sheet or prompt('Worksheet name', settings.default_sheet)
    args.id_column = args.id_column or prompt('Column matching video file names', settings.id_column)
    args.folder = args.folder or prompt('Video folder', './videos')
    if not args.run:
        args.run = confirm('Upload to YouTube? (No = simulate and only write SIMULATED statuses)', default=True)

    if not args.schedule:
        args.schedule = prompt(f"Publish schedule ({'/'.join(SCHEDULE_TYPES)})", 'none')
    args.schedule = args.schedule.strip().lower()
    if args.schedule == 'interval':
        args.start_at = args.start_at or prompt('First publish time (ISO 8601)', _default_start_at())
        args.interval = args.interval or prompt('Minutes between videos', '10')
    elif args.schedule == 'daily':
        args.start_date = args.start_date or prompt('First publish date (YYYY-MM-DD)', dt.date.today().isoformat())
        args.time_of_day = args.time_of_day or prompt('Daily publish time (HH:MM)', '10:00')
        args.per_day = args.per_day or prompt('Videos per day', '1')
        args.spacing = args.spacing or prompt('Minutes between videos on the same day', '1')


def _default_start_at() -> str:
    soon = dt.datetime.now(dt.timezone.utc) + dt.timedelta(minutes=5)
    return soon.strftime('%Y-%m-%dT%H:%M:%SZ')


def schedule_from_args(args: argparse.Namespace):
    return build_schedule(
        args.schedule or 'none',
        start_at=args.start_at or _default_start_at(),
        interval_minutes=args.interval if args.interval is not None else 10,
        start_date=args.start_date or dt.date.today().isoformat(),
        time_of_day=args.time_of_day or '10:00',
        per_day=args.per_day if args.per_day is not None else 1,
        spacing_minutes=args.spacing if args.spacing is not None else 1,
    )


def validate_excel_path(raw: Optional[str]) -> Path:
    if not raw:
        raise ValueError('An Excel file is required (--excel).')
    path = Path(raw).resolve()
    if not path.exists():
        raise ValueError(f"Excel file not found: {path}")
    if path.suffix.lower() != '.xlsx':
        raise ValueError(f"Only .xlsx workbooks are supported: {path}")
    return path


def main(argv: Sequence[str] | None = None, *, settings: Settings | None = None) -> int:
    settings = settings or load_settings()
    args = parse_args(sys.argv[1:] if argv is None else argv, settings)
    logging.basicConfig(level=settings.log_level, format="%(levelname)s: %(message)s")

    if args.interactive:
        fill_interactively(args, settings)

    sheet_name = args.sheet or settings.default_sheet
    id_column = args.id_column or settings.id_column
    folder = Path(args.folder or './videos').resolve()

    try:
        excel_path = validate_excel_path(args.excel)
        schedule = schedule_from_args(args)
        matrix = read_sheet(excel_path, sheet_name)
    except (ValueError, SheetUploadError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Schedule: {describe_schedule(schedule)}")
    print(f"Mode: {'upload' if args.run else 'simulation'}")

    publisher = None
    if args.run:
        # Imported lazily so simulations never touch the Google client stack.
        from sheet_upload.uploader import YoutubePublisher

        try:
            allow_browser = not (args.no_browser or settings.no_browser)
            publisher = YoutubePublisher(settings, allow_browser=allow_browser)
        except Exception as exc:  # noqa: BLE001
            print(f"Failed to initialize YouTube client: {exc}", file=sys.stderr)
            return 1

    cancel_event = threading.Event()
    previous_handler = signal.signal(signal.SIGINT, lambda *_: cancel_event.set())
    try:
        report = run_pipeline(
            matrix,
            media_folder=folder,
            schedule=schedule,
            publisher=publisher,
            simulate=not args.run,
            id_column=id_column,
            skip_completed=args.skip_completed,
            cancel_event=cancel_event,
        )
    except SheetUploadError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    try:
        write_sheet(excel_path, sheet_name, matrix)
    except (OSError, SheetUploadError) as exc:
        logger.exception("Failed to write results back to %s", excel_path)
        print(f"Error: could not save results: {exc}", file=sys.stderr)
        return 1

    print('\nProcessed rows:')
    print_lines(iter_preview_lines(report))
    print('\nSummary:')
    print_lines(summary_lines(report))
    print(f"  Results written to: {excel_path} [{sheet_name}]")

    if args.report:
        report_path = Path(args.report)
        write_report_csv(report, report_path)
        print(f"  Report saved to: {report_path}")

    if report.failed:
        print('\nSome uploads failed. Fix the issues and re-run with --skip-completed to retry only those rows.')
        return 2
    return 0


if __name__ == '__main__':
    sys.exit(main())
