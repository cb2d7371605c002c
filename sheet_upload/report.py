"""Console and CSV renderings of a pipeline run."""
from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from .models import RunReport, format_instant


def iter_preview_lines(report: RunReport) -> Iterable[str]:
    header = f"{'Row':>4}  {'State':<12}  {'Identifier':<16}  {'Publish At':<20}  File"
    yield header
    yield '-' * len(header)
    for result in report.results:
        job = result.job
        file_name = job.media_path.name if job and job.media_path else '-'
        publish = format_instant(job.publish_at) if job and job.media_path else '-'
        yield (
            f"{result.row_number:>4}  {result.state.value:<12}  {(result.identifier or '-'):<16}  "
            f"{publish:<20}  {file_name}"
        )


def summary_lines(report: RunReport) -> Iterable[str]:
    yield f"  Uploaded: {report.uploaded}"
    yield f"  Simulated: {report.simulated}"
    yield f"  Missing files: {report.missing}"
    yield f"  Failed: {report.failed}"
    yield f"  Skipped: {report.skipped}"
    if report.cancelled:
        yield "  Run was cancelled before all rows were processed."


def write_report_csv(report: RunReport, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fieldnames = [
        'row',
        'identifier',
        'state',
        'media_path',
        'title',
        'slot',
        'publish_at',
        'status',
    ]
    with path.open('w', newline='', encoding='utf-8') as handle:
        writer = csv.DictWriter(handle, fieldnames=fieldnames)
        writer.writeheader()
        for result in report.results:
            job = result.job
            writer.writerow({
                'row': result.row_number,
                'identifier': result.identifier,
                'state': result.state.value,
                'media_path': str(job.media_path) if job and job.media_path else '',
                'title': job.title if job else '',
                'slot': '' if job is None or job.slot is None else job.slot,
                'publish_at': format_instant(job.publish_at) if job and job.media_path else '',
                'status': result.outcome.status_text() or '',
            })
