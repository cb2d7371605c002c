"""Map spreadsheet header labels onto the semantic upload fields."""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from .models import FieldIndex, SheetUploadError

logger = logging.getLogger("sheet_upload.headers")

DEFAULT_ID_COLUMN = '編號'
STATUS_HEADER = 'Uploaded'

# Accepted header labels per optional field, compared after normalize_header().
DEFAULT_LABELS: Dict[str, Sequence[str]] = {
    'title_primary': ('seo_title_zh',),
    'title_secondary': ('seo_title_en',),
    'description_primary': ('description_zh',),
    'description_secondary': ('description_en',),
    'tags': ('yt_tags',),
    'hashtags': ('hashtags',),
    'status': ('uploaded', '已上傳'),
}

# Substrings that mark an identifier column when the requested label is absent.
IDENTIFIER_HINTS = ('編號', 'id')


class MissingIdentifierColumnError(SheetUploadError):
    """Raised when no header cell can serve as the identifier column."""

    def __init__(self, id_column: str, header: Sequence[str]) -> None:
        super().__init__(f"Identifier column {id_column!r} not found. Header: {list(header)}")
        self.id_column = id_column
        self.header = list(header)


def normalize_header(value: object) -> str:
    if value is None:
        return ''
    return str(value).strip().casefold()


def _find_exact(normalized: List[str], labels: Sequence[str]) -> Optional[int]:
    wanted = {normalize_header(label) for label in labels}
    for pos, cell in enumerate(normalized):
        if cell and cell in wanted:
            return pos
    return None


def resolve_fields(
    header: List[str],
    id_column: str = DEFAULT_ID_COLUMN,
    *,
    labels: Optional[Mapping[str, Sequence[str]]] = None,
) -> FieldIndex:
    """Build a FieldIndex from *header*, appending a status column when missing.

    The header list is mutated in place when the status column has to be added.
    """

    merged: Dict[str, Sequence[str]] = dict(DEFAULT_LABELS)
    if labels:
        merged.update(labels)

    normalized = [normalize_header(cell) for cell in header]
    columns: Dict[str, int] = {}

    id_pos = _find_exact(normalized, (id_column,))
    if id_pos is None:
        for pos, cell in enumerate(normalized):
            if any(hint in cell for hint in IDENTIFIER_HINTS):
                id_pos = pos
                logger.info("Using column %r as identifier (requested %r not found)", header[pos], id_column)
                break
    if id_pos is None:
        raise MissingIdentifierColumnError(id_column, header)
    columns['identifier'] = id_pos

    for name, candidates in merged.items():
        if name == 'identifier':
            continue
        pos = _find_exact(normalized, candidates)
        if pos is not None:
            columns[name] = pos

    if 'status' not in columns:
        columns['status'] = len(header)
        header.append(STATUS_HEADER)
        logger.debug("Appended %r status column at position %s", STATUS_HEADER, columns['status'])

    return FieldIndex(columns=columns)
