"""Locate the media file that belongs to a sheet identifier."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger("sheet_upload.media")


def list_media_files(folder: Path) -> List[str]:
    """Return the regular file names directly inside *folder*, sorted.

    Listing failures yield an empty list.
    """

    try:
        with os.scandir(folder) as entries:
            names = [entry.name for entry in entries if entry.is_file()]
    except OSError as exc:
        logger.debug("Cannot list media folder %s: %s", folder, exc)
        return []
    return sorted(names)


def find_media_file(folder: Path, identifier: str) -> Optional[Path]:
    """Return the file whose stem equals *identifier*, else the first stem starting with it."""

    if not identifier:
        return None
    names = list_media_files(folder)
    for name in names:
        if Path(name).stem == identifier:
            return Path(folder) / name
    for name in names:
        if Path(name).stem.startswith(identifier):
            return Path(folder) / name
    return None
