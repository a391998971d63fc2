"""Projection of stored file records into display records.

Pure functions only: nothing here touches the store. Relative dates depend on
"now", so they are recomputed on every projection and never persisted.
"""
import math
from datetime import datetime, timezone
from typing import Optional, Union

from filestore.schemas.file import FileItem, FileType, StoredFile

SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]
MS_PER_DAY = 1000 * 60 * 60 * 24

# Checked in order; substring rules overlap, so order matters
_PREFIX_RULES = [
    ("image/", FileType.IMAGE),
    ("video/", FileType.VIDEO),
    ("audio/", FileType.AUDIO),
]
_SUBSTRING_RULES = [
    (("zip", "rar", "tar"), FileType.ARCHIVE),
    (("pdf", "document", "text"), FileType.DOCUMENT),
]


def classify(mime_type: Optional[str]) -> FileType:
    """Map a content type to its coarse display category."""
    mime_type = mime_type or ""
    for prefix, file_type in _PREFIX_RULES:
        if mime_type.startswith(prefix):
            return file_type
    for needles, file_type in _SUBSTRING_RULES:
        if any(needle in mime_type for needle in needles):
            return file_type
    return FileType.OTHER


def _trim_number(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def format_size(size_bytes: int) -> str:
    """Human-readable size, e.g. 1536 -> "1.5 KB".

    Units stop at GB; larger sizes are expressed in GB.
    """
    if size_bytes < 0:
        raise ValueError(f"Size cannot be negative: {size_bytes}")
    if size_bytes == 0:
        return "0 Bytes"

    # floor(log1024(size)) clamped to the unit list, exact at powers of 1024
    index = 0
    while index < len(SIZE_UNITS) - 1 and size_bytes >= 1024 ** (index + 1):
        index += 1
    magnitude = size_bytes / math.pow(1024, index)
    # Half-up rounding to two decimals
    rounded = math.floor(magnitude * 100 + 0.5) / 100
    return f"{_trim_number(rounded)} {SIZE_UNITS[index]}"


def _as_utc(value: Union[datetime, str]) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def format_relative_date(timestamp: Union[datetime, str], now: Optional[datetime] = None) -> str:
    """Render a timestamp relative to now: Today, Yesterday, "<n> days ago",
    or a locale date once a week or more has passed.

    Timestamps in the future (clock skew) count as Today.
    """
    moment = _as_utc(timestamp)
    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)

    elapsed_ms = (now - moment).total_seconds() * 1000
    diff_days = math.floor(elapsed_ms / MS_PER_DAY)

    if diff_days <= 0:
        return "Today"
    if diff_days == 1:
        return "Yesterday"
    if diff_days < 7:
        return f"{diff_days} days ago"
    return moment.astimezone().strftime("%x")


def project(stored: StoredFile, now: Optional[datetime] = None) -> FileItem:
    """Build the display record for one stored file."""
    return FileItem(
        id=stored.id,
        name=stored.name,
        type=classify(stored.mime_type),
        size=format_size(stored.size_bytes),
        modified=format_relative_date(stored.created_at, now),
    )
