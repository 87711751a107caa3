"""Utility functions for vault-state."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
import logging
import os
import tempfile

logger = logging.getLogger(__name__)


# ============= Atomic Write Helpers =============

def _fsync_dir(path: Path) -> None:
    """Fsync a directory so a rename or link inside it is durable.

    Best-effort: Windows and some filesystems don't support directory fsync.
    """
    try:
        # Use O_DIRECTORY flag if available (Linux)
        flags = os.O_RDONLY
        if hasattr(os, "O_DIRECTORY"):
            flags |= os.O_DIRECTORY

        dirfd = os.open(str(path), flags)
        try:
            os.fsync(dirfd)
        finally:
            os.close(dirfd)
    except OSError:
        logger.debug("Directory fsync not supported for %s", path)


def _write_temp(path: Path, text: str) -> Path:
    """Write text to a fsynced temp file next to ``path`` and return it."""
    path.parent.mkdir(parents=True, exist_ok=True)

    f = tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        delete=False,
        dir=path.parent,
        prefix=f".{path.name}.tmp-",
        suffix=""
    )
    tmp = Path(f.name)
    try:
        with f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    return tmp


def atomic_write_text(path: Path, text: str) -> None:
    """Atomically create or overwrite a text file with crash safety.

    1. Writes to temp file with fsync to ensure content is on disk
    2. Atomic rename to target path (appears all-at-once)
    3. Fsync parent directory to ensure rename is durable

    Args:
        path: Target file path
        text: Text content to write
    """
    tmp = _write_temp(path, text)
    try:
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    _fsync_dir(path.parent)


def atomic_create_text(path: Path, text: str) -> None:
    """Atomically create a text file that must not already exist.

    The complete content is written to a temp file first and then hard-linked
    to the target name, so the target either does not exist or holds the full
    content. Linking fails if the name is taken, which makes creation
    exclusive even between concurrent writers.

    Raises:
        FileExistsError: If ``path`` already exists
    """
    tmp = _write_temp(path, text)
    try:
        os.link(tmp, path)
    finally:
        tmp.unlink(missing_ok=True)
    _fsync_dir(path.parent)


# ============= Time Helpers =============

def utc_now() -> datetime:
    """Get the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def get_iso_timestamp(now: Optional[datetime] = None) -> str:
    """Get an ISO 8601 UTC timestamp with millisecond precision.

    Examples:
        datetime(2026, 10, 19, 4, 5, tzinfo=utc) -> "2026-10-19T04:05:00.000Z"
    """
    now = now or utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def get_period(now: Optional[datetime] = None) -> str:
    """Get the tracking period (UTC calendar day) as YYYY-MM-DD."""
    return get_iso_timestamp(now)[:10]


# ============= Display Helpers =============

def humanize_size(size: float) -> str:
    """Convert bytes to human-readable format."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def humanize_date(iso_string: str) -> str:
    """Convert ISO 8601 timestamp to human-readable relative time.

    Examples:
        "2024-01-15T10:30:45Z" -> "2 hours ago"
        "2024-01-10T10:30:45Z" -> "5 days ago"
    """
    try:
        dt = datetime.fromisoformat(iso_string.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        seconds = (utc_now() - dt).total_seconds()

        if seconds < 60:
            return "just now"
        elif seconds < 3600:
            minutes = int(seconds / 60)
            return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
        elif seconds < 86400:
            hours = int(seconds / 3600)
            return f"{hours} hour{'s' if hours != 1 else ''} ago"
        elif seconds < 2592000:
            days = int(seconds / 86400)
            return f"{days} day{'s' if days != 1 else ''} ago"
        elif seconds < 31536000:
            months = int(seconds / 2592000)
            return f"{months} month{'s' if months != 1 else ''} ago"
        else:
            years = int(seconds / 31536000)
            return f"{years} year{'s' if years != 1 else ''} ago"
    except (ValueError, AttributeError):
        # If parsing fails, return the original string
        return iso_string
