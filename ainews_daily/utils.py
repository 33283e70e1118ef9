"""Utility functions for AI News Daily."""

import hashlib
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from urllib.parse import urlparse

import structlog

logger = structlog.get_logger(__name__)


def extract_domain(url: str) -> str:
    """Extract domain from URL, without a leading ``www.``.

    Args:
        url: URL string

    Returns:
        Domain name, or ``unknown`` when the URL has no host
    """
    try:
        domain = urlparse(url).netloc.lower()
    except ValueError:
        return "unknown"

    if domain.startswith("www."):
        domain = domain[4:]

    return domain or "unknown"


def generate_content_hash(content: str) -> str:
    """Generate SHA-256 hash of content.

    Args:
        content: Content to hash

    Returns:
        Hexadecimal hash string
    """
    return hashlib.sha256(content.encode('utf-8')).hexdigest()


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_date_string(date_str: str) -> datetime | None:
    """Parse various date string formats.

    Args:
        date_str: Date string to parse

    Returns:
        Timezone-aware datetime or None if parsing fails
    """
    if not date_str:
        return None

    date_str = date_str.strip()

    # ISO 8601 first, the crawler writes Date.toISOString()
    try:
        return ensure_utc(datetime.fromisoformat(date_str.replace("Z", "+00:00")))
    except ValueError:
        pass

    # RFC 2822, common in RSS feeds
    try:
        from email.utils import parsedate_to_datetime
        return ensure_utc(parsedate_to_datetime(date_str))
    except (ValueError, TypeError):
        pass

    formats = [
        "%Y-%m-%d %H:%M:%S",
        "%d/%m/%Y",
        "%B %d, %Y",
        "%b %d, %Y",
        "%d %B %Y",
        "%d %b %Y",
    ]

    for fmt in formats:
        try:
            return datetime.strptime(date_str, fmt).replace(tzinfo=UTC)
        except ValueError:
            continue

    logger.warning("Failed to parse date string", date_string=date_str)
    return None


def format_datetime_iso(dt: datetime) -> str:
    """Format datetime as an ISO string with millisecond precision and ``Z``.

    Args:
        dt: Datetime to format

    Returns:
        ISO formatted datetime string
    """
    return ensure_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    """Truncate text to maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text

    return text[:max_length - len(suffix)].rstrip() + suffix


def ensure_directory(path: str | Path, mode: int = 0o755) -> Path:
    """Ensure directory exists.

    Args:
        path: Directory path
        mode: Directory permissions for newly created directories

    Returns:
        Path object
    """
    path_obj = Path(path)
    path_obj.mkdir(parents=True, exist_ok=True, mode=mode)
    return path_obj


def write_atomic(file_path: str | Path, content: bytes, permissions: int = 0o644) -> None:
    """Write a file so readers never observe a partial document.

    The content goes to a temporary file in the target directory which is
    then renamed over the destination.

    Args:
        file_path: Destination path
        content: File content
        permissions: File permissions of the committed file
    """
    path_obj = Path(file_path)
    ensure_directory(path_obj.parent)

    fd, tmp_name = tempfile.mkstemp(
        dir=path_obj.parent, prefix=f".{path_obj.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, permissions)
        os.replace(tmp_name, path_obj)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
