"""
Helper utilities for hashdrop.

Common path and formatting functions used across the ingest domain.
"""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable


def normalise_path(path: Path) -> Path:
    """Return a resolved version of ``path`` without forcing existence."""
    try:
        return Path(path).expanduser().resolve()
    except FileNotFoundError:
        return Path(path).expanduser().absolute()


def split_extension(name: str) -> str:
    """
    Get the extension of a file name, including the leading dot.

    Dotfiles such as ``.bashrc`` have no extension.

    Args:
        name: Base file name

    Returns:
        Extension (e.g. ``.txt``) or empty string
    """
    return os.path.splitext(name)[1]


def timestamp_to_utc(ts: float) -> datetime:
    """Convert a POSIX timestamp to an aware UTC datetime."""
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def format_bytes(bytes_count: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_count < 1024.0:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1024.0
    return f"{bytes_count:.1f} PB"


def has_ignored_suffix(path: Path, suffixes: Iterable[str]) -> bool:
    """
    Check if path ends with one of the ignored suffixes.

    Args:
        path: File path
        suffixes: Lowercase suffixes including the leading dot

    Returns:
        True if the path should be ignored, False otherwise
    """
    name = path.name.lower()
    return any(name.endswith(suffix) for suffix in suffixes)


def same_filesystem(first: Path, second: Path) -> bool:
    """Check whether two existing paths live on the same device."""
    return first.stat().st_dev == second.stat().st_dev

