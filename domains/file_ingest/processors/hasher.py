"""
Content identification for staged files.

Streams a staged file once through SHA-256, then sniffs its leading bytes to
classify the media type. The result is a ``FileRecord``.
"""

import hashlib
import stat
import threading
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Tuple

from loguru import logger

from domains.file_ingest.errors import IngestCancelled, UnsupportedFileError
from hashdrop.models.schemas import FileRecord
from hashdrop.utils.helpers import split_extension, timestamp_to_utc

# Maps a leading byte prefix to (media_type, suggested_extension)
Classifier = Callable[[bytes], Tuple[str, str]]


def hash_stream(
    stream: BinaryIO,
    buffer_size: int = 1024 * 1024,
    stop_event: Optional[threading.Event] = None,
) -> "hashlib._Hash":
    """
    Feed a binary stream into a SHA-256 accumulator.

    Args:
        stream: Open binary stream, positioned at the start
        buffer_size: Read size per chunk in bytes
        stop_event: Checked between chunks; when set the read is abandoned

    Returns:
        Finalizable hashlib object

    Raises:
        IngestCancelled: If stop_event is set mid-read
    """
    digest = hashlib.sha256()
    buf = bytearray(buffer_size)
    view = memoryview(buf)

    while True:
        if stop_event is not None and stop_event.is_set():
            raise IngestCancelled("Shutdown requested during hashing")

        n = stream.readinto(buf)
        if not n:
            break
        digest.update(view[:n])

    return digest


def hash_file(path: Path, buffer_size: int = 1024 * 1024) -> str:
    """Return the lowercase hex SHA-256 of a file's contents."""
    with open(path, "rb") as fh:
        return hash_stream(fh, buffer_size).hexdigest()


def identify_file(
    path: Path,
    classifier: Classifier,
    buffer_size: int = 1024 * 1024,
    sniff_bytes: int = 3072,
    stop_event: Optional[threading.Event] = None,
) -> FileRecord:
    """
    Compute identity and classification for a staged file.

    Args:
        path: Staged file path
        classifier: Callable mapping a byte prefix to (media_type, extension)
        buffer_size: Hash read buffer size in bytes
        sniff_bytes: Length of the prefix handed to the classifier
        stop_event: Cancellation signal

    Returns:
        Populated FileRecord

    Raises:
        OSError: File vanished or is unreadable
        UnsupportedFileError: Path is a directory
        ClassificationError: Classifier rejected the content
        IngestCancelled: Shutdown requested mid-read
    """
    stats = path.stat()
    if stat.S_ISDIR(stats.st_mode):
        raise UnsupportedFileError(f"Directories are not supported: {path}")

    with open(path, "rb") as fh:
        digest = hash_stream(fh, buffer_size, stop_event)
        fh.seek(0)
        prefix = fh.read(sniff_bytes)

    media_type, media_extension = classifier(prefix)

    record = FileRecord(
        original_name=path.name,
        original_extension=split_extension(path.name),
        size=stats.st_size,
        modified_at=timestamp_to_utc(stats.st_mtime),
        media_type=media_type,
        media_extension=media_extension,
        sha256=digest.digest(),
        sha256_hex=digest.hexdigest(),
    )

    logger.debug(f"Identified {path.name}: {record.media_type} {record.sha256_hex}")
    return record
