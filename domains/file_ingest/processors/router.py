"""
Content-addressed routing and commit into the store.

Resolves the canonical store path for an identified file and moves the staged
copy there, or discards it when the store already holds the same content.

The staging and store directories must be on the same filesystem for the final
move to be an atomic rename. ``allow_cross_device`` enables a copy, fsync,
rename and delete sequence for other layouts; that path is not atomic.
"""

import errno
import mimetypes
import os
import shutil
from pathlib import Path

from loguru import logger

from domains.file_ingest.errors import CommitError
from hashdrop.models.schemas import FileRecord, IngestOutcome, OutcomeKind
from hashdrop.utils.config import ExtensionPolicy


def extension_matches(media_type: str, extension: str) -> bool:
    """Check whether ``extension`` is registered for ``media_type``."""
    if not extension:
        return False

    known = {ext.lower() for ext in mimetypes.guess_all_extensions(media_type, strict=False)}
    return extension.lower() in known


def select_extension(record: FileRecord, policy: ExtensionPolicy) -> str:
    """
    Choose the extension of the canonical store path.

    Args:
        record: Identified file
        policy: ORIGINAL keeps the original extension (or none);
            MIME_PREFERRED swaps in the media-type extension when the
            original one does not belong to the detected type

    Returns:
        Extension including the leading dot, or empty string
    """
    if policy == ExtensionPolicy.MIME_PREFERRED:
        if record.media_extension and not extension_matches(
            record.media_type, record.original_extension
        ):
            return record.media_extension

    return record.original_extension


def canonical_path(store_dir: Path, sha256_hex: str, extension: str) -> Path:
    """Build ``<store_dir>/<sha256_hex><extension>``."""
    return store_dir / f"{sha256_hex}{extension}"


PARTIAL_SUFFIX = ".partial"


def partial_path(dest: Path) -> Path:
    """Hidden temp path used while copying ``dest`` across devices."""
    return dest.parent / f".{dest.name}{PARTIAL_SUFFIX}"


def remove_stale_partials(store_dir: Path) -> int:
    """
    Delete temp files left in the store by an interrupted cross-device copy.

    Args:
        store_dir: Content-addressed store directory

    Returns:
        Number of files removed
    """
    removed = 0
    for stale in store_dir.glob(f".*{PARTIAL_SUFFIX}"):
        stale.unlink(missing_ok=True)
        logger.warning(f"Removed interrupted copy: {stale}")
        removed += 1
    return removed


def _copy_across_devices(source: Path, dest: Path):
    """Copy to a temp file beside ``dest``, fsync, rename into place, delete source."""
    temp_path = partial_path(dest)

    try:
        with open(source, "rb") as src, open(temp_path, "wb") as dst:
            shutil.copyfileobj(src, dst)
            dst.flush()
            os.fsync(dst.fileno())
        os.replace(temp_path, dest)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise

    source.unlink()


def commit_file(
    staged_path: Path,
    record: FileRecord,
    store_dir: Path,
    policy: ExtensionPolicy = ExtensionPolicy.ORIGINAL,
    allow_cross_device: bool = False,
) -> IngestOutcome:
    """
    Move a staged file to its canonical store path, deduplicating by hash.

    Args:
        staged_path: Claimed file in the staging directory
        record: Identity of the staged file
        store_dir: Content-addressed store directory
        policy: Extension selection policy
        allow_cross_device: Permit the non-atomic copy fallback on EXDEV

    Returns:
        STORED or DUPLICATE_DISCARDED outcome

    Raises:
        CommitError: Staged file could not be moved or removed
    """
    target = canonical_path(store_dir, record.sha256_hex, select_extension(record, policy))

    if target.exists():
        try:
            staged_path.unlink()
        except OSError as e:
            raise CommitError(f"Couldn't remove duplicate {staged_path}: {e}") from e

        logger.success(f"Duplicate discarded: {record.original_name} matches {target.name}")
        return IngestOutcome(
            kind=OutcomeKind.DUPLICATE_DISCARDED,
            sha256_hex=record.sha256_hex,
            store_path=target,
        )

    try:
        os.rename(staged_path, target)
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise CommitError(f"Error moving {staged_path} to {target}: {e}") from e
        if not allow_cross_device:
            raise CommitError(
                f"Staging and store are on different filesystems, cannot move {staged_path}"
            ) from e

        logger.warning(f"Cross-device commit, falling back to non-atomic copy: {staged_path}")
        try:
            _copy_across_devices(staged_path, target)
        except OSError as copy_error:
            raise CommitError(
                f"Cross-device copy failed for {staged_path}: {copy_error}"
            ) from copy_error

    logger.success(f"Stored: {record.original_name} -> {target.name}")
    return IngestOutcome(
        kind=OutcomeKind.STORED,
        sha256_hex=record.sha256_hex,
        store_path=target,
        record=record,
    )
