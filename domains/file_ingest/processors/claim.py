"""
Ownership transfer from the input directory into staging.

A file belongs to whoever renames it into the staging directory. No in-process
lock is involved: ``os.rename`` succeeds for at most one caller per source, and
the existence of the staging target decides who already won.
"""

import os
from pathlib import Path
from typing import List, Optional

from loguru import logger


def staging_target(staging_dir: Path, candidate: Path) -> Path:
    """Return the staging path a candidate is claimed into."""
    return staging_dir / candidate.name


def claim_file(candidate: Path, staging_dir: Path) -> Optional[Path]:
    """
    Claim a candidate file by renaming it into the staging directory.

    Args:
        candidate: Path reported by the watcher
        staging_dir: Staging directory on the same filesystem

    Returns:
        Staged path on success, None if the file was dropped
    """
    target = staging_target(staging_dir, candidate)

    if target.exists():
        logger.debug(f"Already claimed, skipping: {candidate}")
        return None

    try:
        os.rename(candidate, target)
    except FileNotFoundError:
        # Racing notification for a file that was already moved
        logger.debug(f"Candidate vanished before claim: {candidate}")
        return None
    except OSError as e:
        logger.warning(f"Failed to claim {candidate}: {e}")
        return None

    logger.info(f"Claimed: {candidate} -> {target}")
    return target


def recover_staged_files(staging_dir: Path) -> List[Path]:
    """
    Enumerate files left in staging by a previous run.

    Sub-directories are reported and skipped.

    Args:
        staging_dir: Staging directory

    Returns:
        Sorted list of staged file paths
    """
    try:
        entries = sorted(staging_dir.iterdir())
    except FileNotFoundError:
        logger.warning(f"Staging directory missing, nothing to recover: {staging_dir}")
        return []

    staged = []
    for entry in entries:
        if entry.is_dir():
            logger.warning(f"Skipping directory in staging: {entry}")
            continue
        staged.append(entry)

    if staged:
        logger.info(f"Recovering {len(staged)} staged files from {staging_dir}")

    return staged
