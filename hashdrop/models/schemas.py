"""
Pydantic models for hashdrop.

Shared data models passed between pipeline stages.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional
from pydantic import BaseModel


# =====================================================
# Watcher Models
# =====================================================

class EventKind(str, Enum):
    """Kind of a filesystem change notification."""
    CREATED = "created"
    MODIFIED = "modified"
    OTHER = "other"


class WatchEvent(BaseModel):
    """Raw change notification from the event source."""
    path: Path
    kind: EventKind
    is_directory: bool = False


# =====================================================
# Ingest Models
# =====================================================

class FileRecord(BaseModel):
    """Identity and classification of one claimed file."""
    original_name: str
    original_extension: str  # includes leading dot, or empty
    size: int
    modified_at: datetime
    media_type: str
    media_extension: str  # suggested by media type, or empty
    sha256: bytes
    sha256_hex: str


class OutcomeKind(str, Enum):
    """Terminal outcome of a committed file."""
    STORED = "stored"
    DUPLICATE_DISCARDED = "duplicate-discarded"


class IngestOutcome(BaseModel):
    """Result reported by the commit stage for one file."""
    kind: OutcomeKind
    sha256_hex: str
    store_path: Path
    record: Optional[FileRecord] = None  # only set for stored files


class PipelineStats(BaseModel):
    """Counters accumulated over one pipeline run."""
    stored: int = 0
    duplicates: int = 0
    failed: int = 0
