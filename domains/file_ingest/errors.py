"""
Exceptions raised while moving a file through the ingest pipeline.

Every per-file failure is an ``IngestError``; stages catch it, log it and
drop the file without affecting the rest of the pipeline.
"""


class IngestError(Exception):
    """Base error for a single file's journey through the pipeline."""


class UnsupportedFileError(IngestError):
    """Path cannot be ingested as a unit (e.g. it is a directory)."""


class ClassificationError(IngestError):
    """Media-type classifier could not identify the content."""


class CommitError(IngestError):
    """Final move into the store, or duplicate removal, failed."""


class IngestCancelled(IngestError):
    """Shutdown was requested while the file was being processed."""
