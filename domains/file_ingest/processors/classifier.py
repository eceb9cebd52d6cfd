"""Media-type sniffing for staged files.

Wraps libmagic (via ``python-magic``) as a pure function of a byte prefix and
pairs the detected media type with the extension registered for it in the
standard ``mimetypes`` table.
"""

from __future__ import annotations

import mimetypes
from typing import Tuple

import magic

from domains.file_ingest.errors import ClassificationError


def suggest_extension(media_type: str) -> str:
    """Return the preferred extension for ``media_type`` or an empty string."""

    return mimetypes.guess_extension(media_type, strict=False) or ""


def classify(prefix: bytes) -> Tuple[str, str]:
    """Classify a leading byte prefix.

    Returns:
        Tuple of (media_type, suggested_extension)

    Raises:
        ClassificationError: libmagic failed or returned nothing usable
    """

    try:
        media_type = magic.from_buffer(prefix, mime=True)
    except magic.MagicException as e:
        raise ClassificationError(f"libmagic failed: {e}") from e

    if not media_type:
        raise ClassificationError("libmagic returned an empty media type")

    return media_type, suggest_extension(media_type)
