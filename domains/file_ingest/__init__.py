"""
File Ingestion Domain

Moves files dropped into the input directory into a content-addressed store:
- Claim → atomic rename from the input directory into staging
- Identify → SHA-256 content hash and libmagic media type
- Commit → rename to <store>/<sha256>[.ext], discarding duplicates

State lives entirely in the staging and store directory layout.
"""

__all__ = ["collectors", "processors"]
