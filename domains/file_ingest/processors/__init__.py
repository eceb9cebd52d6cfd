"""
File Ingestion Processors

Per-file processing steps used by the ingest pipeline:
- claim.py - Ownership transfer into staging and crash recovery
- hasher.py - Content-based hash calculation and identification
- classifier.py - libmagic media-type sniffing
- router.py - Canonical store path, extension policy and commit
"""
