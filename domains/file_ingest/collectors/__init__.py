"""
File Ingestion Collectors

Long-running services that monitor the input directory and process files:
- watcher.py - watchdog subscription and candidate filtering
- dedupe_collector.py - Staged pipeline with content deduplication
"""
