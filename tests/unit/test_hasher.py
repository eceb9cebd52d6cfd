import hashlib
import threading

import pytest

from domains.file_ingest.errors import IngestCancelled, UnsupportedFileError
from domains.file_ingest.processors.hasher import hash_file, identify_file


def fake_classify(prefix: bytes):
    if not prefix:
        return "application/x-empty", ""
    return "text/plain", ".txt"


def test_hash_file_matches_hashlib_across_buffer_sizes(tmp_path):
    data = b"abc" * 10_000
    path = tmp_path / "blob.bin"
    path.write_bytes(data)

    expected = hashlib.sha256(data).hexdigest()
    assert hash_file(path) == expected
    assert hash_file(path, buffer_size=7) == expected


def test_identify_file_populates_record(tmp_path):
    path = tmp_path / "a.txt"
    path.write_bytes(b"hello")

    record = identify_file(path, fake_classify)

    assert record.original_name == "a.txt"
    assert record.original_extension == ".txt"
    assert record.size == 5
    assert record.media_type == "text/plain"
    assert record.media_extension == ".txt"
    assert record.sha256 == hashlib.sha256(b"hello").digest()
    assert record.sha256_hex == hashlib.sha256(b"hello").hexdigest()
    assert record.modified_at.tzinfo is not None


def test_identify_file_sniffs_prefix_from_start(tmp_path):
    path = tmp_path / "big.dat"
    path.write_bytes(b"HEAD" + b"x" * 10_000)
    seen = []

    def classifier(prefix):
        seen.append(prefix)
        return "application/octet-stream", ".bin"

    identify_file(path, classifier, buffer_size=64, sniff_bytes=16)

    assert seen == [b"HEAD" + b"x" * 12]


def test_identify_empty_file(tmp_path):
    path = tmp_path / "empty.bin"
    path.write_bytes(b"")

    record = identify_file(path, fake_classify)

    assert record.size == 0
    assert record.media_type == "application/x-empty"
    assert record.sha256_hex == hashlib.sha256(b"").hexdigest()


def test_identify_dotfile_has_no_extension(tmp_path):
    path = tmp_path / ".env"
    path.write_bytes(b"KEY=1")

    assert identify_file(path, fake_classify).original_extension == ""


def test_identify_directory_is_unsupported(tmp_path):
    directory = tmp_path / "folder"
    directory.mkdir()

    with pytest.raises(UnsupportedFileError):
        identify_file(directory, fake_classify)


def test_identify_missing_file_raises_oserror(tmp_path):
    with pytest.raises(FileNotFoundError):
        identify_file(tmp_path / "gone.txt", fake_classify)


def test_identify_honours_stop_event(tmp_path):
    path = tmp_path / "a.txt"
    path.write_bytes(b"hello")
    stop = threading.Event()
    stop.set()

    with pytest.raises(IngestCancelled):
        identify_file(path, fake_classify, stop_event=stop)
