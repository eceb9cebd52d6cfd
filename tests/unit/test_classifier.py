import pytest

pytest.importorskip("magic", reason="python-magic and libmagic are required for classifier tests")

from domains.file_ingest.processors.classifier import classify, suggest_extension  # noqa: E402


def test_classify_plain_text():
    assert classify(b"hello world\n") == ("text/plain", ".txt")


def test_classify_pdf_header():
    media_type, extension = classify(b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n1 0 obj\n")

    assert media_type == "application/pdf"
    assert extension == ".pdf"


def test_classify_empty_prefix_does_not_fail():
    media_type, extension = classify(b"")

    assert media_type
    assert extension == suggest_extension(media_type)


def test_suggest_extension_unknown_type_is_empty():
    assert suggest_extension("application/x-hashdrop-unknown") == ""
