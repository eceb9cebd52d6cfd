from domains.file_ingest.processors.claim import claim_file, recover_staged_files, staging_target


def test_claim_moves_file_into_staging(tmp_path):
    inbox = tmp_path / "in"
    staging = tmp_path / "staging"
    inbox.mkdir()
    staging.mkdir()
    candidate = inbox / "a.txt"
    candidate.write_text("hello")

    staged = claim_file(candidate, staging)

    assert staged == staging / "a.txt"
    assert staged.read_text() == "hello"
    assert not candidate.exists()


def test_claim_skips_when_target_already_staged(tmp_path):
    inbox = tmp_path / "in"
    staging = tmp_path / "staging"
    inbox.mkdir()
    staging.mkdir()
    candidate = inbox / "a.txt"
    candidate.write_text("new")
    (staging / "a.txt").write_text("old")

    assert claim_file(candidate, staging) is None
    assert candidate.read_text() == "new"
    assert (staging / "a.txt").read_text() == "old"


def test_second_claim_of_same_candidate_is_dropped(tmp_path):
    inbox = tmp_path / "in"
    staging = tmp_path / "staging"
    inbox.mkdir()
    staging.mkdir()
    candidate = inbox / "a.txt"
    candidate.write_text("hello")

    assert claim_file(candidate, staging) is not None
    assert claim_file(candidate, staging) is None


def test_claim_of_vanished_candidate_is_dropped(tmp_path):
    staging = tmp_path / "staging"
    staging.mkdir()

    assert claim_file(tmp_path / "missing.txt", staging) is None
    assert list(staging.iterdir()) == []


def test_staging_target_uses_basename(tmp_path):
    assert staging_target(tmp_path, tmp_path / "deep" / "x.bin") == tmp_path / "x.bin"


def test_recover_lists_files_and_skips_directories(tmp_path):
    (tmp_path / "b.txt").write_text("b")
    (tmp_path / "a.txt").write_text("a")
    (tmp_path / "nested").mkdir()

    assert recover_staged_files(tmp_path) == [tmp_path / "a.txt", tmp_path / "b.txt"]


def test_recover_missing_staging_is_empty(tmp_path):
    assert recover_staged_files(tmp_path / "nope") == []
