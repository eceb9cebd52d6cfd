from pathlib import Path

from hashdrop.utils.config import ExtensionPolicy, Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.extension_policy == ExtensionPolicy.ORIGINAL
    assert settings.hash_buffer_size == 1024 * 1024
    assert settings.sniff_bytes == 3072
    assert settings.allow_cross_device is False


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("HASHDROP_STORE_DIR", str(tmp_path / "store"))
    monkeypatch.setenv("HASHDROP_EXTENSION_POLICY", "mime_preferred")
    monkeypatch.setenv("HASHDROP_IDENTIFY_WORKERS", "8")

    settings = Settings(_env_file=None)

    assert settings.store_dir == Path(tmp_path / "store")
    assert settings.extension_policy == ExtensionPolicy.MIME_PREFERRED
    assert settings.identify_workers == 8


def test_ignored_suffixes_are_parsed():
    settings = Settings(_env_file=None, ignored_suffixes=" .PART, .tmp ,,")

    assert settings.get_ignored_suffixes() == {".part", ".tmp"}
