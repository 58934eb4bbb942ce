"""Tests for configuration loading and storage backend selection."""

from __future__ import annotations

from pathlib import Path

import pytest

from fragments.exceptions import ConfigurationError
from fragments.settings import Settings
from fragments.storage import create_store, get_store, set_store
from fragments.storage.local import LocalStore
from fragments.storage.memory import MemoryStore
from fragments.storage.s3 import S3Store


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("FRAGMENTS_STORAGE", "FRAGMENTS_CONFIG", "API_URL"):
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults():
    settings = Settings()
    assert settings.storage.backend == "memory"
    assert settings.api.max_body_bytes == 5 * 1024 * 1024
    assert settings.api.public_url == "http://localhost:8080"


def test_load_yaml(tmp_path):
    path = _write(
        tmp_path,
        "storage:\n  backend: local\n  root: /var/lib/fragments\n  prefix: /frag/\napi:\n  max_body_mb: 2\n",
    )
    settings = Settings.load(path)
    assert settings.storage.backend == "local"
    assert settings.storage.root == Path("/var/lib/fragments")
    assert settings.storage.prefix == "frag"
    assert settings.api.max_body_bytes == 2 * 1024 * 1024


def test_shipped_default_config_loads():
    settings = Settings.load(Path(__file__).parent.parent / "config" / "default.yaml")
    assert settings.storage.backend == "memory"


def test_empty_file_gives_defaults(tmp_path):
    assert Settings.load(_write(tmp_path, "")) == Settings()


def test_missing_explicit_file(tmp_path):
    with pytest.raises(ConfigurationError):
        Settings.load(tmp_path / "missing.yaml")


def test_missing_file_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("FRAGMENTS_CONFIG", str(tmp_path / "missing.yaml"))
    with pytest.raises(ConfigurationError):
        Settings.load()


@pytest.mark.parametrize(
    "text",
    ["storage:\n  backend: dynamodb\n", "api:\n  max_body_mb: 0\n", "storage: [1, 2]\n"],
)
def test_invalid_configuration(tmp_path, text):
    with pytest.raises(ConfigurationError):
        Settings.load(_write(tmp_path, text))


def test_environment_overrides_backend(monkeypatch):
    monkeypatch.setenv("FRAGMENTS_STORAGE", " Local ")
    assert Settings().storage.effective_backend == "local"


def test_api_url_from_environment(monkeypatch):
    monkeypatch.setenv("API_URL", "https://fragments.example.com/")
    assert Settings().api.public_url == "https://fragments.example.com"


def test_create_memory_store():
    assert isinstance(create_store(Settings()), MemoryStore)


def test_create_local_store(tmp_path):
    settings = Settings(storage={"backend": "local", "root": str(tmp_path)})
    store = create_store(settings)
    assert isinstance(store, LocalStore)
    assert store.root == tmp_path


def test_create_s3_store():
    settings = Settings(storage={"backend": "s3", "bucket": "fragments", "region": "us-east-1"})
    store = create_store(settings)
    assert isinstance(store, S3Store)
    assert store.bucket == "fragments"


def test_s3_requires_bucket():
    with pytest.raises(ConfigurationError):
        create_store(Settings(storage={"backend": "s3"}))


def test_unknown_backend_from_environment(monkeypatch):
    monkeypatch.setenv("FRAGMENTS_STORAGE", "dynamodb")
    with pytest.raises(ConfigurationError):
        create_store(Settings())


def test_set_store_overrides_process_store():
    store = MemoryStore()
    set_store(store)
    try:
        assert get_store() is store
    finally:
        set_store(None)
