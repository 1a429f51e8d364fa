"""Tests for environment-driven configuration."""

import json

import pytest

from wound_intake.infrastructure.config_manager import (
    DEFAULT_GEMINI_MODEL,
    ConfigManager,
    EncryptionConfig,
    StorageConfig,
    decode_key,
)
from wound_intake.infrastructure.encryption.field_encryption import generate_field_key

ENV_VARS = (
    "WI_STORAGE_BACKEND",
    "WI_DB_PATH",
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "GEMINI_API_BASE_URL",
    "FIELD_ENCRYPTION_KEY",
    "FIELD_ENCRYPTION_KEY_VERSION",
    "FIELD_ENCRYPTION_LEGACY_KEYS",
    "PIN_HASH_PEPPER",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestConfigManager:
    """Test suite for ConfigManager.from_environment."""

    def test_defaults(self, clean_env):
        manager = ConfigManager.from_environment()

        assert manager.storage.backend == "memory"
        assert manager.llm.enabled is False
        assert manager.llm.model == DEFAULT_GEMINI_MODEL
        assert manager.encryption.enabled is False
        assert manager.encryption.pin_pepper is None

    def test_full_environment(self, clean_env, tmp_path):
        key = generate_field_key()
        legacy = generate_field_key()
        clean_env.setenv("WI_STORAGE_BACKEND", "DuckDB")
        clean_env.setenv("WI_DB_PATH", str(tmp_path / "intake.duckdb"))
        clean_env.setenv("GEMINI_API_KEY", "secret-api-key")
        clean_env.setenv("GEMINI_MODEL", "models/custom")
        clean_env.setenv("FIELD_ENCRYPTION_KEY", key)
        clean_env.setenv("FIELD_ENCRYPTION_KEY_VERSION", "2")
        clean_env.setenv("FIELD_ENCRYPTION_LEGACY_KEYS", json.dumps({"1": legacy}))
        clean_env.setenv("PIN_HASH_PEPPER", "pepper")

        manager = ConfigManager.from_environment()

        assert manager.storage.backend == "duckdb"
        assert manager.llm.enabled is True
        assert manager.llm.model == "models/custom"
        assert manager.encryption.key_version == 2
        assert set(manager.encryption.legacy_keys) == {1}
        assert manager.encryption.pin_pepper.get_secret_value() == "pepper"

    def test_secrets_not_in_repr(self, clean_env):
        clean_env.setenv("GEMINI_API_KEY", "secret-api-key")
        assert "secret-api-key" not in repr(ConfigManager.from_environment().llm)

    def test_malformed_legacy_keys(self, clean_env):
        clean_env.setenv("FIELD_ENCRYPTION_LEGACY_KEYS", "[1, 2]")
        with pytest.raises(ValueError, match="FIELD_ENCRYPTION_LEGACY_KEYS"):
            ConfigManager.from_environment()

    def test_invalid_key_rejected(self, clean_env):
        clean_env.setenv("FIELD_ENCRYPTION_KEY", "bm90LTMyLWJ5dGVz")
        with pytest.raises(ValueError):
            ConfigManager.from_environment()


class TestConfigModels:
    """Test suite for the configuration models."""

    def test_unsupported_backend(self):
        with pytest.raises(ValueError):
            StorageConfig(backend="postgresql")

    def test_missing_db_directory(self, tmp_path):
        with pytest.raises(ValueError, match="does not exist"):
            StorageConfig(backend="duckdb", db_path=str(tmp_path / "absent" / "x.duckdb"))

    def test_decode_key(self):
        assert len(decode_key(generate_field_key())) == 32
        with pytest.raises(ValueError, match="base64"):
            decode_key("not base64!!")

    def test_empty_key_disables_encryption(self):
        assert EncryptionConfig(key="").enabled is False
