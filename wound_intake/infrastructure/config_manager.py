"""Configuration Manager for Secure Credential Handling.

This module provides a configuration manager for storage, text-generation and
field-encryption settings. Secrets (API keys, encryption keys, PIN pepper) are
held as ``SecretStr`` so they never appear in logs, reprs or error messages.

Security Impact:
    - Credentials are never logged or exposed in error messages
    - Encryption keys are validated (base64, 32 bytes) before use
    - Validates configuration before use (fail-fast)

Architecture:
    - Infrastructure layer, isolated from the domain core
    - Type-safe configuration using Pydantic models
    - Loaded from environment variables via ``ConfigManager.from_environment``
"""

import base64
import binascii
import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, SecretStr, field_validator

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "models/gemini-1.5-flash-latest"
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
FIELD_KEY_BYTES = 32


def decode_key(value: str, label: str = "encryption key") -> bytes:
    """Decode a base64 AES-256 key and check its length.

    Raises:
        ValueError: If the value is not base64 or not 32 bytes
    """
    try:
        key = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"{label} must be base64 encoded") from e
    if len(key) != FIELD_KEY_BYTES:
        raise ValueError(f"{label} must be {FIELD_KEY_BYTES} bytes for AES-256-GCM")
    return key


class StorageConfig(BaseModel):
    """Case-record storage configuration.

    Parameters:
        backend: ``memory`` (one in-process repository per case) or ``duckdb``
        db_path: DuckDB file path or ``:memory:``
    """

    backend: str = Field("memory", description="Storage backend (memory, duckdb)")
    db_path: Optional[str] = Field(None, description="Path to DuckDB database file")

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        supported = ["memory", "duckdb"]
        if v.lower() not in supported:
            raise ValueError(f"Unsupported storage backend: {v}. Supported: {supported}")
        return v.lower()

    @field_validator("db_path")
    @classmethod
    def validate_db_path(cls, v: Optional[str]) -> Optional[str]:
        """Validate the database directory exists (the file may not yet)."""
        if v is None or v == ":memory:":
            return v
        db_path_obj = Path(v)
        if not db_path_obj.parent.exists():
            raise ValueError(f"Database directory does not exist: {db_path_obj.parent}")
        return str(db_path_obj)


class LlmConfig(BaseModel):
    """Text-generation (Gemini) configuration.

    Security Impact:
        - The API key is a SecretStr and is only unwrapped when building the
          request URL
    """

    api_key: Optional[SecretStr] = Field(None, description="Gemini API key (secret)")
    model: str = DEFAULT_GEMINI_MODEL
    api_base_url: str = DEFAULT_GEMINI_BASE_URL
    temperature: float = Field(0.2, ge=0, le=2)
    max_output_tokens: int = Field(1024, gt=0)
    top_p: float = Field(0.8, ge=0, le=1)
    top_k: int = Field(40, gt=0)
    timeout: float = Field(30.0, gt=0, description="Request timeout in seconds")

    @property
    def enabled(self) -> bool:
        return self.api_key is not None and bool(self.api_key.get_secret_value())


class EncryptionConfig(BaseModel):
    """Field-encryption configuration.

    Parameters:
        key: Active base64 AES-256 key (secret)
        key_version: Version stamped on new payloads
        legacy_keys: Older keys by version, used for decryption only
        pin_pepper: Pepper appended to PINs before hashing (secret)
    """

    key: Optional[SecretStr] = None
    key_version: int = Field(1, ge=1)
    legacy_keys: dict[int, SecretStr] = Field(default_factory=dict)
    pin_pepper: Optional[SecretStr] = None

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: Optional[SecretStr]) -> Optional[SecretStr]:
        if v is not None and v.get_secret_value():
            decode_key(v.get_secret_value(), "FIELD_ENCRYPTION_KEY")
        return v

    @field_validator("legacy_keys")
    @classmethod
    def validate_legacy_keys(cls, v: dict[int, SecretStr]) -> dict[int, SecretStr]:
        for version, secret in v.items():
            decode_key(secret.get_secret_value(), f"Legacy key {version}")
        return v

    @property
    def enabled(self) -> bool:
        return self.key is not None and bool(self.key.get_secret_value())


class ConfigManager:
    """Loads and caches typed configuration.

    Example Usage:
        ```python
        manager = ConfigManager.from_environment()
        if manager.encryption.enabled:
            ...
        ```
    """

    def __init__(
        self,
        storage: Optional[StorageConfig] = None,
        llm: Optional[LlmConfig] = None,
        encryption: Optional[EncryptionConfig] = None,
    ):
        self.storage = storage or StorageConfig()
        self.llm = llm or LlmConfig()
        self.encryption = encryption or EncryptionConfig()

    @classmethod
    def from_environment(cls) -> "ConfigManager":
        """Build configuration from environment variables.

        Environment:
            WI_STORAGE_BACKEND, WI_DB_PATH, GEMINI_API_KEY, GEMINI_MODEL,
            GEMINI_API_BASE_URL, FIELD_ENCRYPTION_KEY,
            FIELD_ENCRYPTION_KEY_VERSION, FIELD_ENCRYPTION_LEGACY_KEYS (JSON
            object of version to base64 key), PIN_HASH_PEPPER

        Raises:
            ValueError: If a variable is malformed (messages never echo secrets)
        """
        storage = StorageConfig(
            backend=os.getenv("WI_STORAGE_BACKEND", "memory"),
            db_path=os.getenv("WI_DB_PATH"),
        )

        llm_kwargs = {}
        if os.getenv("GEMINI_MODEL"):
            llm_kwargs["model"] = os.environ["GEMINI_MODEL"]
        if os.getenv("GEMINI_API_BASE_URL"):
            llm_kwargs["api_base_url"] = os.environ["GEMINI_API_BASE_URL"]
        llm = LlmConfig(api_key=os.getenv("GEMINI_API_KEY") or None, **llm_kwargs)

        legacy_raw = os.getenv("FIELD_ENCRYPTION_LEGACY_KEYS")
        legacy: dict[int, str] = {}
        if legacy_raw:
            try:
                legacy = {int(version): key for version, key in json.loads(legacy_raw).items()}
            except (ValueError, AttributeError) as e:
                raise ValueError("FIELD_ENCRYPTION_LEGACY_KEYS must be a JSON object of version to key") from e

        encryption = EncryptionConfig(
            key=os.getenv("FIELD_ENCRYPTION_KEY") or None,
            key_version=int(os.getenv("FIELD_ENCRYPTION_KEY_VERSION", "1")),
            legacy_keys=legacy,
            pin_pepper=os.getenv("PIN_HASH_PEPPER") or None,
        )

        logger.debug(
            f"Configuration loaded (storage={storage.backend}, llm={'on' if llm.enabled else 'off'}, "
            f"encryption={'on' if encryption.enabled else 'off'})"
        )
        return cls(storage=storage, llm=llm, encryption=encryption)
