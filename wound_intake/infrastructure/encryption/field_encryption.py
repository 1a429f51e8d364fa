"""Field-level encryption for sensitive case-record fields.

Security Impact:
    - AES-256-GCM with a fresh 12-byte IV per value (authenticated encryption)
    - Every payload carries its key version so keys can be rotated; older keys
      stay available for decryption only
    - Keys never leave this module and are never logged

Architecture:
    - Infrastructure implementation of ``CryptoPort``
    - Payloads are ``EncryptedField`` models with base64 members
"""

import base64
import logging
import os
from typing import Mapping, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from wound_intake.domain.case_record import EncryptedField
from wound_intake.domain.ports import CryptoPort, EncryptionError
from wound_intake.infrastructure.config_manager import EncryptionConfig, decode_key

logger = logging.getLogger(__name__)

IV_LENGTH = 12
TAG_LENGTH = 16


def encrypt_field(plaintext: str, key: bytes, key_version: int) -> EncryptedField:
    """Encrypt one value with AES-256-GCM.

    The GCM tag is split from the ciphertext and stored as ``auth_tag``.
    """
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return EncryptedField(
        ciphertext=base64.b64encode(ciphertext).decode("ascii"),
        iv=base64.b64encode(iv).decode("ascii"),
        auth_tag=base64.b64encode(tag).decode("ascii"),
        key_version=key_version,
    )


def decrypt_field(payload: EncryptedField, key: bytes) -> str:
    """Decrypt a payload produced by ``encrypt_field``.

    Raises:
        EncryptionError: If the payload was tampered with or the key is wrong
    """
    try:
        iv = base64.b64decode(payload.iv)
        sealed = base64.b64decode(payload.ciphertext) + base64.b64decode(payload.auth_tag)
        return AESGCM(key).decrypt(iv, sealed, None).decode("utf-8")
    except (InvalidTag, ValueError) as e:
        raise EncryptionError(f"Unable to decrypt field (key version {payload.key_version})") from e


class EnvKeyCryptoProvider(CryptoPort):
    """AES-256-GCM provider keyed from configuration.

    Parameters:
        key: Active 32-byte key
        key_version: Version stamped on new payloads
        legacy_keys: Older keys by version (decryption only)

    Example Usage:
        ```python
        provider = EnvKeyCryptoProvider.from_config(config_manager.encryption)
        payload = provider.encrypt("Ada")
        assert provider.decrypt(payload) == "Ada"
        ```
    """

    def __init__(self, key: bytes, key_version: int = 1, legacy_keys: Optional[Mapping[int, bytes]] = None):
        if len(key) != 32:
            raise ValueError("Encryption key must be 32 bytes for AES-256-GCM")
        self._keys: dict[int, bytes] = {}
        for version, legacy in (legacy_keys or {}).items():
            if len(legacy) != 32:
                raise ValueError(f"Legacy key {version} must be 32 bytes")
            self._keys[int(version)] = legacy
        self._keys[key_version] = key
        self.key_version = key_version
        logger.debug(f"Field encryption initialized with key version {key_version} ({len(self._keys) - 1} legacy)")

    @classmethod
    def from_config(cls, config: EncryptionConfig) -> "EnvKeyCryptoProvider":
        """Build a provider from ``EncryptionConfig``.

        Raises:
            EncryptionError: If no active key is configured
        """
        if not config.enabled:
            raise EncryptionError("Missing encryption key env var: FIELD_ENCRYPTION_KEY")
        return cls(
            key=decode_key(config.key.get_secret_value()),
            key_version=config.key_version,
            legacy_keys={
                version: decode_key(secret.get_secret_value(), f"Legacy key {version}")
                for version, secret in config.legacy_keys.items()
            },
        )

    def encrypt(self, plaintext: str) -> EncryptedField:
        return encrypt_field(plaintext, self._keys[self.key_version], self.key_version)

    def decrypt(self, payload: EncryptedField) -> str:
        key = self._keys.get(payload.key_version)
        if key is None:
            raise EncryptionError(f"No encryption key available for version {payload.key_version}")
        return decrypt_field(payload, key)


def generate_field_key() -> str:
    """Generate a new base64 AES-256 key for ``FIELD_ENCRYPTION_KEY``."""
    return base64.b64encode(AESGCM.generate_key(bit_length=256)).decode("ascii")
