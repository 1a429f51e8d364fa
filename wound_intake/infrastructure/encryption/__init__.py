"""Field encryption and PIN hashing."""

from wound_intake.infrastructure.encryption.field_encryption import (
    EnvKeyCryptoProvider,
    generate_field_key,
)
from wound_intake.infrastructure.encryption.pin_hash import PinHasher, generate_pin

__all__ = ["EnvKeyCryptoProvider", "generate_field_key", "PinHasher", "generate_pin"]
