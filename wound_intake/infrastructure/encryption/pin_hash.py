"""Clinician PIN generation and hashing.

Security Impact:
    - PINs are generated with ``secrets`` and returned to the caller once
    - Hashes use scrypt with a random 16-byte salt and a server-side pepper
    - Verification is constant time and never raises on malformed hashes
"""

import base64
import hmac
import logging
import secrets
from typing import Optional

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from wound_intake.domain.ports import PinHashResult

logger = logging.getLogger(__name__)

HASH_SCHEME = "scrypt"
SALT_BYTES = 16
KEY_LENGTH = 32
SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1


def generate_pin(length: int = 6) -> str:
    """Generate a numeric PIN of ``length`` digits."""
    if length < 4:
        raise ValueError("PIN length must be at least 4 digits")
    return "".join(secrets.choice("0123456789") for _ in range(length))


def constant_time_compare(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class PinHasher:
    """Hashes and verifies clinician PINs.

    Parameters:
        pepper: Secret appended to every PIN before hashing
        n: scrypt CPU/memory cost
        r: scrypt block size
        p: scrypt parallelism

    Stored format: ``scrypt$<n>$<r>$<p>$<salt b64>$<hash b64>``
    """

    def __init__(self, pepper: str, n: int = SCRYPT_N, r: int = SCRYPT_R, p: int = SCRYPT_P):
        if not pepper:
            raise ValueError("Missing required env var PIN_HASH_PEPPER")
        self._pepper = pepper
        self.n = n
        self.r = r
        self.p = p

    def _kdf(self, salt: bytes, n: int, r: int, p: int) -> Scrypt:
        return Scrypt(salt=salt, length=KEY_LENGTH, n=n, r=r, p=p)

    def hash_pin(self, pin: str) -> PinHashResult:
        salt = secrets.token_bytes(SALT_BYTES)
        digest = self._kdf(salt, self.n, self.r, self.p).derive(f"{pin}{self._pepper}".encode("utf-8"))
        encoded = f"{HASH_SCHEME}${self.n}${self.r}${self.p}${_b64(salt)}${_b64(digest)}"
        return PinHashResult(hash=encoded, salt=_b64(salt))

    def verify_pin(self, pin: str, stored_hash: Optional[str]) -> bool:
        """Check ``pin`` against a stored hash; False on any mismatch or format error."""
        if not stored_hash:
            return False
        try:
            scheme, n, r, p, salt_b64, digest_b64 = stored_hash.split("$")
            if scheme != HASH_SCHEME:
                return False
            kdf = self._kdf(base64.b64decode(salt_b64), int(n), int(r), int(p))
            kdf.verify(f"{pin}{self._pepper}".encode("utf-8"), base64.b64decode(digest_b64))
            return True
        except InvalidKey:
            return False
        except ValueError:
            logger.warning("Stored PIN hash has an unrecognized format")
            return False
