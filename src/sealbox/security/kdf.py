"""Passphrase key derivation (PBKDF2-HMAC-SHA-256) for SealBox."""
import logging
from typing import Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from sealbox.core.exceptions import InvalidInputError, InvalidParameterError
from sealbox.core.models import KEY_SIZE, SALT_SIZE, is_positive_int

from .random_source import RandomSource, get_random_source

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 200_000


def generate_salt(length: int = SALT_SIZE, random_source: Optional[RandomSource] = None) -> bytes:
    """Return a cryptographically secure random salt."""
    return get_random_source(random_source).token_bytes(length)


def derive_key(
    passphrase: bytes | str,
    salt: bytes,
    iterations: int = DEFAULT_ITERATIONS,
    key_len: int = KEY_SIZE,
) -> bytes:
    """
    Derive a symmetric key from a passphrase using PBKDF2 with HMAC-SHA-256.
    Returns raw derived key bytes.
    """
    if len(salt) != SALT_SIZE:
        raise InvalidParameterError(f"Salt must be {SALT_SIZE} bytes, got {len(salt)}")
    if not is_positive_int(iterations):
        raise InvalidParameterError(f"Iteration count must be a positive integer, got {iterations!r}")

    if isinstance(passphrase, str):
        try:
            passphrase = passphrase.encode("utf-8")
        except UnicodeEncodeError:
            raise InvalidInputError("Passphrase is not encodable as UTF-8 text") from None

    logger.debug("deriving %d-byte key with %d PBKDF2 iterations", key_len, iterations)
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=key_len,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(passphrase)

