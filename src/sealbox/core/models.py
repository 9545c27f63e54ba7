"""
Data models for the passphrase envelope
"""

from dataclasses import dataclass

from .exceptions import InvalidParameterError

ENVELOPE_FORMAT = "AES-256-GCM+PBKDF2"
KDF_NAME = "PBKDF2"
KDF_HASH = "SHA-256"

SALT_SIZE = 16  # 128 bits
NONCE_SIZE = 12  # 96 bits (recommended for GCM)
TAG_SIZE = 16  # 128 bits (authentication tag)
KEY_SIZE = 32  # AES-256


def is_positive_int(value) -> bool:
    # bool is an int subclass; True must not pass as an iteration count
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


@dataclass(frozen=True)
class KdfParams:
    """Key-derivation parameters recorded in the envelope."""

    iterations: int
    name: str = KDF_NAME
    hash: str = KDF_HASH

    def __post_init__(self) -> None:
        if not is_positive_int(self.iterations):
            raise InvalidParameterError(
                f"Iteration count must be a positive integer, got {self.iterations!r}"
            )

    def to_dict(self) -> dict:
        return {"name": self.name, "hash": self.hash, "iterations": self.iterations}


@dataclass(frozen=True)
class Envelope:
    """Self-describing result of one encryption.

    Salt and nonce are generated fresh per encryption; ``ciphertext`` carries
    the 16-byte GCM tag at its tail. Instances are immutable.
    """

    kdf: KdfParams
    salt: bytes
    nonce: bytes
    ciphertext: bytes
    format: str = ENVELOPE_FORMAT

    def __post_init__(self) -> None:
        if len(self.salt) != SALT_SIZE:
            raise InvalidParameterError(f"Salt must be {SALT_SIZE} bytes, got {len(self.salt)}")
        if len(self.nonce) != NONCE_SIZE:
            raise InvalidParameterError(f"Nonce must be {NONCE_SIZE} bytes, got {len(self.nonce)}")

    @property
    def iterations(self) -> int:
        return self.kdf.iterations
