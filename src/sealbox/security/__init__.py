"""Security helpers: passphrase envelope encryption for SealBox.

This package provides:
- PBKDF2-HMAC-SHA-256 key derivation from a passphrase
- AES-256-GCM authenticated encryption behind an injectable cipher protocol
- a self-describing JSON envelope codec
- the encrypt/decrypt orchestration that ties them together
"""

from .kdf import generate_salt, derive_key
from .cipher import AEADCipher, AesGcmCipher, generate_nonce
from .envelope import encode, decode
from .random_source import RandomSource, SystemRandomSource
from .encryption import PassphraseEncryptor, get_encryptor, encrypt, decrypt

__all__ = [
    "generate_salt",
    "derive_key",
    "AEADCipher",
    "AesGcmCipher",
    "generate_nonce",
    "encode",
    "decode",
    "RandomSource",
    "SystemRandomSource",
    "PassphraseEncryptor",
    "get_encryptor",
    "encrypt",
    "decrypt",
]
