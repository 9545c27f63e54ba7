"""AES-256-GCM authenticated encryption.

``AEADCipher`` is the capability the orchestrator depends on; ``AesGcmCipher``
is the default backend built on :class:`cryptography.hazmat.primitives.ciphers.aead.AESGCM`.
No associated data is used and the 128-bit tag is appended to the ciphertext.
"""
from __future__ import annotations

from typing import Optional, Protocol

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from sealbox.core.exceptions import AuthenticationError, InvalidParameterError
from sealbox.core.models import KEY_SIZE, NONCE_SIZE, TAG_SIZE

from .random_source import RandomSource, get_random_source


class AEADCipher(Protocol):
    def encrypt(self, key: bytes, nonce: bytes, plaintext: bytes) -> bytes:
        ...

    def decrypt(self, key: bytes, nonce: bytes, ciphertext: bytes) -> bytes:
        ...


def generate_nonce(length: int = NONCE_SIZE, random_source: Optional[RandomSource] = None) -> bytes:
    """Return a fresh random nonce; never reuse one under the same key."""
    return get_random_source(random_source).token_bytes(length)


class AesGcmCipher:
    """Stateless AES-256-GCM; a new AESGCM object is built per call."""

    def _aead(self, key: bytes, nonce: bytes) -> AESGCM:
        if len(key) != KEY_SIZE:
            raise InvalidParameterError(f"Key must be {KEY_SIZE} bytes, got {len(key)}")
        if len(nonce) != NONCE_SIZE:
            raise InvalidParameterError(f"Nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")
        return AESGCM(key)

    def encrypt(self, key: bytes, nonce: bytes, plaintext: bytes) -> bytes:
        """Return ``ciphertext || tag``; deterministic for a given (key, nonce, plaintext)."""
        return self._aead(key, nonce).encrypt(nonce, plaintext, None)

    def decrypt(self, key: bytes, nonce: bytes, ciphertext: bytes) -> bytes:
        """
        Verify the tag and return the plaintext.

        Raises :class:`AuthenticationError` if verification fails; no
        plaintext bytes are released in that case.
        """
        aead = self._aead(key, nonce)
        if len(ciphertext) < TAG_SIZE:
            raise AuthenticationError("Ciphertext too short to contain authentication tag")
        try:
            return aead.decrypt(nonce, ciphertext, None)
        except InvalidTag:
            raise AuthenticationError("Authentication tag mismatch") from None
