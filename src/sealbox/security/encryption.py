"""
Passphrase envelope encryption for SealBox.

:class:`PassphraseEncryptor` composes the pieces of this package:

- a :class:`~sealbox.security.random_source.RandomSource` for salt and nonce
- PBKDF2-HMAC-SHA-256 key derivation (:mod:`sealbox.security.kdf`)
- an :class:`~sealbox.security.cipher.AEADCipher` (AES-256-GCM by default)
- the JSON envelope codec (:mod:`sealbox.security.envelope`)

Both operations are stateless and may run concurrently. Key derivation is
CPU-bound, so callers on an event loop should use the ``*_async`` variants,
which run the same computation in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from sealbox.core.exceptions import (
    AuthenticationError,
    DecryptionError,
    InvalidInputError,
    UnsupportedKdfError,
)
from sealbox.core.models import Envelope, KdfParams, is_positive_int

from . import envelope as codec
from .cipher import AEADCipher, AesGcmCipher, generate_nonce
from .kdf import DEFAULT_ITERATIONS, derive_key, generate_salt
from .random_source import RandomSource, get_random_source

logger = logging.getLogger(__name__)

# Envelopes asking for more work than this are refused before derivation.
DEFAULT_MAX_ITERATIONS = 10_000_000


class PassphraseEncryptor:
    """
    Encrypt text into a self-describing envelope and back, using only a passphrase.

    ``max_iterations`` bounds the PBKDF2 work an envelope can demand; pass
    ``None`` to accept any count found in an envelope.
    """

    def __init__(
        self,
        random_source: Optional[RandomSource] = None,
        cipher: Optional[AEADCipher] = None,
        iterations: int = DEFAULT_ITERATIONS,
        max_iterations: Optional[int] = DEFAULT_MAX_ITERATIONS,
    ):
        self.random_source = get_random_source(random_source)
        self.cipher: AEADCipher = cipher if cipher is not None else AesGcmCipher()
        self.max_iterations = max_iterations
        self.iterations = self._check_iterations(iterations)

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _check_iterations(self, iterations) -> int:
        if not is_positive_int(iterations):
            raise InvalidInputError(f"Iteration count must be a positive integer, got {iterations!r}")
        if self.max_iterations is not None and iterations > self.max_iterations:
            raise InvalidInputError(
                f"Iteration count {iterations} exceeds the maximum of {self.max_iterations}"
            )
        return iterations

    @staticmethod
    def _to_bytes(value: str | bytes, what: str) -> bytes:
        if isinstance(value, bytes):
            return value
        try:
            return value.encode("utf-8")
        except UnicodeEncodeError:
            # lone surrogates have no UTF-8 form
            raise InvalidInputError(f"{what} is not encodable as UTF-8 text") from None

    def _passphrase_bytes(self, passphrase: str | bytes) -> bytes:
        if not passphrase:
            raise InvalidInputError("Passphrase must not be empty")
        return self._to_bytes(passphrase, "Passphrase")

    # ------------------------------------------------------------------
    # Byte-level operations
    # ------------------------------------------------------------------

    def encrypt_bytes(
        self, plaintext: bytes, passphrase: str | bytes, iterations: Optional[int] = None
    ) -> str:
        """
        Encrypt ``plaintext`` and return envelope text.

        A fresh 16-byte salt and 12-byte nonce are drawn for every call, so
        encrypting the same input twice never produces the same envelope.
        """
        passphrase = self._passphrase_bytes(passphrase)
        if not plaintext:
            raise InvalidInputError("Plaintext must not be empty")
        iterations = self.iterations if iterations is None else self._check_iterations(iterations)

        salt = generate_salt(random_source=self.random_source)
        nonce = generate_nonce(random_source=self.random_source)
        key = derive_key(passphrase, salt, iterations)
        ciphertext = self.cipher.encrypt(key, nonce, plaintext)

        envelope = Envelope(
            kdf=KdfParams(iterations=iterations),
            salt=salt,
            nonce=nonce,
            ciphertext=ciphertext,
        )
        logger.debug("encrypted %d bytes (%d iterations)", len(plaintext), iterations)
        return codec.encode(envelope)

    def decrypt_bytes(self, envelope_text: str, passphrase: str | bytes) -> bytes:
        """
        Decrypt envelope text and return the plaintext bytes.

        Format problems surface as the codec's ``FormatError`` subclasses.
        A wrong passphrase and a tampered envelope both raise the same
        :class:`DecryptionError`.
        """
        passphrase = self._passphrase_bytes(passphrase)
        envelope = codec.decode(envelope_text)

        if self.max_iterations is not None and envelope.iterations > self.max_iterations:
            raise UnsupportedKdfError(
                f"Envelope asks for {envelope.iterations} iterations; "
                f"the maximum accepted is {self.max_iterations}",
                field="kdf.iterations",
            )

        key = derive_key(passphrase, envelope.salt, envelope.iterations)
        try:
            plaintext = self.cipher.decrypt(key, envelope.nonce, envelope.ciphertext)
        except AuthenticationError:
            logger.debug("envelope failed authentication")
            raise DecryptionError() from None
        logger.debug("decrypted %d bytes", len(plaintext))
        return plaintext

    # ------------------------------------------------------------------
    # Text operations
    # ------------------------------------------------------------------

    def encrypt(self, plaintext: str, passphrase: str, iterations: Optional[int] = None) -> str:
        """Encrypt UTF-8 text and return envelope text."""
        return self.encrypt_bytes(self._to_bytes(plaintext, "Plaintext"), passphrase, iterations)

    def decrypt(self, envelope_text: str, passphrase: str) -> str:
        """Decrypt envelope text back to UTF-8 text."""
        raw = self.decrypt_bytes(envelope_text, passphrase)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidInputError(
                "Decrypted payload is not UTF-8 text; use decrypt_bytes() instead"
            ) from None

    # ------------------------------------------------------------------
    # Awaitable wrappers
    # ------------------------------------------------------------------

    async def encrypt_async(
        self, plaintext: str, passphrase: str, iterations: Optional[int] = None
    ) -> str:
        """Run :meth:`encrypt` in a worker thread."""
        return await asyncio.to_thread(self.encrypt, plaintext, passphrase, iterations)

    async def decrypt_async(self, envelope_text: str, passphrase: str) -> str:
        """Run :meth:`decrypt` in a worker thread."""
        return await asyncio.to_thread(self.decrypt, envelope_text, passphrase)


# module-level default encryptor
_default_encryptor = PassphraseEncryptor()


def get_encryptor() -> PassphraseEncryptor:
    return _default_encryptor


def encrypt(plaintext: str, passphrase: str, iterations: Optional[int] = None) -> str:
    return get_encryptor().encrypt(plaintext, passphrase, iterations)


def decrypt(envelope_text: str, passphrase: str) -> str:
    return get_encryptor().decrypt(envelope_text, passphrase)
