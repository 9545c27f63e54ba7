"""
Exceptions for SealBox
Everything raised by the envelope core derives from SealBoxError so callers
have a single general error catcher.
"""

from enum import Enum
from typing import Optional


class SealBoxError(Exception):
    # general container for errors
    pass


class InvalidInputError(SealBoxError):
    # raised when the caller supplies an empty passphrase / plaintext or a bad option
    pass


class InvalidParameterError(SealBoxError):
    # raised when a salt, nonce, key or iteration count breaks a primitive's contract
    pass


class AuthenticationError(SealBoxError):
    # raised by the AEAD cipher when the tag does not verify
    pass


class DecryptionError(SealBoxError):
    # wrong passphrase and tampered envelope are deliberately indistinguishable
    def __init__(self, message: str = "Decryption failed: wrong passphrase or corrupted envelope"):
        super().__init__(message)


class FormatErrorKind(Enum):
    MISSING_FIELD = "missing_field"
    INVALID_ENCODING = "invalid_encoding"
    MALFORMED_STRUCTURE = "malformed_structure"
    UNSUPPORTED_KDF = "unsupported_kdf"


class FormatError(SealBoxError):
    """Envelope text does not conform to the expected structure.

    ``field`` names the offending envelope field using the wire names
    (``saltHex``, ``kdf.iterations``, ...) or is ``None`` when the whole
    document is unusable.
    """

    kind: FormatErrorKind

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class MissingFieldError(FormatError):
    kind = FormatErrorKind.MISSING_FIELD


class InvalidEncodingError(FormatError):
    kind = FormatErrorKind.INVALID_ENCODING


class MalformedStructureError(FormatError):
    kind = FormatErrorKind.MALFORMED_STRUCTURE


class UnsupportedKdfError(FormatError):
    kind = FormatErrorKind.UNSUPPORTED_KDF
