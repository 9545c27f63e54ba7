"""JSON envelope codec.

Wire layout (field names are fixed)::

    {
      "format": "AES-256-GCM+PBKDF2",
      "kdf": {"name": "PBKDF2", "hash": "SHA-256", "iterations": 200000},
      "saltHex": "<32 hex chars>",
      "ivHex": "<24 hex chars>",
      "ciphertextB64": "<base64 of ciphertext || tag>"
    }

The codec is purely structural: it performs no cryptography and trusts none of
the decoded values beyond their shape. In particular the iteration count is
returned exactly as found, however large; only a literal too long for the
interpreter to parse as an int is rejected as an invalid ``kdf.iterations``.
"""
from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Dict, FrozenSet

from sealbox.core.exceptions import (
    InvalidEncodingError,
    MalformedStructureError,
    MissingFieldError,
    UnsupportedKdfError,
)
from sealbox.core.models import (
    ENVELOPE_FORMAT,
    KDF_HASH,
    KDF_NAME,
    NONCE_SIZE,
    SALT_SIZE,
    Envelope,
    KdfParams,
    is_positive_int,
)

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS: FrozenSet[str] = frozenset({ENVELOPE_FORMAT})

REQUIRED_FIELDS = ("format", "kdf", "saltHex", "ivHex", "ciphertextB64")
REQUIRED_KDF_FIELDS = ("name", "hash", "iterations")


class _OversizedInt:
    """Stands in for an integer literal too long for int() to parse."""

    def __repr__(self) -> str:
        return "<oversized integer>"


def _parse_int(literal: str):
    try:
        return int(literal)
    except ValueError:
        # past the interpreter's int max str digits limit
        return _OversizedInt()


def envelope_to_dict(envelope: Envelope) -> Dict[str, Any]:
    return {
        "format": envelope.format,
        "kdf": envelope.kdf.to_dict(),
        "saltHex": envelope.salt.hex(),
        "ivHex": envelope.nonce.hex(),
        "ciphertextB64": base64.b64encode(envelope.ciphertext).decode("ascii"),
    }


def encode(envelope: Envelope) -> str:
    """Serialize ``envelope`` to pretty-printed JSON text."""
    return json.dumps(envelope_to_dict(envelope), indent=2)


def _strip_whitespace(value: str) -> str:
    return "".join(value.split())


def _decode_hex(doc: Dict[str, Any], field: str, size: int) -> bytes:
    value = doc[field]
    if not isinstance(value, str):
        raise InvalidEncodingError(f"{field} must be a hex string", field=field)
    try:
        raw = bytes.fromhex(_strip_whitespace(value))
    except ValueError:
        raise InvalidEncodingError(f"{field} is not valid hex", field=field) from None
    if len(raw) != size:
        raise InvalidEncodingError(
            f"{field} must encode {size} bytes ({size * 2} hex chars), got {len(raw)}",
            field=field,
        )
    return raw


def _decode_b64(doc: Dict[str, Any], field: str) -> bytes:
    value = doc[field]
    if not isinstance(value, str):
        raise InvalidEncodingError(f"{field} must be a base64 string", field=field)
    try:
        return base64.b64decode(_strip_whitespace(value), validate=True)
    except (binascii.Error, ValueError):
        raise InvalidEncodingError(f"{field} is not valid base64", field=field) from None


def decode(text: str) -> Envelope:
    """
    Parse and validate envelope text.

    Checks run in a fixed order (structure, presence, salt, nonce, ciphertext,
    iteration count, KDF identity, format tag) and the first violation raises
    the matching :class:`~sealbox.core.exceptions.FormatError` subclass with
    the offending field named.
    """
    try:
        doc = json.loads(text, parse_int=_parse_int)
    except (TypeError, ValueError):
        raise MalformedStructureError("Envelope is not valid JSON") from None
    if not isinstance(doc, dict):
        raise MalformedStructureError("Envelope must be a JSON object")

    for field in REQUIRED_FIELDS:
        if field not in doc:
            raise MissingFieldError(f"Envelope is missing required field '{field}'", field=field)

    kdf = doc["kdf"]
    if not isinstance(kdf, dict):
        raise MalformedStructureError("kdf must be a JSON object", field="kdf")
    for field in REQUIRED_KDF_FIELDS:
        if field not in kdf:
            raise MissingFieldError(
                f"Envelope is missing required field 'kdf.{field}'", field=f"kdf.{field}"
            )

    salt = _decode_hex(doc, "saltHex", SALT_SIZE)
    nonce = _decode_hex(doc, "ivHex", NONCE_SIZE)
    ciphertext = _decode_b64(doc, "ciphertextB64")

    iterations = kdf["iterations"]
    if not is_positive_int(iterations):
        raise InvalidEncodingError(
            "kdf.iterations must be a positive integer", field="kdf.iterations"
        )

    if kdf["name"] != KDF_NAME:
        raise UnsupportedKdfError(f"Unsupported KDF {kdf['name']!r}", field="kdf.name")
    if kdf["hash"] != KDF_HASH:
        raise UnsupportedKdfError(f"Unsupported KDF hash {kdf['hash']!r}", field="kdf.hash")

    fmt = doc["format"]
    if not isinstance(fmt, str) or fmt not in SUPPORTED_FORMATS:
        raise UnsupportedKdfError(f"Unsupported envelope format {fmt!r}", field="format")

    logger.debug("decoded envelope: %d ciphertext bytes, %d iterations", len(ciphertext), iterations)
    return Envelope(
        format=fmt,
        kdf=KdfParams(iterations=iterations, name=kdf["name"], hash=kdf["hash"]),
        salt=salt,
        nonce=nonce,
        ciphertext=ciphertext,
    )
