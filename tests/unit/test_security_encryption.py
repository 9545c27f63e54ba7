"""
Unit tests for the PassphraseEncryptor orchestration.
"""

import asyncio
import base64
import json
from unittest.mock import patch

import pytest
from sealbox.core.exceptions import (
    AuthenticationError,
    DecryptionError,
    InvalidEncodingError,
    InvalidInputError,
    MissingFieldError,
    UnsupportedKdfError,
)
from sealbox.security import encryption
from sealbox.security.cipher import AesGcmCipher
from sealbox.security.encryption import DEFAULT_MAX_ITERATIONS, PassphraseEncryptor


FAST = 1000


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def encryptor():
    """Encryptor with a low iteration count so tests stay fast."""
    return PassphraseEncryptor(iterations=FAST)


class SequenceSource:
    """RandomSource that hands out predictable, distinct blocks."""

    def __init__(self):
        self.counter = 0

    def token_bytes(self, length):
        self.counter += 1
        return bytes([self.counter]) * length


class RecordingCipher(AesGcmCipher):
    def __init__(self):
        self.calls = []

    def encrypt(self, key, nonce, plaintext):
        self.calls.append(("encrypt", key, nonce))
        return super().encrypt(key, nonce, plaintext)

    def decrypt(self, key, nonce, ciphertext):
        self.calls.append(("decrypt", key, nonce))
        return super().decrypt(key, nonce, ciphertext)


def flip_bit(doc, field, byte_index, bit=0x01):
    """Flip one bit in the decoded bytes of ``field`` and re-encode it."""
    if field == "ciphertextB64":
        raw = bytearray(base64.b64decode(doc[field]))
        raw[byte_index] ^= bit
        doc[field] = base64.b64encode(bytes(raw)).decode("ascii")
    else:
        raw = bytearray(bytes.fromhex(doc[field]))
        raw[byte_index] ^= bit
        doc[field] = bytes(raw).hex()
    return json.dumps(doc)


# ==============================================================================
# Tests: round trip
# ==============================================================================

@pytest.mark.parametrize("plaintext", ["a", "hello world", "🔒 unicode ✓", "x" * 10_000, "line\nbreaks\r\n"])
def test_roundtrip(encryptor, plaintext):
    env = encryptor.encrypt(plaintext, "passphrase")
    assert encryptor.decrypt(env, "passphrase") == plaintext


def test_bytes_roundtrip(encryptor):
    data = bytes(range(256))
    env = encryptor.encrypt_bytes(data, b"raw-pass")
    assert encryptor.decrypt_bytes(env, b"raw-pass") == data


def test_envelope_fields(encryptor):
    env = json.loads(encryptor.encrypt("hello world", "k"))

    assert env["format"] == "AES-256-GCM+PBKDF2"
    assert env["kdf"] == {"name": "PBKDF2", "hash": "SHA-256", "iterations": FAST}
    assert len(env["saltHex"]) == 32
    assert len(env["ivHex"]) == 24
    assert len(base64.b64decode(env["ciphertextB64"])) == len("hello world") + 16


def test_iterations_override_is_recorded(encryptor):
    env = encryptor.encrypt("msg", "k", iterations=1234)
    assert json.loads(env)["kdf"]["iterations"] == 1234
    assert encryptor.decrypt(env, "k") == "msg"


def test_decrypt_uses_envelope_iterations():
    """An envelope made with one default decrypts under another."""
    env = PassphraseEncryptor(iterations=1500).encrypt("msg", "k")
    assert PassphraseEncryptor(iterations=FAST).decrypt(env, "k") == "msg"


def test_freshness(encryptor):
    a = json.loads(encryptor.encrypt("same", "same"))
    b = json.loads(encryptor.encrypt("same", "same"))

    assert a["saltHex"] != b["saltHex"]
    assert a["ivHex"] != b["ivHex"]
    assert a["ciphertextB64"] != b["ciphertextB64"]


def test_injected_random_source_supplies_salt_then_nonce():
    enc = PassphraseEncryptor(random_source=SequenceSource(), iterations=FAST)
    env = json.loads(enc.encrypt("msg", "k"))
    assert env["saltHex"] == "01" * 16
    assert env["ivHex"] == "02" * 12


def test_injected_cipher_is_used():
    cipher = RecordingCipher()
    enc = PassphraseEncryptor(cipher=cipher, iterations=FAST)
    env = enc.encrypt("msg", "k")
    assert enc.decrypt(env, "k") == "msg"

    assert [c[0] for c in cipher.calls] == ["encrypt", "decrypt"]
    # same derived key and nonce on both sides
    assert cipher.calls[0][1:] == cipher.calls[1][1:]


# ==============================================================================
# Tests: input validation
# ==============================================================================

@pytest.mark.parametrize("plaintext,passphrase", [("", "k"), ("msg", ""), ("", "")])
def test_encrypt_rejects_empty_input(encryptor, plaintext, passphrase):
    with patch("sealbox.security.encryption.derive_key") as kdf:
        with pytest.raises(InvalidInputError, match="must not be empty"):
            encryptor.encrypt(plaintext, passphrase)
    kdf.assert_not_called()


def test_decrypt_rejects_empty_passphrase(encryptor):
    env = encryptor.encrypt("msg", "k")
    with pytest.raises(InvalidInputError, match="Passphrase must not be empty"):
        encryptor.decrypt(env, "")


@pytest.mark.parametrize("iterations", [0, -1, 2.5, True])
def test_encrypt_rejects_bad_iterations_override(encryptor, iterations):
    with pytest.raises(InvalidInputError, match="Iteration count"):
        encryptor.encrypt("msg", "k", iterations=iterations)


def test_encrypt_rejects_iterations_above_ceiling():
    enc = PassphraseEncryptor(iterations=FAST, max_iterations=5000)
    with pytest.raises(InvalidInputError, match="exceeds the maximum"):
        enc.encrypt("msg", "k", iterations=5001)


def test_constructor_validates_default_iterations():
    with pytest.raises(InvalidInputError):
        PassphraseEncryptor(iterations=0)
    with pytest.raises(InvalidInputError):
        PassphraseEncryptor(iterations=100, max_iterations=10)


@pytest.mark.parametrize("plaintext,passphrase,what", [
    ("bad \ud800", "k", "Plaintext"),
    ("msg", "\ud800", "Passphrase"),
    ("\udfff", "pass\udfff", "Passphrase"),
])
def test_encrypt_rejects_lone_surrogates(encryptor, plaintext, passphrase, what):
    with patch("sealbox.security.encryption.derive_key") as kdf:
        with pytest.raises(InvalidInputError, match=f"{what} is not encodable"):
            encryptor.encrypt(plaintext, passphrase)
    kdf.assert_not_called()


@pytest.mark.parametrize("passphrase", ["\ud800", "k\udfff"])
def test_decrypt_rejects_lone_surrogate_passphrase(encryptor, passphrase):
    env = encryptor.encrypt("msg", "k")
    with patch("sealbox.security.encryption.derive_key") as kdf:
        with pytest.raises(InvalidInputError, match="Passphrase is not encodable"):
            encryptor.decrypt(env, passphrase)
    kdf.assert_not_called()


def test_decrypt_non_utf8_payload(encryptor):
    env = encryptor.encrypt_bytes(b"\xff\xfe\xfd", "k")
    with pytest.raises(InvalidInputError, match="not UTF-8"):
        encryptor.decrypt(env, "k")


# ==============================================================================
# Tests: authentication failures
# ==============================================================================

def test_wrong_passphrase(encryptor):
    env = encryptor.encrypt("secret", "right")
    with pytest.raises(DecryptionError):
        encryptor.decrypt(env, "wrong")


@pytest.mark.parametrize("field,index", [
    ("ciphertextB64", 0),
    ("ciphertextB64", 5),
    ("ciphertextB64", -1),   # inside the tag
    ("saltHex", 0),
    ("saltHex", 15),
    ("ivHex", 0),
    ("ivHex", 11),
])
def test_tamper_detection(encryptor, field, index):
    env = encryptor.encrypt("tamper me please", "k")
    tampered = flip_bit(json.loads(env), field, index)
    with pytest.raises(DecryptionError):
        encryptor.decrypt(tampered, "k")


def test_truncated_ciphertext(encryptor):
    doc = json.loads(encryptor.encrypt("payload", "k"))
    doc["ciphertextB64"] = base64.b64encode(base64.b64decode(doc["ciphertextB64"])[:10]).decode()
    with pytest.raises(DecryptionError):
        encryptor.decrypt(json.dumps(doc), "k")


def test_decryption_error_is_undifferentiated(encryptor):
    env = encryptor.encrypt("secret", "right")
    with pytest.raises(DecryptionError) as wrong_key:
        encryptor.decrypt(env, "wrong")
    with pytest.raises(DecryptionError) as tampered:
        encryptor.decrypt(flip_bit(json.loads(env), "ivHex", 3), "right")

    assert str(wrong_key.value) == str(tampered.value)
    # the cipher's AuthenticationError is not chained onto the public error
    assert wrong_key.value.__cause__ is None
    assert wrong_key.value.__suppress_context__


def test_error_messages_do_not_leak_passphrase(encryptor):
    env = encryptor.encrypt("secret", "hunter2-passphrase")
    with pytest.raises(DecryptionError) as exc:
        encryptor.decrypt(env, "wrong-hunter2")
    assert "hunter2" not in str(exc.value)


def test_cipher_authentication_error_is_translated():
    class AlwaysFails(AesGcmCipher):
        def decrypt(self, key, nonce, ciphertext):
            raise AuthenticationError("boom")

    enc = PassphraseEncryptor(cipher=AlwaysFails(), iterations=FAST)
    env = enc.encrypt("msg", "k")
    with pytest.raises(DecryptionError):
        enc.decrypt(env, "k")


# ==============================================================================
# Tests: format errors and the iteration ceiling
# ==============================================================================

def test_format_errors_propagate_unchanged(encryptor):
    with pytest.raises(MissingFieldError):
        encryptor.decrypt("{}", "k")

    doc = json.loads(encryptor.encrypt("msg", "k"))
    doc["ivHex"] = "00"
    with pytest.raises(InvalidEncodingError) as exc:
        encryptor.decrypt(json.dumps(doc), "k")
    assert exc.value.field == "ivHex"


def test_iteration_ceiling_refuses_before_derivation():
    enc = PassphraseEncryptor(iterations=FAST, max_iterations=5000)
    doc = json.loads(enc.encrypt("msg", "k"))
    doc["kdf"]["iterations"] = 10**12

    with patch("sealbox.security.encryption.derive_key") as kdf:
        with pytest.raises(UnsupportedKdfError) as exc:
            enc.decrypt(json.dumps(doc), "k")
    kdf.assert_not_called()
    assert exc.value.field == "kdf.iterations"


def test_iteration_ceiling_can_be_disabled():
    enc = PassphraseEncryptor(iterations=FAST, max_iterations=None)
    doc = json.loads(enc.encrypt("msg", "k"))
    doc["kdf"]["iterations"] = DEFAULT_MAX_ITERATIONS + 1

    with patch("sealbox.security.encryption.derive_key", return_value=b"\x00" * 32) as kdf:
        with pytest.raises(DecryptionError):
            enc.decrypt(json.dumps(doc), "k")
    assert kdf.call_args.args[2] == DEFAULT_MAX_ITERATIONS + 1


# ==============================================================================
# Tests: async wrappers and module-level helpers
# ==============================================================================

def test_async_roundtrip(encryptor):
    async def run():
        env = await encryptor.encrypt_async("async hello", "k")
        return await encryptor.decrypt_async(env, "k")

    assert asyncio.run(run()) == "async hello"


def test_async_propagates_errors(encryptor):
    with pytest.raises(MissingFieldError):
        asyncio.run(encryptor.decrypt_async("{}", "k"))


def test_module_level_helpers_use_default_encryptor():
    assert encryption.get_encryptor() is encryption.get_encryptor()
    env = encryption.encrypt("module level", "k", iterations=FAST)
    assert encryption.decrypt(env, "k") == "module level"
