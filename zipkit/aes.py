"""WinZip AES (AE-1/AE-2) entry encryption backed by PyCryptodomex.

An encrypted entry payload is laid out as::

    salt || password_verifier[2] || ciphertext || auth_code[10]

Keys come from PBKDF2-HMAC-SHA1 (1000 rounds) over the password and salt;
the data is encrypted with AES-CTR using a little-endian counter that starts
at 1, and authenticated with HMAC-SHA1 over the ciphertext.
"""

from __future__ import annotations

import enum
import hmac
import os
from typing import Tuple

from Cryptodome.Cipher import AES
from Cryptodome.Hash import HMAC, SHA1
from Cryptodome.Protocol.KDF import PBKDF2
from Cryptodome.Util import Counter

from .errors import InvalidArchiveError, InvalidPasswordError


PBKDF2_ITERATIONS = 1000
PASSWORD_VERIFIER_SIZE = 2
AUTH_CODE_SIZE = 10

# Vendor version 1 keeps the CRC, version 2 zeroes it.
AE_1 = 1
AE_2 = 2
VENDOR_ID = b"AE"


class AesMode(enum.IntEnum):
    AES128 = 1
    AES192 = 2
    AES256 = 3

    @property
    def key_size(self) -> int:
        return {1: 16, 2: 24, 3: 32}[self.value]

    @property
    def salt_size(self) -> int:
        return {1: 8, 2: 12, 3: 16}[self.value]


def overhead(mode: AesMode) -> int:
    return mode.salt_size + PASSWORD_VERIFIER_SIZE + AUTH_CODE_SIZE


def derive_keys(password: bytes, salt: bytes, mode: AesMode) -> Tuple[bytes, bytes, bytes]:
    """Returns (encryption_key, hmac_key, password_verifier)."""
    ks = mode.key_size
    material = PBKDF2(password, salt, dkLen=2 * ks + PASSWORD_VERIFIER_SIZE, count=PBKDF2_ITERATIONS, hmac_hash_module=SHA1)
    return material[:ks], material[ks : 2 * ks], material[2 * ks :]


def _ctr(key: bytes):
    return AES.new(key, AES.MODE_CTR, counter=Counter.new(128, initial_value=1, little_endian=True))


def _auth_code(hmac_key: bytes, ciphertext: bytes) -> bytes:
    h = HMAC.new(hmac_key, digestmod=SHA1)
    h.update(ciphertext)
    return h.digest()[:AUTH_CODE_SIZE]


def encrypt(data: bytes, password: bytes, mode: AesMode) -> bytes:
    salt = os.urandom(mode.salt_size)
    enc_key, hmac_key, verifier = derive_keys(password, salt, mode)
    ciphertext = _ctr(enc_key).encrypt(data)
    return salt + verifier + ciphertext + _auth_code(hmac_key, ciphertext)


def decrypt(payload: bytes, password: bytes, mode: AesMode) -> bytes:
    if len(payload) < overhead(mode):
        raise InvalidArchiveError("AES payload too short")
    salt = payload[: mode.salt_size]
    verifier = payload[mode.salt_size : mode.salt_size + PASSWORD_VERIFIER_SIZE]
    ciphertext = payload[mode.salt_size + PASSWORD_VERIFIER_SIZE : -AUTH_CODE_SIZE]
    enc_key, hmac_key, expected_verifier = derive_keys(password, salt, mode)
    if not hmac.compare_digest(verifier, expected_verifier):
        raise InvalidPasswordError("Invalid password for AES entry")
    if not hmac.compare_digest(payload[-AUTH_CODE_SIZE:], _auth_code(hmac_key, ciphertext)):
        raise InvalidArchiveError("AES authentication code mismatch")
    return _ctr(enc_key).decrypt(ciphertext)
