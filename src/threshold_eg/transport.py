"""Encryption of partial key backups in transit to the designated guardian."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
import hashlib
import hmac

from .group import PARAMS, g_pow_p, pow_p, rand_q, to_hex

_COORDINATE_BYTES = (PARAMS.q.bit_length() + 7) // 8


@dataclass(frozen=True)
class EncryptedCoordinate:
    """A backup coordinate encrypted for one recipient.

    Attributes
    - pad: g^r
    - data: the coordinate xor'ed with the session keystream
    - mac: HMAC-SHA256 tag over pad and data
    """

    pad: int
    data: bytes
    mac: bytes


class BackupTransport(ABC):
    """Encrypts a polynomial coordinate so only the recipient can read it."""

    @abstractmethod
    def encrypt(self, coordinate: int, recipient_public_key: int) -> EncryptedCoordinate:
        ...

    @abstractmethod
    def decrypt(self, encrypted: EncryptedCoordinate, recipient_secret_key: int) -> Optional[int]:
        """Returns None when the ciphertext was not made for this secret key."""


class HashedElGamalTransport(BackupTransport):
    """Hashed ElGamal: session key H(g^r, K^r), HMAC keystream and HMAC tag."""

    def encrypt(self, coordinate: int, recipient_public_key: int) -> EncryptedCoordinate:
        nonce = rand_q()
        pad = g_pow_p(nonce)
        session_key = _session_key(pad, pow_p(recipient_public_key, nonce))
        plaintext = coordinate.to_bytes(_COORDINATE_BYTES, "big")
        data = _xor(plaintext, _keystream(session_key, len(plaintext)))
        return EncryptedCoordinate(pad, data, _mac(session_key, pad, data))

    def decrypt(self, encrypted: EncryptedCoordinate, recipient_secret_key: int) -> Optional[int]:
        session_key = _session_key(encrypted.pad, pow_p(encrypted.pad, recipient_secret_key))
        expected = _mac(session_key, encrypted.pad, encrypted.data)
        if not hmac.compare_digest(expected, encrypted.mac):
            return None
        plaintext = _xor(encrypted.data, _keystream(session_key, len(encrypted.data)))
        return int.from_bytes(plaintext, "big")


def _session_key(pad: int, shared: int) -> bytes:
    return hashlib.sha256(f"{to_hex(pad)}|{to_hex(shared)}".encode("utf-8")).digest()


def _keystream(key: bytes, length: int) -> bytes:
    out = bytearray()
    counter = 0
    while len(out) < length:
        block = hmac.new(key, b"keystream" + counter.to_bytes(4, "big"), hashlib.sha256)
        out.extend(block.digest())
        counter += 1
    return bytes(out[:length])


def _mac(key: bytes, pad: int, data: bytes) -> bytes:
    return hmac.new(key, to_hex(pad).encode("utf-8") + data, hashlib.sha256).digest()


def _xor(a: bytes, b: bytes) -> bytes:
    return bytes(x ^ y for x, y in zip(a, b))
