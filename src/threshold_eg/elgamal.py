from dataclasses import dataclass
from typing import Iterable, Optional

from .group import (
    ONE_MOD_P,
    div_p,
    g_pow_p,
    is_valid_residue,
    mult_p,
    pow_p,
    rand_q,
)


@dataclass(frozen=True)
class ElGamalKeyPair:
    """ElGamal key pair

    Attributes
    - secret_key: secret exponent s in Z_q
    - public_key: K = g^s mod p
    """

    secret_key: int
    public_key: int

    def __repr__(self) -> str:
        # keep the secret out of logs and tracebacks
        return f"ElGamalKeyPair(public_key={self.public_key:X})"


@dataclass(frozen=True)
class ElGamalCiphertext:
    """Exponential ElGamal ciphertext (A, B) = (g^r, g^m K^r)."""

    pad: int
    data: int

    def partial_decrypt(self, secret: int) -> int:
        """M = A^secret mod p."""
        return pow_p(self.pad, secret)

    def decrypt_known_product(self, product: int) -> int:
        """g^m = B / product, where product is A^s for the full secret s."""
        return div_p(self.data, product)

    def is_valid(self) -> bool:
        return is_valid_residue(self.pad) and is_valid_residue(self.data)


def elgamal_keypair_from_secret(secret: int) -> Optional[ElGamalKeyPair]:
    # secrets 0 and 1 give trivial public keys
    if secret < 2:
        return None
    return ElGamalKeyPair(secret, g_pow_p(secret))


def elgamal_keypair_random() -> ElGamalKeyPair:
    keypair = None
    while keypair is None:
        keypair = elgamal_keypair_from_secret(rand_q())
    return keypair


def elgamal_encrypt(m: int, nonce: int, public_key: int) -> Optional[ElGamalCiphertext]:
    """Encrypt the non-negative integer m as g^m. Returns None for a zero nonce."""
    if m < 0:
        raise ValueError("plaintext must be non-negative")
    if nonce == 0:
        return None
    pad = g_pow_p(nonce)
    data = mult_p(g_pow_p(m), pow_p(public_key, nonce))
    return ElGamalCiphertext(pad, data)


def elgamal_add(*ciphertexts: ElGamalCiphertext) -> ElGamalCiphertext:
    """Homomorphic sum: component-wise product of the ciphertexts."""
    if not ciphertexts:
        raise ValueError("elgamal_add requires at least one ciphertext")
    pad = mult_p(*[c.pad for c in ciphertexts])
    data = mult_p(*[c.data for c in ciphertexts])
    return ElGamalCiphertext(pad, data)


def elgamal_combine_public_keys(keys: Iterable[int]) -> int:
    """The joint key is the product of the guardians' public keys."""
    result = ONE_MOD_P
    for k in keys:
        result = mult_p(result, k)
    return result
