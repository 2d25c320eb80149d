"""Modular group arithmetic and hashing.

All group elements are plain Python integers. Elements "mod p" live in the
order-q subgroup of Z_p^*; elements "mod q" are exponents in Z_q.
"""

from dataclasses import dataclass
from typing import Any, Optional
import hashlib
import secrets


# RFC 2409 Oakley Group 2 (1024-bit MODP) prime. p = 2q + 1 and p = 7 mod 8,
# so 2 is a quadratic residue and generates the subgroup of order q.
_P_HEX = (
    "FFFFFFFFFFFFFFFFC90FDAA22168C234C4C6628B80DC1CD1"
    "29024E088A67CC74020BBEA63B139B22514A08798E3404DD"
    "EF9519B3CD3A431B302B0A6DF25F14374FE1356D6D51C245"
    "E485B576625E7EC6F44C42E9A637ED6B0BFF5CB6F406B7ED"
    "EE386BFB5A899FA5AE9F24117C4B1FE649286651ECE65381"
    "FFFFFFFFFFFFFFFF"
)


@dataclass(frozen=True)
class ElGamalParams:
    """ElGamal group params

    Attributes
    - p: safe prime modulus
    - q: large prime such that p = 2q + 1
    - g: generator of the subgroup of order q (here: g=2)
    """

    p: int
    q: int
    g: int


def elgamal_params_default() -> ElGamalParams:
    p = int(_P_HEX, 16)
    q = (p - 1) // 2
    g = 2
    return ElGamalParams(p=p, q=q, g=g)


PARAMS = elgamal_params_default()
ONE_MOD_P = 1
ZERO_MOD_Q = 0
ONE_MOD_Q = 1


## --- mod q ---------------------------------------------------------------


def rand_q() -> int:
    """Uniform element of [1, q-1]."""
    return secrets.randbelow(PARAMS.q - 1) + 1


def add_q(*elems: int) -> int:
    return sum(elems) % PARAMS.q


def mult_q(*elems: int) -> int:
    product = 1
    for e in elems:
        product = (product * e) % PARAMS.q
    return product


def negate_q(a: int) -> int:
    return (-a) % PARAMS.q


def div_q(a: int, b: int) -> int:
    return (a * pow(b % PARAMS.q, -1, PARAMS.q)) % PARAMS.q


def a_plus_bc_q(a: int, b: int, c: int) -> int:
    return (a + b * c) % PARAMS.q


def is_in_bounds_q(a: int) -> bool:
    return isinstance(a, int) and 0 <= a < PARAMS.q


## --- mod p ---------------------------------------------------------------


def g_pow_p(e: int) -> int:
    return pow(PARAMS.g, e, PARAMS.p)


def pow_p(b: int, e: int) -> int:
    return pow(b, e, PARAMS.p)


def mult_p(*elems: int) -> int:
    product = ONE_MOD_P
    for e in elems:
        product = (product * e) % PARAMS.p
    return product


def div_p(a: int, b: int) -> int:
    return (a * pow(b, -1, PARAMS.p)) % PARAMS.p


def is_valid_residue(a: int) -> bool:
    """True iff a is in the order-q subgroup: 1 <= a < p and a^q mod p == 1."""
    if not isinstance(a, int) or not 1 <= a < PARAMS.p:
        return False
    return pow(a, PARAMS.q, PARAMS.p) == 1


## --- hashing -------------------------------------------------------------


def to_hex(a: int) -> str:
    h = format(a, "X")
    if len(h) % 2 == 1:
        h = "0" + h
    return h


def hash_elems(*elems: Any) -> int:
    """SHA-256 of the elements, joined and terminated by '|', reduced mod q.

    Integers are rendered as even-length upper-case hex, strings verbatim,
    sequences are hashed recursively and None as "null".
    """
    h = hashlib.sha256()
    h.update(b"|")
    if not elems:
        h.update(b"null|")
    for e in elems:
        if e is None:
            hash_me = "null"
        elif isinstance(e, str):
            # strings are iterable, handle them before sequences
            hash_me = e
        elif isinstance(e, bool):
            hash_me = str(e)
        elif isinstance(e, int):
            hash_me = to_hex(e)
        elif isinstance(e, (list, tuple)):
            hash_me = "null" if len(e) == 0 else to_hex(hash_elems(*e))
        else:
            hash_me = str(e)
        h.update((hash_me + "|").encode("utf-8"))
    return int.from_bytes(h.digest(), "big") % PARAMS.q


def nonce_at(seed: int, index: int, *headers: Any) -> int:
    """Deterministic nonce number `index` derived from `seed`."""
    return hash_elems(seed, *headers, index)


## --- discrete log --------------------------------------------------------


def discrete_log_small(base: int, value: int, p: int, max_k: int) -> Optional[int]:
    # Simple linear search for small ranges. Use when max_k is tiny.
    cur = 1
    if value == 1:
        return 0
    for k in range(1, max_k + 1):
        cur = (cur * base) % p
        if cur == value:
            return k
    return None


def discrete_log_bsgs(base: int, value: int, p: int, max_k: int) -> Optional[int]:
    """Baby-step giant-step discrete log: find k such that base^k = value (mod p), k <= max_k.

    Returns k or None if not found within bound.
    """
    if value == 1:
        return 0
    from math import isqrt, ceil

    m = isqrt(max_k) + 1

    # Baby steps: store base^j -> j for j in [0, m)
    baby = {}
    cur = 1
    for j in range(m):
        if cur not in baby:
            baby[cur] = j
        cur = (cur * base) % p

    base_m_inv = pow(pow(base, m, p), -1, p)

    # Giant steps: look for i such that value * (base^{-m})^i is in baby
    gamma = value
    max_i = ceil(max_k / m) + 1
    for i in range(max_i):
        if gamma in baby:
            k = i * m + baby[gamma]
            return k if k <= max_k else None
        gamma = (gamma * base_m_inv) % p
    return None


def discrete_log(value: int, max_k: int = 1_000_000) -> Optional[int]:
    """Find t in [0, max_k] with g^t == value mod p, choosing the routine by bound."""
    if max_k <= 64:
        return discrete_log_small(PARAMS.g, value, PARAMS.p, max_k)
    return discrete_log_bsgs(PARAMS.g, value, PARAMS.p, max_k)
