import hashlib

import pytest

from threshold_eg.elgamal import (
    elgamal_add,
    elgamal_combine_public_keys,
    elgamal_encrypt,
    elgamal_keypair_from_secret,
    elgamal_keypair_random,
)
from threshold_eg.group import (
    PARAMS,
    discrete_log,
    g_pow_p,
    hash_elems,
    is_in_bounds_q,
    is_valid_residue,
    mult_p,
    nonce_at,
    to_hex,
)


def test_params_are_a_safe_prime_group():
    assert PARAMS.p == 2 * PARAMS.q + 1
    assert pow(PARAMS.g, PARAMS.q, PARAMS.p) == 1


def test_to_hex_is_upper_case_and_even_length():
    assert to_hex(0xABC) == "0ABC"
    assert to_hex(255) == "FF"
    assert to_hex(0) == "00"


def test_hash_elems_matches_documented_layout():
    expected = hashlib.sha256("|0A|abc|null|".encode("utf-8")).digest()
    assert hash_elems(10, "abc", None) == int.from_bytes(expected, "big") % PARAMS.q


def test_hash_elems_hashes_sequences_recursively():
    inner = hash_elems(1, 2)
    assert hash_elems([1, 2]) == hash_elems(inner)
    assert hash_elems([]) == hash_elems(None)


def test_nonce_at_differs_per_index():
    seed = 12345
    assert nonce_at(seed, 0) != nonce_at(seed, 1)
    assert nonce_at(seed, 0, "header") == nonce_at(seed, 0, "header")


def test_residue_and_bounds_checks():
    assert is_valid_residue(g_pow_p(17))
    assert not is_valid_residue(0)
    assert not is_valid_residue(PARAMS.p)
    # p - 1 has order 2, not q
    assert not is_valid_residue(PARAMS.p - 1)
    assert is_in_bounds_q(0)
    assert not is_in_bounds_q(PARAMS.q)


def test_discrete_log_small_and_large_bounds():
    assert discrete_log(g_pow_p(0), 10) == 0
    assert discrete_log(g_pow_p(7), 10) == 7
    assert discrete_log(g_pow_p(1234), 5000) == 1234
    assert discrete_log(g_pow_p(11), 10) is None


def test_elgamal_roundtrip_and_homomorphic_add():
    keypair = elgamal_keypair_random()
    a = elgamal_encrypt(3, 11, keypair.public_key)
    b = elgamal_encrypt(4, 13, keypair.public_key)
    total = elgamal_add(a, b)
    product = total.partial_decrypt(keypair.secret_key)
    assert discrete_log(total.decrypt_known_product(product), 100) == 7


def test_elgamal_encrypt_rejects_bad_input():
    keypair = elgamal_keypair_random()
    assert elgamal_encrypt(1, 0, keypair.public_key) is None
    with pytest.raises(ValueError):
        elgamal_encrypt(-1, 5, keypair.public_key)
    assert elgamal_keypair_from_secret(1) is None


def test_combined_public_key_is_product():
    k1 = elgamal_keypair_from_secret(5).public_key
    k2 = elgamal_keypair_from_secret(9).public_key
    assert elgamal_combine_public_keys([k1, k2]) == mult_p(k1, k2) == g_pow_p(14)


def test_keypair_repr_hides_secret():
    keypair = elgamal_keypair_from_secret(123456789)
    assert str(123456789) not in repr(keypair)
