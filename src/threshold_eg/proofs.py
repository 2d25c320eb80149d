"""Zero-knowledge proofs: Schnorr proofs of knowledge and Chaum-Pedersen
proofs of correct (partial) decryption, both made non-interactive with a
Fiat-Shamir challenge computed by `hash_elems`.
"""

from dataclasses import dataclass
from typing import List
import logging

from .elgamal import ElGamalCiphertext, ElGamalKeyPair
from .group import (
    a_plus_bc_q,
    g_pow_p,
    hash_elems,
    is_in_bounds_q,
    is_valid_residue,
    mult_p,
    nonce_at,
    pow_p,
)

logger = logging.getLogger(__name__)


## --- Schnorr -------------------------------------------------------------


@dataclass(frozen=True)
class SchnorrProof:
    """Proof of knowledge of s = log_g(K).

    Attributes
    - public_key: K, the commitment being proven
    - commitment: h = g^u for the prover's nonce u
    - challenge: c = H(K, h)
    - response: v = u + c*s mod q
    """

    public_key: int
    commitment: int
    challenge: int
    response: int

    def is_valid(self) -> bool:
        k = self.public_key
        h = self.commitment
        valid_public_key = is_valid_residue(k)
        in_bounds_h = is_valid_residue(h)
        in_bounds_u = is_in_bounds_q(self.response)
        valid_challenge = self.challenge == hash_elems(k, h)
        valid_response = g_pow_p(self.response) == mult_p(h, pow_p(k, self.challenge))

        success = (
            valid_public_key
            and in_bounds_h
            and in_bounds_u
            and valid_challenge
            and valid_response
        )
        if not success:
            logger.warning("found an invalid Schnorr proof for public key %X", k)
        return success


def make_schnorr_proof(keypair: ElGamalKeyPair, nonce: int) -> SchnorrProof:
    k = keypair.public_key
    h = g_pow_p(nonce)
    c = hash_elems(k, h)
    u = a_plus_bc_q(nonce, keypair.secret_key, c)
    return SchnorrProof(k, h, c, u)


## --- Chaum-Pedersen ------------------------------------------------------

CHAUM_PEDERSEN_HEADER = "chaum-pedersen-decryption-proof"


@dataclass(frozen=True)
class ChaumPedersenProof:
    """Proof that M = A^s for the s with K = g^s.

    Attributes
    - pad: a = g^u
    - data: b = A^u
    - challenge: c = H(Q', A, B, a, b, M)
    - response: v = u + c*s mod q
    """

    pad: int
    data: int
    challenge: int
    response: int

    def validation_errors(
        self,
        ciphertext: ElGamalCiphertext,
        public_key: int,
        m: int,
        extended_base_hash: int,
    ) -> List[str]:
        """Names of every check that fails; empty when the proof is valid."""
        A, B = ciphertext.pad, ciphertext.data
        a, b, c, v = self.pad, self.data, self.challenge, self.response
        errors = []

        if not is_in_bounds_q(v):
            errors.append("response not in Zq")
        if not is_in_bounds_q(c):
            errors.append("challenge not in Zq")
        if not is_valid_residue(a):
            errors.append("pad not a valid residue")
        if not is_valid_residue(b):
            errors.append("data not a valid residue")
        if not (is_valid_residue(A) and is_valid_residue(B)):
            errors.append("ciphertext not valid residues")
        if not is_valid_residue(public_key):
            errors.append("public key not a valid residue")
        if not is_valid_residue(m):
            errors.append("decryption not a valid residue")
        if errors:
            # the equations below are meaningless on out-of-range values
            return errors

        if c != hash_elems(extended_base_hash, A, B, a, b, m):
            errors.append("challenge does not match hash")
        # g^v = a K^c
        if g_pow_p(v) != mult_p(a, pow_p(public_key, c)):
            errors.append("g^v != a K^c")
        # A^v = b M^c
        if pow_p(A, v) != mult_p(b, pow_p(m, c)):
            errors.append("A^v != b M^c")
        return errors

    def is_valid(
        self,
        ciphertext: ElGamalCiphertext,
        public_key: int,
        m: int,
        extended_base_hash: int,
    ) -> bool:
        errors = self.validation_errors(ciphertext, public_key, m, extended_base_hash)
        if errors:
            logger.debug("invalid Chaum-Pedersen proof: %s", "; ".join(errors))
        return not errors


def make_chaum_pedersen(
    ciphertext: ElGamalCiphertext,
    secret: int,
    m: int,
    seed: int,
    hash_header: int,
    index: int = 0,
) -> ChaumPedersenProof:
    """Prove that m = A^secret without revealing the secret.

    `index` selects a distinct nonce from `seed` so that proofs produced
    together for several ciphertexts never share a commitment nonce.
    """
    A, B = ciphertext.pad, ciphertext.data
    u = nonce_at(seed, index, CHAUM_PEDERSEN_HEADER)
    a = g_pow_p(u)
    b = pow_p(A, u)
    c = hash_elems(hash_header, A, B, a, b, m)
    v = a_plus_bc_q(u, c, secret)
    return ChaumPedersenProof(a, b, c, v)

