"""The secret polynomial each guardian uses to share its election key.

The 0-index coefficient is the guardian's secret key; evaluations at the
other guardians' x-coordinates are handed out as backups so that any quorum
can stand in for a missing guardian.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from .elgamal import ElGamalKeyPair
from .group import (
    ONE_MOD_P,
    ONE_MOD_Q,
    ZERO_MOD_Q,
    PARAMS,
    add_q,
    div_q,
    g_pow_p,
    mult_p,
    mult_q,
    pow_p,
    rand_q,
)
from .proofs import SchnorrProof, make_schnorr_proof


@dataclass(frozen=True)
class ElectionPolynomial:
    """A guardian's polynomial of degree quorum - 1.

    Attributes
    - coefficients: the secret coefficients a_ij
    - coefficient_commitments: K_ij = g^a_ij (public)
    - coefficient_proofs: Schnorr proof of knowledge for each coefficient (public)
    """

    coefficients: Tuple[int, ...]
    coefficient_commitments: Tuple[int, ...]
    coefficient_proofs: Tuple[SchnorrProof, ...]

    def __post_init__(self):
        if not (
            len(self.coefficients)
            == len(self.coefficient_commitments)
            == len(self.coefficient_proofs)
        ):
            raise ValueError("coefficients, commitments and proofs must have equal length")

    def __repr__(self) -> str:
        return f"ElectionPolynomial(degree={len(self.coefficients) - 1})"

    def value_at(self, x_coordinate: int) -> int:
        """P(x) mod q."""
        computed = ZERO_MOD_Q
        x_power = ONE_MOD_Q
        for coefficient in self.coefficients:
            computed = add_q(computed, mult_q(coefficient, x_power))
            x_power = mult_q(x_power, x_coordinate)
        return computed


def generate_polynomial(quorum: int, nonce: Optional[int] = None) -> ElectionPolynomial:
    """Random polynomial with `quorum` coefficients.

    `nonce` makes the coefficients predictable and is meant for tests only.
    """
    if quorum < 1:
        raise ValueError("quorum must be at least 1")
    coefficients = []
    commitments = []
    proofs = []
    for i in range(quorum):
        coefficient = rand_q() if nonce is None else add_q(nonce, i)
        commitment = g_pow_p(coefficient)
        proof = make_schnorr_proof(ElGamalKeyPair(coefficient, commitment), rand_q())
        coefficients.append(coefficient)
        commitments.append(commitment)
        proofs.append(proof)
    return ElectionPolynomial(tuple(coefficients), tuple(commitments), tuple(proofs))


def compute_lagrange_coefficient(coordinate: int, degrees: Iterable[int]) -> int:
    """w = prod(x_m / (x_m - coordinate)) mod q over the other coordinates x_m.

    `degrees` are the x-coordinates of the other available guardians.
    """
    numerator = ONE_MOD_Q
    denominator = ONE_MOD_Q
    for degree in degrees:
        numerator = mult_q(numerator, degree)
        denominator = mult_q(denominator, (degree - coordinate) % PARAMS.q)
    return div_q(numerator, denominator)


def calculate_g_exp_pi_at_l(x_coordinate: int, coefficient_commitments: Sequence[int]) -> int:
    """g^P_i(l) = prod_j (K_ij)^(l^j) mod p, computed from public commitments only."""
    result = ONE_MOD_P
    x_power = ONE_MOD_Q
    for commitment in coefficient_commitments:
        result = mult_p(result, pow_p(commitment, x_power))
        x_power = mult_q(x_power, x_coordinate)
    return result


def verify_polynomial_coordinate(
    value: int, x_coordinate: int, coefficient_commitments: Sequence[int]
) -> bool:
    """Feldman check: g^value == prod_j K_j^(x^j)."""
    return g_pow_p(value) == calculate_g_exp_pi_at_l(x_coordinate, coefficient_commitments)
