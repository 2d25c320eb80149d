"""Election context: the public values every proof in an election is bound to."""

from dataclasses import dataclass

from .group import PARAMS, hash_elems
from .key_ceremony import ElectionJointKey


@dataclass(frozen=True)
class ElectionContext:
    """Public election parameters consumed by decryption.

    Attributes
    - number_of_guardians: n
    - quorum: k, the number of guardians needed to decrypt
    - joint_public_key: K = prod of guardian public keys
    - commitment_hash: hash of all guardians' coefficient commitments
    - manifest_hash: hash of the election manifest
    - crypto_base_hash: H(p, q, g, n, k, manifest_hash)
    - extended_base_hash: H(crypto_base_hash, commitment_hash), Q' in every proof
    """

    number_of_guardians: int
    quorum: int
    joint_public_key: int
    commitment_hash: int
    manifest_hash: int
    crypto_base_hash: int
    extended_base_hash: int


def make_election_context(
    number_of_guardians: int,
    quorum: int,
    joint_key: ElectionJointKey,
    manifest_hash: int,
) -> ElectionContext:
    if not 0 < quorum <= number_of_guardians:
        raise ValueError("quorum must be in [1, number_of_guardians]")
    crypto_base_hash = hash_elems(
        PARAMS.p, PARAMS.q, PARAMS.g, number_of_guardians, quorum, manifest_hash
    )
    extended_base_hash = hash_elems(crypto_base_hash, joint_key.commitment_hash)
    return ElectionContext(
        number_of_guardians,
        quorum,
        joint_key.joint_public_key,
        joint_key.commitment_hash,
        manifest_hash,
        crypto_base_hash,
        extended_base_hash,
    )
