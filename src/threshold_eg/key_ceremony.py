"""Value types exchanged during the key ceremony, and the public checks on them."""

from dataclasses import dataclass
from typing import List, Tuple

from .group import hash_elems
from .polynomial import verify_polynomial_coordinate
from .proofs import SchnorrProof
from .transport import EncryptedCoordinate

# x coordinates are polynomial evaluation points; 0 would reveal the secret key
MAX_X_COORDINATE = 256


def valid_x_coordinate(x_coordinate: int) -> bool:
    return isinstance(x_coordinate, int) and 0 < x_coordinate < MAX_X_COORDINATE


@dataclass(frozen=True)
class CeremonyDetails:
    number_of_guardians: int
    quorum: int

    def __post_init__(self):
        if not 0 < self.quorum <= self.number_of_guardians:
            raise ValueError("quorum must be in [1, number_of_guardians]")


@dataclass(frozen=True)
class PublicKeySet:
    """A guardian's announced public material.

    Attributes
    - owner_id: guardian id
    - x_coordinate: guardian x coordinate (aka sequence order)
    - coefficient_proofs: Schnorr proofs, one per polynomial coefficient; each carries its commitment
    """

    owner_id: str
    x_coordinate: int
    coefficient_proofs: Tuple[SchnorrProof, ...]

    @property
    def election_public_key(self) -> int:
        return self.coefficient_proofs[0].public_key

    @property
    def coefficient_commitments(self) -> Tuple[int, ...]:
        return tuple(p.public_key for p in self.coefficient_proofs)

    def is_valid(self) -> bool:
        return len(self.coefficient_proofs) > 0 and all(
            p.is_valid() for p in self.coefficient_proofs
        )


@dataclass(frozen=True)
class PartialKeyBackup:
    """The owner's polynomial at the designated guardian's coordinate, encrypted for it.

    The owner's commitments travel with the backup so the value can be
    Feldman-verified without being revealed.
    """

    owner_id: str
    designated_id: str
    designated_x_coordinate: int
    encrypted_coordinate: EncryptedCoordinate
    coefficient_commitments: Tuple[int, ...]


@dataclass(frozen=True)
class PartialKeyVerification:
    owner_id: str
    designated_id: str
    verifier_id: str
    verified: bool
    error: str = ""


@dataclass(frozen=True)
class PartialKeyChallengeResponse:
    """The owner's public answer to a disputed backup: the coordinate in the clear."""

    owner_id: str
    designated_id: str
    designated_x_coordinate: int
    coordinate: int
    coefficient_commitments: Tuple[int, ...]


@dataclass(frozen=True)
class ElectionJointKey:
    joint_public_key: int
    commitment_hash: int


@dataclass(frozen=True)
class GuardianRecord:
    """Public record of one guardian, as published with the election."""

    guardian_id: str
    x_coordinate: int
    election_public_key: int
    coefficient_commitments: Tuple[int, ...]
    coefficient_proofs: Tuple[SchnorrProof, ...]


def verify_partial_key_challenge(
    response: PartialKeyChallengeResponse, verifier_id: str
) -> PartialKeyVerification:
    """Anyone can check a challenge response against the owner's published commitments."""
    ok = verify_polynomial_coordinate(
        response.coordinate,
        response.designated_x_coordinate,
        response.coefficient_commitments,
    )
    return PartialKeyVerification(
        response.owner_id,
        response.designated_id,
        verifier_id,
        ok,
        "" if ok else "challenge coordinate does not match commitments",
    )


def guardian_record_from(public_keys: PublicKeySet) -> GuardianRecord:
    return GuardianRecord(
        public_keys.owner_id,
        public_keys.x_coordinate,
        public_keys.election_public_key,
        public_keys.coefficient_commitments,
        public_keys.coefficient_proofs,
    )


def compute_commitment_hash(records: List[GuardianRecord]) -> int:
    """Hash of every guardian's commitments; order dependent, so sorted by x-coordinate."""
    commitments = []
    for record in sorted(records, key=lambda r: r.x_coordinate):
        commitments.extend(record.coefficient_commitments)
    return hash_elems(commitments)
