"""Decryption shares: what guardians contribute towards decrypting a tally or ballot."""

from dataclasses import dataclass, field
from typing import Dict, Optional
import logging

from .elgamal import ElGamalCiphertext
from .group import mult_p, pow_p
from .proofs import ChaumPedersenProof

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecryptionProofTuple:
    """Result of partial_decrypt for one ciphertext."""

    decryption: int
    proof: ChaumPedersenProof


@dataclass(frozen=True)
class DecryptionProofRecovery:
    """Result of compensated_decrypt for one ciphertext."""

    decryption: int
    proof: ChaumPedersenProof
    recovery_public_key: int


@dataclass(frozen=True)
class CompensatedSelectionShare:
    """M_{i,l} = A^P_i(l), computed by guardian l standing in for missing guardian i.

    Attributes
    - object_id: selection id
    - guardian_id: the available guardian that computed the share
    - missing_guardian_id: the guardian being compensated for
    - share: M_{i,l}
    - recovery_public_key: g^P_i(l), derived from the missing guardian's commitments
    - proof: Chaum-Pedersen proof against recovery_public_key
    """

    object_id: str
    guardian_id: str
    missing_guardian_id: str
    share: int
    recovery_public_key: int
    proof: ChaumPedersenProof

    def is_valid(self, ciphertext: ElGamalCiphertext, extended_base_hash: int) -> bool:
        return self.proof.is_valid(
            ciphertext, self.recovery_public_key, self.share, extended_base_hash
        )


@dataclass(frozen=True)
class SelectionShare:
    """One guardian's share M_i for one selection.

    A directly computed share carries a proof; a reconstructed share carries
    the compensated parts it was built from together with their Lagrange
    coefficients.
    """

    object_id: str
    guardian_id: str
    share: int
    proof: Optional[ChaumPedersenProof] = None
    recovered_parts: Optional[Dict[str, CompensatedSelectionShare]] = None
    lagrange_coefficients: Optional[Dict[str, int]] = None

    def is_valid(
        self, ciphertext: ElGamalCiphertext, public_key: int, extended_base_hash: int
    ) -> bool:
        if self.proof is not None:
            return self.proof.is_valid(ciphertext, public_key, self.share, extended_base_hash)
        if not self.recovered_parts or not self.lagrange_coefficients:
            logger.warning("share %s for %s has neither proof nor recovered parts",
                           self.object_id, self.guardian_id)
            return False
        if set(self.recovered_parts) != set(self.lagrange_coefficients):
            return False
        for part in self.recovered_parts.values():
            if part.missing_guardian_id != self.guardian_id:
                return False
            if not part.is_valid(ciphertext, extended_base_hash):
                logger.warning("recovered part from %s for %s has an invalid proof",
                               part.guardian_id, self.guardian_id)
                return False
        recomputed = mult_p(*[
            pow_p(part.share, self.lagrange_coefficients[gid])
            for gid, part in self.recovered_parts.items()
        ])
        return recomputed == self.share


@dataclass(frozen=True)
class DecryptionShare:
    """A guardian's shares for every selection of one tally or ballot.

    `contests` maps contest id -> selection id -> SelectionShare.
    """

    object_id: str
    guardian_id: str
    public_key: int
    contests: Dict[str, Dict[str, SelectionShare]] = field(default_factory=dict)

    def selection(self, contest_id: str, selection_id: str) -> Optional[SelectionShare]:
        return self.contests.get(contest_id, {}).get(selection_id)


@dataclass(frozen=True)
class CompensatedDecryptionShare:
    """Shares an available guardian computed on behalf of a missing one."""

    object_id: str
    guardian_id: str
    missing_guardian_id: str
    contests: Dict[str, Dict[str, CompensatedSelectionShare]] = field(default_factory=dict)


@dataclass(frozen=True)
class AvailableGuardian:
    """Published record of a guardian that took part in a decryption."""

    guardian_id: str
    x_coordinate: int
    lagrange_coefficient: int
