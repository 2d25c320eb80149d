"""Threshold ElGamal key ceremony and compensated decryption.

Guardians share an election key through a Feldman-verified polynomial
ceremony (`run_key_ceremony`) and any quorum of them can decrypt a
homomorphic tally (`DecryptionCoordinator`), each step backed by
Chaum-Pedersen proofs that `threshold_eg.verifier` can re-check.
"""

from .context import ElectionContext, make_election_context
from .coordinator import (
    BallotDecryptionResult,
    BallotFailurePolicy,
    DecryptionCoordinator,
    DecryptionPhase,
)
from .errors import (
    MissingBackupError,
    ProofInvalidError,
    QuorumNotMetError,
    SelfReferenceError,
    ShareCountMismatchError,
    ThresholdError,
    UnknownGuardianError,
)
from .guardian import Guardian
from .mediator import KeyCeremonyMediator, KeyCeremonyPhase, KeyCeremonyResult, run_key_ceremony
from .tally import accumulate_ballots, encrypt_ballot, encrypt_tally

__all__ = [
    "BallotDecryptionResult",
    "BallotFailurePolicy",
    "DecryptionCoordinator",
    "DecryptionPhase",
    "ElectionContext",
    "Guardian",
    "KeyCeremonyMediator",
    "KeyCeremonyPhase",
    "KeyCeremonyResult",
    "MissingBackupError",
    "ProofInvalidError",
    "QuorumNotMetError",
    "SelfReferenceError",
    "ShareCountMismatchError",
    "ThresholdError",
    "UnknownGuardianError",
    "accumulate_ballots",
    "encrypt_ballot",
    "encrypt_tally",
    "make_election_context",
    "run_key_ceremony",
]
