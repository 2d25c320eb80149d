"""Errors raised by trustees, mediators and the decryption coordinator."""

from typing import Dict, Type


class ThresholdError(Exception):
    """Base class for recoverable protocol failures."""


class UnknownGuardianError(ThresholdError):
    """Reference to a guardian id that was never announced."""


class SelfReferenceError(ThresholdError):
    """A guardian was asked to back itself up or compensate for itself."""


class MissingBackupError(ThresholdError):
    """Compensation or challenge requested without the corresponding backup."""


class ProofInvalidError(ThresholdError):
    """A Chaum-Pedersen or Schnorr proof failed verification."""


class QuorumNotMetError(ThresholdError):
    """Fewer than `quorum` guardians announced."""


class ShareCountMismatchError(ThresholdError):
    """The number of gathered shares differs from the number required."""


_KINDS: Dict[str, Type[ThresholdError]] = {
    cls.__name__: cls
    for cls in (
        ThresholdError,
        UnknownGuardianError,
        SelfReferenceError,
        MissingBackupError,
        ProofInvalidError,
        QuorumNotMetError,
        ShareCountMismatchError,
    )
}


def error_from_kind(kind: str, message: str) -> ThresholdError:
    """Rebuild an error from its class name, as carried in remote error bodies."""
    return _KINDS.get(kind, ThresholdError)(message)
