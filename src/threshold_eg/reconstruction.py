"""Rebuilding a missing guardian's decryption share by Lagrange interpolation."""

from typing import Dict, Mapping
import logging

from .decryption_share import (
    CompensatedDecryptionShare,
    CompensatedSelectionShare,
    DecryptionShare,
    SelectionShare,
)
from .errors import ShareCountMismatchError
from .group import mult_p, pow_p
from .key_ceremony import GuardianRecord
from .polynomial import compute_lagrange_coefficient
from .tally import CiphertextContest, iter_selections

logger = logging.getLogger(__name__)


def compute_lagrange_coefficients(x_coordinates: Mapping[str, int]) -> Dict[str, int]:
    """Guardian id -> Lagrange coefficient over the given (available) guardians."""
    if len(set(x_coordinates.values())) != len(x_coordinates):
        raise ValueError("x coordinates must be distinct")
    return {
        gid: compute_lagrange_coefficient(
            x, [other for other_id, other in x_coordinates.items() if other_id != gid]
        )
        for gid, x in x_coordinates.items()
    }


def reconstruct_decryption_share(
    missing_guardian: GuardianRecord,
    object_id: str,
    contests: Dict[str, CiphertextContest],
    compensated_shares: Mapping[str, CompensatedDecryptionShare],
    lagrange_coefficients: Mapping[str, int],
) -> DecryptionShare:
    """M_missing = prod_l (M_{missing,l})^w_l for every selection.

    `compensated_shares` and `lagrange_coefficients` are keyed by the available
    guardian that produced each part; both must cover the same guardians.
    """
    if set(compensated_shares) != set(lagrange_coefficients):
        raise ShareCountMismatchError(
            f"{len(compensated_shares)} compensated shares for {missing_guardian.guardian_id} "
            f"but {len(lagrange_coefficients)} available guardians"
        )

    contest_shares: Dict[str, Dict[str, SelectionShare]] = {}
    for cid, sid, _ in iter_selections(contests):
        parts: Dict[str, CompensatedSelectionShare] = {}
        for gid, compensated in compensated_shares.items():
            if compensated.missing_guardian_id != missing_guardian.guardian_id:
                raise ValueError(
                    f"share from {gid} compensates {compensated.missing_guardian_id}, "
                    f"not {missing_guardian.guardian_id}"
                )
            part = compensated.contests.get(cid, {}).get(sid)
            if part is None:
                raise ShareCountMismatchError(
                    f"guardian {gid} has no compensated share for {object_id}/{cid}/{sid}"
                )
            parts[gid] = part

        share = mult_p(*[pow_p(part.share, lagrange_coefficients[gid]) for gid, part in parts.items()])
        contest_shares.setdefault(cid, {})[sid] = SelectionShare(
            sid,
            missing_guardian.guardian_id,
            share,
            recovered_parts=parts,
            lagrange_coefficients=dict(lagrange_coefficients),
        )

    logger.debug("reconstructed share of %s for %s from %d guardians",
                 missing_guardian.guardian_id, object_id, len(compensated_shares))
    return DecryptionShare(
        object_id, missing_guardian.guardian_id, missing_guardian.election_public_key, contest_shares
    )
