"""Combining a full set of decryption shares into plaintext counts."""

from typing import Dict, Mapping, Sequence, Tuple
import logging

from .context import ElectionContext
from .decryption_share import DecryptionShare, SelectionShare
from .errors import ProofInvalidError, ShareCountMismatchError, ThresholdError
from .group import discrete_log, mult_p
from .key_ceremony import GuardianRecord
from .polynomial import calculate_g_exp_pi_at_l
from .reconstruction import compute_lagrange_coefficients
from .tally import (
    CiphertextContest,
    PlaintextContest,
    PlaintextSelection,
    PlaintextTally,
    iter_selections,
)

logger = logging.getLogger(__name__)


def decrypt_with_shares(
    object_id: str,
    contests: Dict[str, CiphertextContest],
    shares: Mapping[str, DecryptionShare],
    context: ElectionContext,
    guardian_records: Sequence[GuardianRecord],
    max_count: int,
) -> PlaintextTally:
    """Verify every share, then recover t with g^t = B / prod_i M_i for each selection.

    `shares` must hold exactly one share per guardian in `guardian_records`.
    Direct shares are checked against the guardian's published key.
    Reconstructed shares must use the recovery keys and Lagrange coefficients
    that follow from the records, not whatever the share carries.
    """
    records = {r.guardian_id: r for r in guardian_records}
    if len(shares) != context.number_of_guardians or set(shares) != set(records):
        raise ShareCountMismatchError(
            f"{object_id}: have {len(shares)} shares, need one for each of {context.number_of_guardians} guardians"
        )
    for gid, share in shares.items():
        if share.public_key != records[gid].election_public_key:
            raise ProofInvalidError(f"{object_id}: share from guardian {gid} names the wrong public key")

    recovery_keys: Dict[Tuple[str, str], int] = {}

    def check_reconstructed(name: str, missing_id: str, selection_share: SelectionShare) -> None:
        parts = selection_share.recovered_parts or {}
        if any(part_gid not in records for part_gid in parts):
            raise ProofInvalidError(f"{name}: share for {missing_id} has parts from unknown guardians")
        for part_gid, part in parts.items():
            key = recovery_keys.get((missing_id, part_gid))
            if key is None:
                key = calculate_g_exp_pi_at_l(
                    records[part_gid].x_coordinate, records[missing_id].coefficient_commitments
                )
                recovery_keys[(missing_id, part_gid)] = key
            if part.recovery_public_key != key:
                raise ProofInvalidError(f"{name}: wrong recovery key from {part_gid} for {missing_id}")
        expected = compute_lagrange_coefficients({g: records[g].x_coordinate for g in parts})
        if selection_share.lagrange_coefficients != expected:
            raise ProofInvalidError(f"{name}: share for {missing_id} used wrong Lagrange coefficients")

    plaintext: Dict[str, Dict[str, PlaintextSelection]] = {}
    for cid, sid, ciphertext in iter_selections(contests):
        name = f"{object_id}/{cid}/{sid}"
        partials = []
        for gid, share in shares.items():
            selection_share = share.selection(cid, sid)
            if selection_share is None:
                raise ShareCountMismatchError(f"{name}: no share from guardian {gid}")
            if selection_share.proof is None:
                check_reconstructed(name, gid, selection_share)
            if not selection_share.is_valid(ciphertext, records[gid].election_public_key, context.extended_base_hash):
                raise ProofInvalidError(f"{name}: invalid share from guardian {gid}")
            partials.append(selection_share.share)

        value = ciphertext.decrypt_known_product(mult_p(*partials))
        tally = discrete_log(value, max_count)
        if tally is None:
            raise ThresholdError(f"{name}: count not found in [0, {max_count}]")
        plaintext.setdefault(cid, {})[sid] = PlaintextSelection(sid, tally, value, ciphertext)

    return PlaintextTally(
        object_id,
        {cid: PlaintextContest(cid, selections) for cid, selections in plaintext.items()},
    )
