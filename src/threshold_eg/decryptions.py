"""Collecting decryption shares from trustees.

Every proof a trustee returns is verified here before the share is trusted;
a trustee whose proof fails is named in the raised `ProofInvalidError`.
"""

from typing import Dict, Optional
import logging

from .context import ElectionContext
from .decryption_share import (
    CompensatedDecryptionShare,
    CompensatedSelectionShare,
    DecryptionShare,
    SelectionShare,
)
from .errors import ProofInvalidError, ShareCountMismatchError
from .key_ceremony import GuardianRecord
from .polynomial import calculate_g_exp_pi_at_l
from .tally import CiphertextContest, iter_selections
from .trustee import DecryptingTrusteeIF

logger = logging.getLogger(__name__)


def compute_decryption_share(
    trustee: DecryptingTrusteeIF,
    object_id: str,
    contests: Dict[str, CiphertextContest],
    context: ElectionContext,
    nonce_seed: Optional[int] = None,
) -> DecryptionShare:
    """The trustee's direct share M_i for every selection of a tally or ballot."""
    selections = iter_selections(contests)
    results = trustee.partial_decrypt(
        [ct for _, _, ct in selections], context.extended_base_hash, nonce_seed
    )
    if len(results) != len(selections):
        raise ShareCountMismatchError(
            f"guardian {trustee.guardian_id} returned {len(results)} decryptions for {len(selections)} selections"
        )

    public_key = trustee.election_public_key
    shares: Dict[str, Dict[str, SelectionShare]] = {}
    for (cid, sid, ciphertext), result in zip(selections, results):
        if not result.proof.is_valid(ciphertext, public_key, result.decryption, context.extended_base_hash):
            raise ProofInvalidError(
                f"invalid decryption proof from guardian {trustee.guardian_id} for {object_id}/{cid}/{sid}"
            )
        shares.setdefault(cid, {})[sid] = SelectionShare(
            sid, trustee.guardian_id, result.decryption, result.proof
        )
    return DecryptionShare(object_id, trustee.guardian_id, public_key, shares)


def compute_compensated_decryption_share(
    trustee: DecryptingTrusteeIF,
    missing_guardian: GuardianRecord,
    object_id: str,
    contests: Dict[str, CiphertextContest],
    context: ElectionContext,
    nonce_seed: Optional[int] = None,
) -> CompensatedDecryptionShare:
    """The trustee's shares M_{i,l} standing in for `missing_guardian`.

    The recovery key each result carries must match the one derived from the
    missing guardian's published commitments.
    """
    expected_recovery_key = calculate_g_exp_pi_at_l(
        trustee.x_coordinate, missing_guardian.coefficient_commitments
    )
    selections = iter_selections(contests)
    results = trustee.compensated_decrypt(
        missing_guardian.guardian_id,
        [ct for _, _, ct in selections],
        context.extended_base_hash,
        nonce_seed,
    )
    if len(results) != len(selections):
        raise ShareCountMismatchError(
            f"guardian {trustee.guardian_id} returned {len(results)} compensated decryptions "
            f"for {len(selections)} selections"
        )

    shares: Dict[str, Dict[str, CompensatedSelectionShare]] = {}
    for (cid, sid, ciphertext), result in zip(selections, results):
        if result.recovery_public_key != expected_recovery_key:
            raise ProofInvalidError(
                f"guardian {trustee.guardian_id} used a wrong recovery key for {missing_guardian.guardian_id}"
            )
        share = CompensatedSelectionShare(
            sid,
            trustee.guardian_id,
            missing_guardian.guardian_id,
            result.decryption,
            result.recovery_public_key,
            result.proof,
        )
        if not share.is_valid(ciphertext, context.extended_base_hash):
            raise ProofInvalidError(
                f"invalid compensated proof from guardian {trustee.guardian_id} "
                f"for {missing_guardian.guardian_id} on {object_id}/{cid}/{sid}"
            )
        shares.setdefault(cid, {})[sid] = share
    logger.debug("guardian %s compensated for %s on %s",
                 trustee.guardian_id, missing_guardian.guardian_id, object_id)
    return CompensatedDecryptionShare(
        object_id, trustee.guardian_id, missing_guardian.guardian_id, shares
    )
