"""Independent checks over published election data.

Each verifier recomputes what it can from public records alone and
returns (ok, details), where details lists every failure found.
"""

from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .context import ElectionContext
from .decryption_share import AvailableGuardian, DecryptionShare
from .elgamal import elgamal_combine_public_keys
from .group import g_pow_p, mult_p
from .key_ceremony import ElectionJointKey, GuardianRecord, compute_commitment_hash, valid_x_coordinate
from .polynomial import calculate_g_exp_pi_at_l
from .reconstruction import compute_lagrange_coefficients
from .tally import CiphertextContest, PlaintextTally, iter_selections


def verify_guardian_records(
    records: Sequence[GuardianRecord], quorum: int
) -> Tuple[bool, Dict[str, Any]]:
    """Every guardian proved knowledge of each coefficient it committed to."""
    errors: List[str] = []
    if len({r.guardian_id for r in records}) != len(records):
        errors.append("duplicate guardian ids")
    if len({r.x_coordinate for r in records}) != len(records):
        errors.append("duplicate x coordinates")

    for r in records:
        if not valid_x_coordinate(r.x_coordinate):
            errors.append(f"{r.guardian_id}: x coordinate {r.x_coordinate} out of range")
        if len(r.coefficient_commitments) != quorum or len(r.coefficient_proofs) != quorum:
            errors.append(f"{r.guardian_id}: expected {quorum} commitments")
            continue
        if r.election_public_key != r.coefficient_commitments[0]:
            errors.append(f"{r.guardian_id}: public key is not the 0th commitment")
        for j, (commitment, proof) in enumerate(zip(r.coefficient_commitments, r.coefficient_proofs)):
            if proof.public_key != commitment:
                errors.append(f"{r.guardian_id}: proof {j} is for a different commitment")
            elif not proof.is_valid():
                errors.append(f"{r.guardian_id}: invalid Schnorr proof for coefficient {j}")

    return not errors, {"guardians": len(records), "errors": errors}


def verify_joint_key(
    records: Sequence[GuardianRecord], joint_key: ElectionJointKey
) -> Tuple[bool, Dict[str, Any]]:
    """The joint key is the product of the guardians' keys; the commitment hash matches."""
    expected_key = elgamal_combine_public_keys(r.election_public_key for r in records)
    expected_hash = compute_commitment_hash(list(records))
    errors = []
    if expected_key != joint_key.joint_public_key:
        errors.append("joint public key is not the product of guardian keys")
    if expected_hash != joint_key.commitment_hash:
        errors.append("commitment hash mismatch")
    return not errors, {
        "recomputed_joint_key": expected_key,
        "recomputed_commitment_hash": expected_hash,
        "errors": errors,
    }


def verify_decryption(
    context: ElectionContext,
    records: Sequence[GuardianRecord],
    contests: Mapping[str, CiphertextContest],
    plaintext: PlaintextTally,
    shares: Mapping[str, DecryptionShare],
    available_guardians: Sequence[AvailableGuardian] = (),
) -> Tuple[bool, Dict[str, Any]]:
    """Re-check every share of a published decryption and the resulting counts.

    Direct shares are checked against the guardian's published key;
    reconstructed shares against the recovery keys derived from the missing
    guardian's commitments and the Lagrange coefficients of `available_guardians`,
    or, when none are given, those recomputed from the parts' guardian records.
    """
    errors: List[str] = []
    by_id = {r.guardian_id: r for r in records}
    if set(shares) != set(by_id):
        errors.append("shares do not cover exactly the published guardians")
        return False, {"errors": errors}

    coefficients: Dict[str, int] = {}
    if available_guardians:
        coefficients = compute_lagrange_coefficients(
            {a.guardian_id: a.x_coordinate for a in available_guardians}
        )
        for a in available_guardians:
            if coefficients[a.guardian_id] != a.lagrange_coefficient:
                errors.append(f"{a.guardian_id}: wrong Lagrange coefficient")
            if by_id.get(a.guardian_id) is None or by_id[a.guardian_id].x_coordinate != a.x_coordinate:
                errors.append(f"{a.guardian_id}: x coordinate differs from the guardian record")

    checked = 0
    for cid, sid, ciphertext in iter_selections(dict(contests)):
        name = f"{cid}/{sid}"
        partials = []
        for gid, share in shares.items():
            record = by_id[gid]
            selection_share = share.selection(cid, sid)
            if selection_share is None:
                errors.append(f"{name}: missing share from {gid}")
                continue
            if selection_share.proof is None:
                parts = selection_share.recovered_parts or {}
                for part_gid, part in parts.items():
                    if part_gid not in by_id:
                        errors.append(f"{name}: part from unknown guardian {part_gid}")
                        continue
                    expected_key = calculate_g_exp_pi_at_l(
                        by_id[part_gid].x_coordinate, record.coefficient_commitments
                    )
                    if part.recovery_public_key != expected_key:
                        errors.append(f"{name}: wrong recovery key from {part_gid} for {gid}")
                expected_coefficients = coefficients or compute_lagrange_coefficients(
                    {part_gid: by_id[part_gid].x_coordinate for part_gid in parts if part_gid in by_id}
                )
                if selection_share.lagrange_coefficients != expected_coefficients:
                    errors.append(f"{name}: share for {gid} used wrong Lagrange coefficients")
            if not selection_share.is_valid(ciphertext, record.election_public_key, context.extended_base_hash):
                errors.append(f"{name}: invalid share from {gid}")
            partials.append(selection_share.share)

        selection = plaintext.contests.get(cid)
        selection = selection.selections.get(sid) if selection else None
        if selection is None:
            errors.append(f"{name}: no plaintext")
            continue
        # B = M * g^t
        if ciphertext.data != mult_p(mult_p(*partials), g_pow_p(selection.tally)):
            errors.append(f"{name}: plaintext does not match B / M")
        if selection.value != g_pow_p(selection.tally):
            errors.append(f"{name}: value is not g^tally")
        checked += 1

    return not errors, {"selections_checked": checked, "errors": errors}
