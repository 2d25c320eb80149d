from dataclasses import replace

from threshold_eg.coordinator import DecryptionCoordinator
from threshold_eg.decryption_share import AvailableGuardian
from threshold_eg.group import PARAMS, add_q, mult_p, pow_p
from threshold_eg.key_ceremony import ElectionJointKey
from threshold_eg.tally import PlaintextContest, PlaintextTally, encrypt_tally
from threshold_eg.verifier import verify_decryption, verify_guardian_records, verify_joint_key

COUNTS = {"mayor": {"alice": 4, "bob": 2}}


def _decrypt(guardians, ceremony, context, present):
    tally = encrypt_tally(COUNTS, context.joint_public_key)
    coordinator = DecryptionCoordinator(context, ceremony.guardian_records, tally)
    for guardian in present:
        assert coordinator.announce(guardian)
    plaintext = coordinator.get_plaintext_tally()
    assert plaintext is not None
    return tally, plaintext, coordinator


def test_guardian_records_verify(ceremony):
    ok, details = verify_guardian_records(ceremony.guardian_records, 2)
    assert ok, details["errors"]


def test_tampered_guardian_record_fails(ceremony):
    records = list(ceremony.guardian_records)
    proof = records[0].coefficient_proofs[1]
    bad = replace(proof, response=add_q(proof.response, 1))
    records[0] = replace(records[0], coefficient_proofs=(records[0].coefficient_proofs[0], bad))
    ok, details = verify_guardian_records(records, 2)
    assert not ok
    assert any("coefficient 1" in e for e in details["errors"])

    ok, _ = verify_guardian_records(ceremony.guardian_records, 3)
    assert not ok


def test_joint_key_verifies_and_detects_mismatch(ceremony):
    ok, _ = verify_joint_key(ceremony.guardian_records, ceremony.joint_key)
    assert ok
    wrong = ElectionJointKey(mult_p(ceremony.joint_key.joint_public_key, PARAMS.g), ceremony.joint_key.commitment_hash)
    ok, details = verify_joint_key(ceremony.guardian_records, wrong)
    assert not ok
    assert details["errors"] == ["joint public key is not the product of guardian keys"]


def test_compensated_decryption_verifies(guardians, ceremony, context):
    tally, plaintext, coordinator = _decrypt(guardians, ceremony, context, guardians[:2])
    ok, details = verify_decryption(
        context,
        ceremony.guardian_records,
        tally.contests,
        plaintext,
        coordinator.decryption_shares(tally.object_id),
        coordinator.available_guardians(),
    )
    assert ok, details["errors"]
    assert details["selections_checked"] == 2


def test_full_decryption_verifies(guardians, ceremony, context):
    tally, plaintext, coordinator = _decrypt(guardians, ceremony, context, guardians)
    ok, details = verify_decryption(
        context, ceremony.guardian_records, tally.contests, plaintext, coordinator.decryption_shares(tally.object_id)
    )
    assert ok, details["errors"]


def test_wrong_count_is_detected(guardians, ceremony, context):
    tally, plaintext, coordinator = _decrypt(guardians, ceremony, context, guardians[1:])
    alice = plaintext.contests["mayor"].selections["alice"]
    forged = PlaintextTally(
        plaintext.object_id,
        {
            "mayor": PlaintextContest(
                "mayor", {**plaintext.contests["mayor"].selections, "alice": replace(alice, tally=5)}
            )
        },
    )
    ok, details = verify_decryption(
        context, ceremony.guardian_records, tally.contests, forged, coordinator.decryption_shares(tally.object_id)
    )
    assert not ok
    assert any("mayor/alice" in e for e in details["errors"])


def test_wrong_lagrange_coefficient_is_detected(guardians, ceremony, context):
    tally, plaintext, coordinator = _decrypt(guardians, ceremony, context, guardians[:2])
    available = coordinator.available_guardians()
    available[0] = AvailableGuardian(available[0].guardian_id, available[0].x_coordinate, 7)
    ok, details = verify_decryption(
        context,
        ceremony.guardian_records,
        tally.contests,
        plaintext,
        coordinator.decryption_shares(tally.object_id),
        available,
    )
    assert not ok
    assert any("Lagrange" in e for e in details["errors"])


def test_lagrange_coefficients_recomputed_without_published_guardians(guardians, ceremony, context):
    tally, plaintext, coordinator = _decrypt(guardians, ceremony, context, guardians[:2])
    shares = coordinator.decryption_shares(tally.object_id)
    rebuilt = shares["guardian-3"]

    def swapped(selection):
        w = selection.lagrange_coefficients
        w = {"guardian-1": w["guardian-2"], "guardian-2": w["guardian-1"]}
        share = mult_p(*[pow_p(p.share, w[g]) for g, p in selection.recovered_parts.items()])
        return replace(selection, share=share, lagrange_coefficients=w)

    forged = replace(
        rebuilt,
        contests={
            cid: {sid: swapped(s) for sid, s in selections.items()}
            for cid, selections in rebuilt.contests.items()
        },
    )
    ok, details = verify_decryption(
        context, ceremony.guardian_records, tally.contests, plaintext, dict(shares, **{"guardian-3": forged})
    )
    assert not ok
    assert any("wrong Lagrange coefficients" in e for e in details["errors"])
