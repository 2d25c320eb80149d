from dataclasses import replace

from threshold_eg.elgamal import elgamal_combine_public_keys, elgamal_encrypt
from threshold_eg.group import hash_elems, rand_q
from threshold_eg.guardian import Guardian
from threshold_eg.key_ceremony import (
    CeremonyDetails,
    compute_commitment_hash,
    verify_partial_key_challenge,
)
from threshold_eg.mediator import KeyCeremonyMediator, KeyCeremonyPhase, run_key_ceremony
from threshold_eg.transport import HashedElGamalTransport


class WrongCoordinateGuardian(Guardian):
    """Encrypts its backup for `target` at another guardian's coordinate."""

    target = "guardian-3"

    def send_partial_key_backup(self, designated_id):
        backup = super().send_partial_key_backup(designated_id)
        if designated_id != self.target:
            return backup
        wrong_value = self._polynomial.value_at(1)
        recipient_key = self.guardian_public_keys[designated_id].election_public_key
        return replace(
            backup, encrypted_coordinate=HashedElGamalTransport().encrypt(wrong_value, recipient_key)
        )


class LyingGuardian(WrongCoordinateGuardian):
    """Also answers the challenge with the wrong coordinate."""

    def send_backup_challenge(self, designated_id):
        response = super().send_backup_challenge(designated_id)
        return replace(response, coordinate=self._polynomial.value_at(1))


def _guardians(cls_for_2=Guardian, quorum=2):
    return [
        Guardian("guardian-1", 1, quorum),
        cls_for_2("guardian-2", 2, quorum),
        Guardian("guardian-3", 3, quorum),
    ]


def _run_rounds_1_to_3(mediator, guardians):
    for g in guardians:
        assert mediator.announce(g.share_public_keys())
    for g in guardians:
        for keys in mediator.share_announced(g.guardian_id):
            assert g.receive_public_keys(keys)
    for g in guardians:
        others = [o.guardian_id for o in guardians if o is not g]
        assert mediator.receive_backups([g.send_partial_key_backup(o) for o in others])
    for g in guardians:
        verifications = [g.verify_partial_key_backup(b) for b in mediator.share_backups(g.guardian_id)]
        assert mediator.receive_backup_verifications(verifications)


def test_full_ceremony_publishes_joint_key():
    guardians = _guardians()
    result = run_key_ceremony(guardians, 2)
    assert result is not None
    assert result.joint_key.joint_public_key == elgamal_combine_public_keys(
        g.election_public_key for g in guardians
    )
    assert result.joint_key.commitment_hash == compute_commitment_hash(result.guardian_records)
    assert [r.x_coordinate for r in result.guardian_records] == [1, 2, 3]
    assert result.resolved_challenges == []


def test_mediator_walks_through_phases():
    guardians = _guardians()
    mediator = KeyCeremonyMediator(CeremonyDetails(3, 2))
    assert mediator.phase == KeyCeremonyPhase.ANNOUNCE
    assert mediator.publish_joint_key() is None

    _run_rounds_1_to_3(mediator, guardians)
    assert mediator.all_backups_available()
    assert mediator.all_backups_verified()
    assert mediator.phase == KeyCeremonyPhase.VERIFY

    joint_key = mediator.publish_joint_key()
    assert joint_key is not None
    assert mediator.phase == KeyCeremonyPhase.COMPLETE
    assert mediator.publish_joint_key() == joint_key


def test_commitment_hash_is_ordered_by_x_coordinate():
    guardians = _guardians()
    result = run_key_ceremony(guardians, 2)
    records = result.guardian_records
    assert compute_commitment_hash(list(reversed(records))) == compute_commitment_hash(records)


def test_announce_rejects_duplicates_and_wrong_phase():
    mediator = KeyCeremonyMediator(CeremonyDetails(2, 2))
    a = Guardian("a", 1, 2)
    assert mediator.announce(a.share_public_keys())
    assert not mediator.announce(a.share_public_keys())
    assert not mediator.announce(Guardian("b", 1, 2).share_public_keys())
    assert not mediator.announce(Guardian("c", 2, 3).share_public_keys())
    assert mediator.share_announced("a") == []

    b = Guardian("b", 2, 2)
    assert not mediator.receive_backups([])
    assert mediator.announce(b.share_public_keys())
    assert mediator.phase == KeyCeremonyPhase.BACKUP
    assert not mediator.announce(Guardian("d", 4, 2).share_public_keys())


def test_backups_must_cover_every_ordered_pair():
    mediator = KeyCeremonyMediator(CeremonyDetails(3, 2))
    guardians = _guardians()
    for g in guardians:
        mediator.announce(g.share_public_keys())
    for g in guardians:
        for keys in mediator.share_announced(g.guardian_id):
            g.receive_public_keys(keys)

    first = guardians[0]
    assert mediator.receive_backups([first.send_partial_key_backup("guardian-2")])
    assert not mediator.all_backups_available()
    assert mediator.publish_joint_key() is None


def test_negative_backup_resolved_by_public_challenge():
    guardians = _guardians(WrongCoordinateGuardian)
    mediator = KeyCeremonyMediator(CeremonyDetails(3, 2))
    _run_rounds_1_to_3(mediator, guardians)

    failed = mediator.failed_verifications()
    assert [(v.owner_id, v.designated_id, v.verified) for v in failed] == [("guardian-2", "guardian-3", False)]
    assert not mediator.all_backups_verified()
    assert mediator.publish_joint_key() is None

    # the honest challenge matches guardian 2's published commitments
    response = guardians[1].send_backup_challenge("guardian-3")
    assert verify_partial_key_challenge(response, "anyone").verified
    assert mediator.receive_challenge(response)
    assert mediator.misbehaving_guardians == set()
    assert mediator.all_backups_verified()
    assert mediator.publish_joint_key() is not None


def test_negative_backup_with_false_challenge_marks_owner():
    guardians = _guardians(LyingGuardian)
    mediator = KeyCeremonyMediator(CeremonyDetails(3, 2))
    _run_rounds_1_to_3(mediator, guardians)

    response = guardians[1].send_backup_challenge("guardian-3")
    assert not verify_partial_key_challenge(response, "anyone").verified
    assert not mediator.receive_challenge(response)
    assert mediator.misbehaving_guardians == {"guardian-2"}
    assert mediator.publish_joint_key() is None


def test_run_key_ceremony_resolves_or_fails_on_challenges():
    result = run_key_ceremony(_guardians(WrongCoordinateGuardian), 2)
    assert result is not None
    assert result.resolved_challenges == [("guardian-2", "guardian-3")]

    assert run_key_ceremony(_guardians(LyingGuardian), 2) is None


def test_run_key_ceremony_rejects_duplicate_ids():
    guardians = [Guardian("g", 1, 2), Guardian("g", 2, 2)]
    assert run_key_ceremony(guardians, 2) is None


def test_announce_rejects_x_coordinate_out_of_range():
    mediator = KeyCeremonyMediator(CeremonyDetails(2, 2))
    keys = Guardian("a", 1, 2).share_public_keys()
    for x in (0, -3, 256):
        assert not mediator.announce(replace(keys, x_coordinate=x))
    assert mediator.share_announced() == []


def test_run_key_ceremony_refuses_guardian_at_x_zero():
    class ZeroCoordinateGuardian(Guardian):
        def share_public_keys(self):
            return replace(super().share_public_keys(), x_coordinate=0)

    guardians = [Guardian("guardian-1", 1, 2), ZeroCoordinateGuardian("guardian-2", 2, 2)]
    assert run_key_ceremony(guardians, 2) is None
    assert guardians[0].my_backups == {}


def test_guardian_keys_are_frozen_after_ceremony(guardians, ceremony):
    first = guardians[0]
    joint_key = first.publish_joint_key()
    impostor = Guardian("guardian-2", 2, 2).share_public_keys()
    assert not first.receive_public_keys(impostor)
    assert first.publish_joint_key() == joint_key == ceremony.joint_key.joint_public_key

    ciphertext = elgamal_encrypt(1, rand_q(), joint_key)
    (result,) = first.compensated_decrypt("guardian-2", [ciphertext], hash_elems("frozen"))
    assert result.proof.is_valid(ciphertext, result.recovery_public_key, result.decryption, hash_elems("frozen"))


def test_challenge_refused_without_failed_verification():
    guardians = _guardians()
    mediator = KeyCeremonyMediator(CeremonyDetails(3, 2))
    _run_rounds_1_to_3(mediator, guardians)
    lie = guardians[0].send_backup_challenge("guardian-2")
    assert not mediator.receive_challenge(replace(lie, coordinate=lie.coordinate + 1))
    assert mediator.misbehaving_guardians == set()
    assert mediator.all_backups_verified()


def test_challenge_refused_after_joint_key_is_published():
    guardians = _guardians(WrongCoordinateGuardian)
    mediator = KeyCeremonyMediator(CeremonyDetails(3, 2))
    _run_rounds_1_to_3(mediator, guardians)
    response = guardians[1].send_backup_challenge("guardian-3")
    assert mediator.receive_challenge(response)
    joint_key = mediator.publish_joint_key()
    assert mediator.phase == KeyCeremonyPhase.COMPLETE

    assert not mediator.receive_challenge(replace(response, coordinate=response.coordinate + 1))
    assert mediator.misbehaving_guardians == set()
    assert mediator.all_backups_verified()
    assert mediator.publish_joint_key() == joint_key
