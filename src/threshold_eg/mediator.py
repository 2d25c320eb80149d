"""Key ceremony mediator and the driver that runs a ceremony over a set of trustees.

The mediator only ever sees public material: announced keys, encrypted
backups, verification results and challenge responses. Each round is a
barrier; the mediator moves to the next phase only when the current
round's completeness predicate holds.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set, Tuple
import logging

from .elgamal import elgamal_combine_public_keys
from .errors import ThresholdError
from .key_ceremony import (
    MAX_X_COORDINATE,
    CeremonyDetails,
    ElectionJointKey,
    GuardianRecord,
    PartialKeyBackup,
    PartialKeyChallengeResponse,
    PartialKeyVerification,
    PublicKeySet,
    compute_commitment_hash,
    guardian_record_from,
    valid_x_coordinate,
    verify_partial_key_challenge,
)
from .trustee import KeyCeremonyTrusteeIF

logger = logging.getLogger(__name__)

MEDIATOR_ID = "mediator"

# (owner_id, designated_id)
GuardianPair = Tuple[str, str]


class KeyCeremonyPhase(Enum):
    ANNOUNCE = "announce"
    BACKUP = "backup"
    VERIFY = "verify"
    COMPLETE = "complete"


class KeyCeremonyMediator:
    """Collects the public output of each ceremony round.

    Every `receive_*` method returns False (and logs why) instead of raising
    when a submission is refused.
    """

    def __init__(self, details: CeremonyDetails):
        self.details = details
        self._phase = KeyCeremonyPhase.ANNOUNCE
        self._public_keys: Dict[str, PublicKeySet] = {}
        self._backups: Dict[GuardianPair, PartialKeyBackup] = {}
        self._verifications: Dict[GuardianPair, PartialKeyVerification] = {}
        self._challenges: Dict[GuardianPair, PartialKeyChallengeResponse] = {}
        self.misbehaving_guardians: Set[str] = set()
        self._joint_key: Optional[ElectionJointKey] = None

    @property
    def phase(self) -> KeyCeremonyPhase:
        return self._phase

    ## --- round 1: announce ------------------------------------------------

    def announce(self, public_keys: PublicKeySet) -> bool:
        if self._phase != KeyCeremonyPhase.ANNOUNCE:
            logger.warning("announce from %s refused in phase %s", public_keys.owner_id, self._phase.value)
            return False
        if public_keys.owner_id in self._public_keys:
            logger.warning("guardian %s already announced", public_keys.owner_id)
            return False
        if not valid_x_coordinate(public_keys.x_coordinate):
            logger.warning("guardian %s announced x coordinate %r, must be in [1, %d)",
                           public_keys.owner_id, public_keys.x_coordinate, MAX_X_COORDINATE)
            return False
        if any(k.x_coordinate == public_keys.x_coordinate for k in self._public_keys.values()):
            logger.warning("guardian %s reuses x coordinate %d", public_keys.owner_id, public_keys.x_coordinate)
            return False
        if len(public_keys.coefficient_proofs) != self.details.quorum:
            logger.warning("guardian %s announced %d commitments, expected %d",
                           public_keys.owner_id, len(public_keys.coefficient_proofs), self.details.quorum)
            return False
        if not public_keys.is_valid():
            logger.warning("guardian %s announced invalid coefficient proofs", public_keys.owner_id)
            return False

        self._public_keys[public_keys.owner_id] = public_keys
        logger.info("guardian %s announced (%d/%d)", public_keys.owner_id,
                    len(self._public_keys), self.details.number_of_guardians)
        if self.all_guardians_announced():
            self._phase = KeyCeremonyPhase.BACKUP
        return True

    def all_guardians_announced(self) -> bool:
        return len(self._public_keys) == self.details.number_of_guardians

    def share_announced(self, requesting_id: Optional[str] = None) -> List[PublicKeySet]:
        """Announced key sets, excluding the requesting guardian's own."""
        return [k for gid, k in self._public_keys.items() if gid != requesting_id]

    ## --- round 2: backups -------------------------------------------------

    def receive_backups(self, backups: Sequence[PartialKeyBackup]) -> bool:
        if self._phase != KeyCeremonyPhase.BACKUP:
            logger.warning("backups refused in phase %s", self._phase.value)
            return False
        for backup in backups:
            if backup.owner_id == backup.designated_id:
                logger.warning("guardian %s submitted a backup for itself", backup.owner_id)
                return False
            if backup.owner_id not in self._public_keys or backup.designated_id not in self._public_keys:
                logger.warning("backup %s -> %s names an unknown guardian",
                               backup.owner_id, backup.designated_id)
                return False

        for backup in backups:
            self._backups[(backup.owner_id, backup.designated_id)] = backup
        if self.all_backups_available():
            self._phase = KeyCeremonyPhase.VERIFY
        return True

    def all_backups_available(self) -> bool:
        n = self.details.number_of_guardians
        return self.all_guardians_announced() and len(self._backups) == n * (n - 1)

    def share_backups(self, designated_id: str) -> List[PartialKeyBackup]:
        return [b for (_, designated), b in self._backups.items() if designated == designated_id]

    ## --- round 3: verification and challenges -----------------------------

    def receive_backup_verifications(self, verifications: Sequence[PartialKeyVerification]) -> bool:
        if self._phase != KeyCeremonyPhase.VERIFY:
            logger.warning("verifications refused in phase %s", self._phase.value)
            return False
        for verification in verifications:
            pair = (verification.owner_id, verification.designated_id)
            if pair not in self._backups:
                logger.warning("verification for unknown backup %s -> %s", *pair)
                return False
            if verification.verifier_id != verification.designated_id:
                logger.warning("verification of %s -> %s made by %s", *pair, verification.verifier_id)
                return False

        for verification in verifications:
            pair = (verification.owner_id, verification.designated_id)
            # a resolved challenge overrides the original verification
            if pair not in self._challenges:
                self._verifications[pair] = verification
            if not verification.verified:
                logger.warning("guardian %s could not verify backup from %s: %s",
                               verification.designated_id, verification.owner_id, verification.error)
        return True

    def all_backups_verified(self) -> bool:
        if not self.all_backups_available():
            return False
        if len(self._verifications) != len(self._backups):
            return False
        return all(v.verified for v in self._verifications.values())

    def failed_verifications(self) -> List[PartialKeyVerification]:
        return [v for v in self._verifications.values() if not v.verified]

    def receive_challenge(self, response: PartialKeyChallengeResponse) -> bool:
        """Check an owner's public challenge response; True when it resolves the dispute."""
        if self._phase != KeyCeremonyPhase.VERIFY:
            logger.warning("challenge from %s refused in phase %s", response.owner_id, self._phase.value)
            return False
        pair = (response.owner_id, response.designated_id)
        if pair not in self._backups:
            logger.warning("challenge for unknown backup %s -> %s", *pair)
            return False
        recorded = self._verifications.get(pair)
        if recorded is None or recorded.verified:
            logger.warning("challenge %s -> %s refused: no failed verification to dispute", *pair)
            return False

        owner_keys = self._public_keys[response.owner_id]
        designated_keys = self._public_keys[response.designated_id]
        if tuple(response.coefficient_commitments) != owner_keys.coefficient_commitments:
            verification = PartialKeyVerification(
                *pair, MEDIATOR_ID, False, "challenge commitments differ from announced commitments"
            )
        elif response.designated_x_coordinate != designated_keys.x_coordinate:
            verification = PartialKeyVerification(
                *pair, MEDIATOR_ID, False, "challenge made for the wrong x coordinate"
            )
        else:
            verification = verify_partial_key_challenge(response, MEDIATOR_ID)

        self._challenges[pair] = response
        self._verifications[pair] = verification
        if verification.verified:
            logger.info("challenge %s -> %s resolved in favour of the owner", *pair)
        else:
            logger.warning("challenge %s -> %s failed: %s", *pair, verification.error)
            self.misbehaving_guardians.add(response.owner_id)
        return verification.verified

    ## --- publish ----------------------------------------------------------

    def guardian_records(self) -> List[GuardianRecord]:
        return sorted(
            (guardian_record_from(k) for k in self._public_keys.values()),
            key=lambda r: r.x_coordinate,
        )

    def publish_joint_key(self) -> Optional[ElectionJointKey]:
        """The joint key, or None while any key is missing or any backup unverified."""
        if self._joint_key is not None:
            return self._joint_key
        if not self.all_guardians_announced():
            logger.warning("cannot publish joint key: not all guardians announced")
            return None
        if not self.all_backups_verified():
            logger.warning("cannot publish joint key: not all backups verified")
            return None

        records = self.guardian_records()
        self._joint_key = ElectionJointKey(
            elgamal_combine_public_keys(r.election_public_key for r in records),
            compute_commitment_hash(records),
        )
        self._phase = KeyCeremonyPhase.COMPLETE
        return self._joint_key


@dataclass(frozen=True)
class KeyCeremonyResult:
    """Published output of a successful ceremony.

    Attributes
    - joint_key: the election joint key and commitment hash
    - guardian_records: public guardian records sorted by x-coordinate
    - resolved_challenges: (owner, designated) pairs whose dispute a challenge resolved
    """

    joint_key: ElectionJointKey
    guardian_records: List[GuardianRecord]
    resolved_challenges: List[GuardianPair]


def run_key_ceremony(
    trustees: Sequence[KeyCeremonyTrusteeIF], quorum: int
) -> Optional[KeyCeremonyResult]:
    """Run all ceremony rounds over `trustees`; None (with the reason logged) on failure."""
    details = CeremonyDetails(len(trustees), quorum)
    mediator = KeyCeremonyMediator(details)
    by_id = {t.guardian_id: t for t in trustees}
    if len(by_id) != len(trustees):
        logger.error("key ceremony: duplicate guardian ids")
        return None

    try:
        # round 1
        for trustee in trustees:
            if not mediator.announce(trustee.share_public_keys()):
                logger.error("key ceremony: announce failed for %s", trustee.guardian_id)
                return None
        for trustee in trustees:
            for keys in mediator.share_announced(trustee.guardian_id):
                if not trustee.receive_public_keys(keys):
                    logger.error("key ceremony: %s rejected public keys of %s",
                                 trustee.guardian_id, keys.owner_id)
                    return None
        logger.info("key ceremony: round 1 complete")

        # round 2
        for trustee in trustees:
            backups = [
                trustee.send_partial_key_backup(other.guardian_id)
                for other in trustees
                if other.guardian_id != trustee.guardian_id
            ]
            if not mediator.receive_backups(backups):
                logger.error("key ceremony: backups from %s refused", trustee.guardian_id)
                return None
        if not mediator.all_backups_available():
            logger.error("key ceremony: backups incomplete")
            return None
        logger.info("key ceremony: round 2 complete")

        # round 3
        for trustee in trustees:
            verifications = [
                trustee.verify_partial_key_backup(backup)
                for backup in mediator.share_backups(trustee.guardian_id)
            ]
            if not mediator.receive_backup_verifications(verifications):
                logger.error("key ceremony: verifications from %s refused", trustee.guardian_id)
                return None

        resolved = []
        for failed in mediator.failed_verifications():
            owner = by_id[failed.owner_id]
            response = owner.send_backup_challenge(failed.designated_id)
            if not mediator.receive_challenge(response):
                logger.error("key ceremony: guardian %s failed its challenge", failed.owner_id)
                return None
            if not by_id[failed.designated_id].accept_challenge_response(response):
                logger.error("key ceremony: %s did not accept challenge response from %s",
                             failed.designated_id, failed.owner_id)
                return None
            resolved.append((failed.owner_id, failed.designated_id))
        logger.info("key ceremony: round 3 complete, %d challenge(s) resolved", len(resolved))
    except ThresholdError as e:
        logger.error("key ceremony failed: %s", e)
        return None

    joint_key = mediator.publish_joint_key()
    if joint_key is None:
        return None

    # round 4: every guardian must arrive at the same joint key
    for trustee in trustees:
        theirs = trustee.publish_joint_key()
        if theirs != joint_key.joint_public_key:
            logger.error("key ceremony: %s computed a different joint key", trustee.guardian_id)
            return None

    logger.info("key ceremony complete: %d guardians, quorum %d",
                details.number_of_guardians, details.quorum)
    return KeyCeremonyResult(joint_key, mediator.guardian_records(), resolved)
