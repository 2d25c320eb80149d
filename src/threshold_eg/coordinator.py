"""Threshold decryption of a tally and its spoiled ballots.

Guardians announce themselves to a `DecryptionCoordinator`, which collects
their direct shares straight away. Once at least a quorum is present the
coordinator asks each available guardian to compensate for every missing
one, rebuilds the missing shares by Lagrange interpolation and decrypts.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, TypeVar
import logging

from .context import ElectionContext
from .decrypt_with_shares import decrypt_with_shares
from .decryption_share import AvailableGuardian, CompensatedDecryptionShare, DecryptionShare
from .decryptions import compute_compensated_decryption_share, compute_decryption_share
from .errors import QuorumNotMetError, ShareCountMismatchError, ThresholdError
from .key_ceremony import GuardianRecord
from .reconstruction import compute_lagrange_coefficients, reconstruct_decryption_share
from .tally import CiphertextContest, CiphertextTally, PlaintextTally, SubmittedBallot
from .trustee import DecryptingTrusteeIF

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class DecryptionPhase(Enum):
    COLLECTING = "collecting"
    DECRYPTED = "decrypted"
    FAILED = "failed"


class BallotFailurePolicy(Enum):
    """What a failure on one spoiled ballot does to the others."""

    ABORT = "abort"  # no ballot results at all
    SKIP = "skip"  # report the ballot as skipped, decrypt the rest


@dataclass(frozen=True)
class SkippedBallot:
    ballot_id: str
    reason: str


@dataclass(frozen=True)
class BallotDecryptionResult:
    decrypted: Dict[str, PlaintextTally] = field(default_factory=dict)
    skipped: List[SkippedBallot] = field(default_factory=list)


class DecryptionCoordinator:
    """Drives one decryption session; use a fresh instance per tally.

    Args:
        context: the election context; its extended base hash binds every proof.
        guardian_records: the published records of all guardians.
        tally: the encrypted tally.
        spoiled_ballots: ballots to decrypt individually.
        ballot_policy: see `BallotFailurePolicy`.
        max_workers: fan-out for compensated shares; 1 runs everything inline.
        ballot_max_count: upper bound for a single ballot's selection value.
    """

    def __init__(
        self,
        context: ElectionContext,
        guardian_records: Sequence[GuardianRecord],
        tally: CiphertextTally,
        spoiled_ballots: Sequence[SubmittedBallot] = (),
        ballot_policy: BallotFailurePolicy = BallotFailurePolicy.ABORT,
        max_workers: int = 1,
        ballot_max_count: int = 1,
    ):
        if len(guardian_records) != context.number_of_guardians:
            raise ValueError(
                f"expected {context.number_of_guardians} guardian records, got {len(guardian_records)}"
            )
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        ballot_ids = [b.object_id for b in spoiled_ballots]
        if len(set(ballot_ids)) != len(ballot_ids):
            raise ValueError("spoiled ballot ids must be unique")
        # shares and compensations are cached by object id
        if tally.object_id in ballot_ids:
            raise ValueError(f"spoiled ballot id {tally.object_id} is the tally id")

        self.context = context
        self.tally = tally
        self.spoiled_ballots = {b.object_id: b for b in spoiled_ballots}
        self.ballot_policy = ballot_policy
        self.max_workers = max_workers
        self.ballot_max_count = ballot_max_count
        self.error: Optional[str] = None

        self._records: Dict[str, GuardianRecord] = {r.guardian_id: r for r in guardian_records}
        self._phase = DecryptionPhase.COLLECTING
        self._available: Dict[str, DecryptingTrusteeIF] = {}
        self._tally_shares: Dict[str, DecryptionShare] = {}
        # ballot id -> guardian id -> share
        self._ballot_shares: Dict[str, Dict[str, DecryptionShare]] = {}
        # ballot id -> reason the ballot cannot be decrypted
        self._ballot_errors: Dict[str, str] = {}
        # object id -> missing guardian id -> available guardian id -> share
        self._compensated: Dict[str, Dict[str, Dict[str, CompensatedDecryptionShare]]] = {}
        self._plaintext_tally: Optional[PlaintextTally] = None
        # object id -> guardian id -> share, the full set each decryption used
        self._decryption_shares: Dict[str, Dict[str, DecryptionShare]] = {}

    @property
    def phase(self) -> DecryptionPhase:
        return self._phase

    ## --- collecting -------------------------------------------------------

    def announce(self, trustee: DecryptingTrusteeIF) -> bool:
        """Mark a guardian available and collect its direct shares.

        Returns False, changing nothing, when the guardian is unknown, already
        announced or its tally shares do not verify. A failure on a spoiled
        ballot is recorded against that ballot only.
        """
        gid = trustee.guardian_id
        if self._phase != DecryptionPhase.COLLECTING:
            logger.warning("announce of %s refused in phase %s", gid, self._phase.value)
            return False
        record = self._records.get(gid)
        if record is None:
            logger.warning("announce of unknown guardian %s", gid)
            return False
        if gid in self._available:
            logger.warning("guardian %s already announced", gid)
            return False
        if trustee.election_public_key != record.election_public_key or trustee.x_coordinate != record.x_coordinate:
            logger.warning("guardian %s does not match its published record", gid)
            return False

        try:
            tally_share = compute_decryption_share(
                trustee, self.tally.object_id, self.tally.contests, self.context
            )
        except ThresholdError as e:
            logger.error("guardian %s could not decrypt the tally: %s", gid, e)
            self.error = str(e)
            return False

        ballot_shares: Dict[str, DecryptionShare] = {}
        ballot_errors: Dict[str, str] = {}
        for ballot_id, ballot in self.spoiled_ballots.items():
            try:
                ballot_shares[ballot_id] = compute_decryption_share(
                    trustee, ballot_id, ballot.contests, self.context
                )
            except ThresholdError as e:
                # the ballot policy applies when ballots are decrypted
                logger.warning("guardian %s could not decrypt ballot %s: %s", gid, ballot_id, e)
                ballot_errors[ballot_id] = f"guardian {gid}: {e}"

        self._available[gid] = trustee
        self._tally_shares[gid] = tally_share
        for ballot_id, share in ballot_shares.items():
            self._ballot_shares.setdefault(ballot_id, {})[gid] = share
        for ballot_id, reason in ballot_errors.items():
            self._ballot_errors.setdefault(ballot_id, reason)
        logger.info("guardian %s announced (%d available, quorum %d)",
                    gid, len(self._available), self.context.quorum)
        return True

    def available_guardian_ids(self) -> List[str]:
        return sorted(self._available)

    def missing_guardian_ids(self) -> List[str]:
        return sorted(gid for gid in self._records if gid not in self._available)

    def available_guardians(self) -> List[AvailableGuardian]:
        """Published records of the available guardians and their Lagrange coefficients."""
        coefficients = self._lagrange_coefficients()
        return [
            AvailableGuardian(gid, self._records[gid].x_coordinate, coefficients[gid])
            for gid in sorted(coefficients, key=lambda g: self._records[g].x_coordinate)
        ]

    def tally_shares(self) -> Dict[str, DecryptionShare]:
        return dict(self._tally_shares)

    def decryption_shares(self, object_id: str) -> Dict[str, DecryptionShare]:
        """All n shares, direct and reconstructed, behind a finished decryption of object_id."""
        return dict(self._decryption_shares.get(object_id, {}))

    def compensated_shares(self, object_id: str) -> Dict[str, Dict[str, CompensatedDecryptionShare]]:
        return {m: dict(shares) for m, shares in self._compensated.get(object_id, {}).items()}

    ## --- decrypting -------------------------------------------------------

    def get_plaintext_tally(self) -> Optional[PlaintextTally]:
        """The decrypted tally, or None with `error` set."""
        if self._phase == DecryptionPhase.DECRYPTED:
            return self._plaintext_tally
        if self._phase == DecryptionPhase.FAILED:
            return None
        try:
            self._check_quorum()
            shares = self._all_shares(self.tally.object_id, self.tally.contests, self._tally_shares)
            plaintext = decrypt_with_shares(
                self.tally.object_id,
                self.tally.contests,
                shares,
                self.context,
                list(self._records.values()),
                max(self.tally.cast_ballot_count, 1),
            )
        except QuorumNotMetError as e:
            # more guardians may still announce
            logger.warning("tally decryption refused: %s", e)
            self.error = str(e)
            return None
        except ThresholdError as e:
            logger.error("tally decryption failed: %s", e)
            self.error = str(e)
            self._phase = DecryptionPhase.FAILED
            return None

        self._decryption_shares[self.tally.object_id] = shares
        self._plaintext_tally = plaintext
        self._phase = DecryptionPhase.DECRYPTED
        self.error = None
        return plaintext

    def decrypt_spoiled_ballots(self) -> Optional[BallotDecryptionResult]:
        """Decrypt each spoiled ballot; None with `error` set if the session cannot proceed."""
        try:
            self._check_quorum()
        except QuorumNotMetError as e:
            logger.warning("ballot decryption refused: %s", e)
            self.error = str(e)
            return None

        decrypted: Dict[str, PlaintextTally] = {}
        skipped: List[SkippedBallot] = []
        for ballot_id, ballot in self.spoiled_ballots.items():
            try:
                reason = self._ballot_errors.get(ballot_id)
                if reason is not None:
                    raise ThresholdError(reason)
                shares = self._all_shares(ballot_id, ballot.contests, self._ballot_shares.get(ballot_id, {}))
                decrypted[ballot_id] = decrypt_with_shares(
                    ballot_id,
                    ballot.contests,
                    shares,
                    self.context,
                    list(self._records.values()),
                    self.ballot_max_count,
                )
                self._decryption_shares[ballot_id] = shares
            except ThresholdError as e:
                if self.ballot_policy == BallotFailurePolicy.ABORT:
                    logger.error("ballot %s failed, aborting ballot decryption: %s", ballot_id, e)
                    self.error = f"ballot {ballot_id}: {e}"
                    return None
                logger.warning("ballot %s skipped: %s", ballot_id, e)
                skipped.append(SkippedBallot(ballot_id, str(e)))

        return BallotDecryptionResult(decrypted, skipped)

    ## --- internals --------------------------------------------------------

    def _check_quorum(self) -> None:
        if len(self._available) < self.context.quorum:
            raise QuorumNotMetError(
                f"{len(self._available)} guardians available, quorum is {self.context.quorum}"
            )

    def _lagrange_coefficients(self) -> Dict[str, int]:
        return compute_lagrange_coefficients(
            {gid: self._records[gid].x_coordinate for gid in self._available}
        )

    def _all_shares(
        self,
        object_id: str,
        contests: Dict[str, CiphertextContest],
        direct_shares: Dict[str, DecryptionShare],
    ) -> Dict[str, DecryptionShare]:
        """Direct shares of the available guardians plus rebuilt shares of the missing ones."""
        self._check_quorum()
        if set(direct_shares) != set(self._available):
            raise ShareCountMismatchError(
                f"{object_id}: {len(direct_shares)} direct shares for {len(self._available)} available guardians"
            )
        shares = dict(direct_shares)
        missing = self.missing_guardian_ids()
        if not missing:
            return shares

        coefficients = self._lagrange_coefficients()
        for missing_id in missing:
            compensated = self._compensate(object_id, contests, missing_id)
            if len(compensated) != len(self._available):
                raise ShareCountMismatchError(
                    f"{object_id}: {len(compensated)} compensated shares for {missing_id}, "
                    f"need {len(self._available)}"
                )
            shares[missing_id] = reconstruct_decryption_share(
                self._records[missing_id], object_id, contests, compensated, coefficients
            )
        return shares

    def _compensate(
        self, object_id: str, contests: Dict[str, CiphertextContest], missing_id: str
    ) -> Dict[str, CompensatedDecryptionShare]:
        cached = self._compensated.setdefault(object_id, {}).setdefault(missing_id, {})
        pending = [t for gid, t in self._available.items() if gid not in cached]
        missing_record = self._records[missing_id]

        def compensate(trustee: DecryptingTrusteeIF) -> CompensatedDecryptionShare:
            return compute_compensated_decryption_share(
                trustee, missing_record, object_id, contests, self.context
            )

        for share in self._map(compensate, pending):
            cached[share.guardian_id] = share
        return dict(cached)

    def _map(self, fn: Callable[[T], R], items: Sequence[T]) -> List[R]:
        if self.max_workers == 1 or len(items) < 2:
            return [fn(item) for item in items]
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(fn, items))
