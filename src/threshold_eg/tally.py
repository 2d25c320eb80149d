"""Encrypted and decrypted tally/ballot data, and homomorphic accumulation.

This is the minimal collaborator model decryption needs: contests of
selections, each selection an exponential ElGamal ciphertext.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .elgamal import ElGamalCiphertext, elgamal_add, elgamal_encrypt
from .group import nonce_at, rand_q

# contest id -> selection id -> count
TallyCounts = Dict[str, Dict[str, int]]


@dataclass(frozen=True)
class CiphertextSelection:
    object_id: str
    ciphertext: ElGamalCiphertext


@dataclass(frozen=True)
class CiphertextContest:
    object_id: str
    selections: Dict[str, CiphertextSelection] = field(default_factory=dict)


@dataclass(frozen=True)
class CiphertextTally:
    """Homomorphic sum of the cast ballots.

    Attributes
    - object_id: tally id
    - contests: contest id -> contest
    - cast_ballot_count: number of ballots accumulated; bounds every count
    """

    object_id: str
    contests: Dict[str, CiphertextContest] = field(default_factory=dict)
    cast_ballot_count: int = 0


@dataclass(frozen=True)
class SubmittedBallot:
    """An encrypted ballot; spoiled ballots are decrypted individually, not tallied."""

    object_id: str
    contests: Dict[str, CiphertextContest] = field(default_factory=dict)
    spoiled: bool = False


@dataclass(frozen=True)
class PlaintextSelection:
    """A decrypted selection.

    Attributes
    - object_id: selection id
    - tally: the recovered count t
    - value: g^t
    - message: the ciphertext that was decrypted
    """

    object_id: str
    tally: int
    value: int
    message: ElGamalCiphertext


@dataclass(frozen=True)
class PlaintextContest:
    object_id: str
    selections: Dict[str, PlaintextSelection] = field(default_factory=dict)


@dataclass(frozen=True)
class PlaintextTally:
    object_id: str
    contests: Dict[str, PlaintextContest] = field(default_factory=dict)

    def counts(self) -> TallyCounts:
        return {
            cid: {sid: s.tally for sid, s in contest.selections.items()}
            for cid, contest in self.contests.items()
        }


def iter_selections(
    contests: Dict[str, CiphertextContest]
) -> List[Tuple[str, str, ElGamalCiphertext]]:
    """(contest id, selection id, ciphertext) for every selection, in a fixed order."""
    out = []
    for cid in sorted(contests):
        selections = contests[cid].selections
        for sid in sorted(selections):
            out.append((cid, sid, selections[sid].ciphertext))
    return out


def accumulate_ballots(
    ballots: Iterable[SubmittedBallot], tally_id: str = "tally"
) -> CiphertextTally:
    """Homomorphically add every cast (non-spoiled) ballot, per contest and selection.

    Selections missing from some ballots are summed over the ballots that carry them.
    """
    sums: Dict[str, Dict[str, ElGamalCiphertext]] = {}
    count = 0
    for ballot in ballots:
        if ballot.spoiled:
            continue
        count += 1
        for cid, contest in ballot.contests.items():
            out = sums.setdefault(cid, {})
            for sid, selection in contest.selections.items():
                if sid in out:
                    out[sid] = elgamal_add(out[sid], selection.ciphertext)
                else:
                    out[sid] = selection.ciphertext

    contests = {
        cid: CiphertextContest(
            cid, {sid: CiphertextSelection(sid, ct) for sid, ct in selections.items()}
        )
        for cid, selections in sums.items()
    }
    return CiphertextTally(tally_id, contests, count)


def _encrypt_contests(
    object_id: str, counts: TallyCounts, public_key: int, nonce_seed: Optional[int]
) -> Dict[str, CiphertextContest]:
    contests = {}
    for cid in sorted(counts):
        selections = {}
        for sid in sorted(counts[cid]):
            nonce = rand_q() if nonce_seed is None else nonce_at(nonce_seed, 0, object_id, cid, sid)
            ciphertext = elgamal_encrypt(counts[cid][sid], nonce, public_key)
            if ciphertext is None:
                raise ValueError(f"could not encrypt {object_id}/{cid}/{sid}")
            selections[sid] = CiphertextSelection(sid, ciphertext)
        contests[cid] = CiphertextContest(cid, selections)
    return contests


def encrypt_ballot(
    ballot_id: str,
    counts: TallyCounts,
    public_key: int,
    spoiled: bool = False,
    nonce_seed: Optional[int] = None,
) -> SubmittedBallot:
    """Encrypt plaintext selections (normally 0 or 1) as a submitted ballot."""
    return SubmittedBallot(ballot_id, _encrypt_contests(ballot_id, counts, public_key, nonce_seed), spoiled)


def encrypt_tally(
    counts: TallyCounts,
    public_key: int,
    tally_id: str = "tally",
    cast_ballot_count: Optional[int] = None,
    nonce_seed: Optional[int] = None,
) -> CiphertextTally:
    """Encrypt known counts directly as a tally, for demos and tests."""
    if cast_ballot_count is None:
        cast_ballot_count = max(
            (n for selections in counts.values() for n in selections.values()), default=0
        )
    return CiphertextTally(
        tally_id, _encrypt_contests(tally_id, counts, public_key, nonce_seed), cast_ballot_count
    )
