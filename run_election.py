"""Runner that demonstrates a threshold election end to end, in process.

Runs the key ceremony, encrypts a handful of ballots, accumulates them,
decrypts the tally with some guardians missing and verifies the result.

    python run_election.py --guardians 3 --quorum 2 --missing 1
"""

import argparse
import logging

from threshold_eg import (
    BallotFailurePolicy,
    DecryptionCoordinator,
    Guardian,
    accumulate_ballots,
    encrypt_ballot,
    make_election_context,
    run_key_ceremony,
)
from threshold_eg.group import hash_elems, to_hex
from threshold_eg.verifier import verify_decryption, verify_guardian_records, verify_joint_key


def _print_heading(msg: str):
    print()
    print(msg)


def _print_kv(key: str, value: str):
    print(f"  {key}: {value}")


# contest -> selection -> 0/1, one dict per voter
BALLOTS = [
    {"mayor": {"alice": 1, "bob": 0}, "measure-1": {"yes": 1, "no": 0}},
    {"mayor": {"alice": 0, "bob": 1}, "measure-1": {"yes": 1, "no": 0}},
    {"mayor": {"alice": 1, "bob": 0}, "measure-1": {"yes": 0, "no": 1}},
    {"mayor": {"alice": 1, "bob": 0}, "measure-1": {"yes": 1, "no": 0}},
]
SPOILED = {"mayor": {"alice": 0, "bob": 1}, "measure-1": {"yes": 0, "no": 1}}


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--guardians", type=int, default=3)
    p.add_argument("--quorum", type=int, default=2)
    p.add_argument("--missing", type=int, default=1, help="guardians absent at decryption")
    p.add_argument("--workers", type=int, default=1)
    p.add_argument("-v", "--verbose", action="store_true")
    args = p.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if args.guardians - args.missing < args.quorum:
        p.error("not enough guardians left to meet the quorum")

    # Step 1: key ceremony
    _print_heading("[Step 1] Key ceremony")
    guardians = [Guardian(f"guardian-{i}", i, args.quorum) for i in range(1, args.guardians + 1)]
    result = run_key_ceremony(guardians, args.quorum)
    if result is None:
        print("key ceremony failed")
        return 1
    _print_kv("joint_public_key", to_hex(result.joint_key.joint_public_key)[:16] + "..")
    _print_kv("commitment_hash", to_hex(result.joint_key.commitment_hash)[:16] + "..")
    ok, details = verify_guardian_records(result.guardian_records, args.quorum)
    _print_kv("guardian records", "OK" if ok else f"FAIL {details['errors']}")
    ok, details = verify_joint_key(result.guardian_records, result.joint_key)
    _print_kv("joint key", "OK" if ok else f"FAIL {details['errors']}")

    context = make_election_context(
        args.guardians, args.quorum, result.joint_key, hash_elems("demo-manifest")
    )

    # Step 2: ballots
    _print_heading("[Step 2] Encrypting ballots")
    key = context.joint_public_key
    ballots = [encrypt_ballot(f"ballot-{i}", b, key) for i, b in enumerate(BALLOTS)]
    spoiled = encrypt_ballot("ballot-spoiled", SPOILED, key, spoiled=True)
    tally = accumulate_ballots(ballots + [spoiled])
    _print_kv("cast", str(tally.cast_ballot_count))
    _print_kv("spoiled", spoiled.object_id)

    # Step 3: threshold decryption
    present = guardians[: args.guardians - args.missing]
    _print_heading(f"[Step 3] Decrypting with {len(present)} of {args.guardians} guardians")
    coordinator = DecryptionCoordinator(
        context,
        result.guardian_records,
        tally,
        [spoiled],
        ballot_policy=BallotFailurePolicy.SKIP,
        max_workers=args.workers,
    )
    for guardian in present:
        _print_kv(f"announce {guardian.guardian_id}", "OK" if coordinator.announce(guardian) else "REFUSED")
    plaintext = coordinator.get_plaintext_tally()
    if plaintext is None:
        print("decryption failed:", coordinator.error)
        return 1
    for cid, selections in sorted(plaintext.counts().items()):
        for sid, count in sorted(selections.items()):
            _print_kv(f"{cid}/{sid}", str(count))

    ballot_result = coordinator.decrypt_spoiled_ballots()
    if ballot_result is not None:
        for ballot_id, ballot in ballot_result.decrypted.items():
            _print_kv(ballot_id, str(ballot.counts()))
        for skipped in ballot_result.skipped:
            _print_kv(skipped.ballot_id, "SKIPPED " + skipped.reason)

    # Step 4: verification
    _print_heading("[Step 4] Verification")
    shares = coordinator.decryption_shares(tally.object_id)
    ok, details = verify_decryption(
        context,
        result.guardian_records,
        tally.contests,
        plaintext,
        shares,
        coordinator.available_guardians(),
    )
    _print_kv("selections checked", str(details.get("selections_checked", 0)))
    print("\nVerification result:", "OK" if ok else f"MISMATCH {details['errors']}")
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
