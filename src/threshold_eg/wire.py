"""JSON-ready dict conversion for records exchanged with a remote trustee.

Group elements travel as upper-case hex strings. Secret material has no
wire form.
"""

from typing import Any, Dict, List

from .decryption_share import DecryptionProofRecovery, DecryptionProofTuple
from .elgamal import ElGamalCiphertext
from .group import to_hex
from .key_ceremony import (
    PartialKeyBackup,
    PartialKeyChallengeResponse,
    PartialKeyVerification,
    PublicKeySet,
)
from .proofs import ChaumPedersenProof, SchnorrProof
from .transport import EncryptedCoordinate


def from_hex(value: str) -> int:
    if not isinstance(value, str):
        raise ValueError(f"expected a hex string, got {type(value).__name__}")
    return int(value, 16)


def from_hex_list(values: List[str]) -> tuple:
    return tuple(from_hex(v) for v in values)


## --- key ceremony --------------------------------------------------------


def schnorr_to_dict(proof: SchnorrProof) -> Dict[str, Any]:
    return {
        "public_key": to_hex(proof.public_key),
        "commitment": to_hex(proof.commitment),
        "challenge": to_hex(proof.challenge),
        "response": to_hex(proof.response),
    }


def schnorr_from_dict(d: Dict[str, Any]) -> SchnorrProof:
    return SchnorrProof(
        from_hex(d["public_key"]),
        from_hex(d["commitment"]),
        from_hex(d["challenge"]),
        from_hex(d["response"]),
    )


def public_keys_to_dict(keys: PublicKeySet) -> Dict[str, Any]:
    return {
        "owner_id": keys.owner_id,
        "x_coordinate": keys.x_coordinate,
        "coefficient_proofs": [schnorr_to_dict(p) for p in keys.coefficient_proofs],
    }


def public_keys_from_dict(d: Dict[str, Any]) -> PublicKeySet:
    return PublicKeySet(
        d["owner_id"],
        int(d["x_coordinate"]),
        tuple(schnorr_from_dict(p) for p in d["coefficient_proofs"]),
    )


def backup_to_dict(backup: PartialKeyBackup) -> Dict[str, Any]:
    encrypted = backup.encrypted_coordinate
    return {
        "owner_id": backup.owner_id,
        "designated_id": backup.designated_id,
        "designated_x_coordinate": backup.designated_x_coordinate,
        "encrypted_coordinate": {
            "pad": to_hex(encrypted.pad),
            "data": encrypted.data.hex(),
            "mac": encrypted.mac.hex(),
        },
        "coefficient_commitments": [to_hex(c) for c in backup.coefficient_commitments],
    }


def backup_from_dict(d: Dict[str, Any]) -> PartialKeyBackup:
    encrypted = d["encrypted_coordinate"]
    return PartialKeyBackup(
        d["owner_id"],
        d["designated_id"],
        int(d["designated_x_coordinate"]),
        EncryptedCoordinate(
            from_hex(encrypted["pad"]), bytes.fromhex(encrypted["data"]), bytes.fromhex(encrypted["mac"])
        ),
        from_hex_list(d["coefficient_commitments"]),
    )


def verification_to_dict(v: PartialKeyVerification) -> Dict[str, Any]:
    return {
        "owner_id": v.owner_id,
        "designated_id": v.designated_id,
        "verifier_id": v.verifier_id,
        "verified": v.verified,
        "error": v.error,
    }


def verification_from_dict(d: Dict[str, Any]) -> PartialKeyVerification:
    return PartialKeyVerification(
        d["owner_id"], d["designated_id"], d["verifier_id"], bool(d["verified"]), d.get("error", "")
    )


def challenge_response_to_dict(r: PartialKeyChallengeResponse) -> Dict[str, Any]:
    return {
        "owner_id": r.owner_id,
        "designated_id": r.designated_id,
        "designated_x_coordinate": r.designated_x_coordinate,
        "coordinate": to_hex(r.coordinate),
        "coefficient_commitments": [to_hex(c) for c in r.coefficient_commitments],
    }


def challenge_response_from_dict(d: Dict[str, Any]) -> PartialKeyChallengeResponse:
    return PartialKeyChallengeResponse(
        d["owner_id"],
        d["designated_id"],
        int(d["designated_x_coordinate"]),
        from_hex(d["coordinate"]),
        from_hex_list(d["coefficient_commitments"]),
    )


## --- decryption ----------------------------------------------------------


def ciphertext_to_dict(ct: ElGamalCiphertext) -> Dict[str, str]:
    return {"pad": to_hex(ct.pad), "data": to_hex(ct.data)}


def ciphertext_from_dict(d: Dict[str, Any]) -> ElGamalCiphertext:
    return ElGamalCiphertext(from_hex(d["pad"]), from_hex(d["data"]))


def chaum_pedersen_to_dict(proof: ChaumPedersenProof) -> Dict[str, str]:
    return {
        "pad": to_hex(proof.pad),
        "data": to_hex(proof.data),
        "challenge": to_hex(proof.challenge),
        "response": to_hex(proof.response),
    }


def chaum_pedersen_from_dict(d: Dict[str, Any]) -> ChaumPedersenProof:
    return ChaumPedersenProof(
        from_hex(d["pad"]), from_hex(d["data"]), from_hex(d["challenge"]), from_hex(d["response"])
    )


def decryption_to_dict(result: DecryptionProofTuple) -> Dict[str, Any]:
    return {"decryption": to_hex(result.decryption), "proof": chaum_pedersen_to_dict(result.proof)}


def decryption_from_dict(d: Dict[str, Any]) -> DecryptionProofTuple:
    return DecryptionProofTuple(from_hex(d["decryption"]), chaum_pedersen_from_dict(d["proof"]))


def recovery_to_dict(result: DecryptionProofRecovery) -> Dict[str, Any]:
    return {
        "decryption": to_hex(result.decryption),
        "proof": chaum_pedersen_to_dict(result.proof),
        "recovery_public_key": to_hex(result.recovery_public_key),
    }


def recovery_from_dict(d: Dict[str, Any]) -> DecryptionProofRecovery:
    return DecryptionProofRecovery(
        from_hex(d["decryption"]), chaum_pedersen_from_dict(d["proof"]), from_hex(d["recovery_public_key"])
    )
