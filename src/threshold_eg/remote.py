"""A trustee reached over HTTP, served by `threshold_eg.server`."""

from typing import Any, Dict, List, Optional, Sequence
import logging

import requests

from . import wire
from .decryption_share import DecryptionProofRecovery, DecryptionProofTuple
from .elgamal import ElGamalCiphertext
from .errors import ThresholdError, error_from_kind
from .group import to_hex
from .key_ceremony import (
    PartialKeyBackup,
    PartialKeyChallengeResponse,
    PartialKeyVerification,
    PublicKeySet,
)
from .trustee import DecryptingTrusteeIF, KeyCeremonyTrusteeIF

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class RemoteTrusteeProxy(KeyCeremonyTrusteeIF, DecryptingTrusteeIF):
    """Forwards every trustee operation to a remote guardian.

    Protocol errors reported by the server are raised again as the matching
    `ThresholdError` subclass, so callers cannot tell this proxy from an
    in-process `Guardian`.
    """

    def __init__(self, base_url: str, session: Optional[Any] = None, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self._identity: Optional[Dict[str, Any]] = None

    def __repr__(self) -> str:
        return f"RemoteTrusteeProxy({self.base_url!r})"

    def _handle(self, path: str, response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            raise ThresholdError(f"{path}: HTTP {response.status_code} without a JSON body") from None
        if response.status_code >= 400:
            kind = body.get("kind", "")
            message = body.get("error", f"HTTP {response.status_code}")
            if kind == "ValueError":
                raise ValueError(message)
            raise error_from_kind(kind, message)
        return body

    def _get(self, path: str) -> Dict[str, Any]:
        r = self.session.get(f"{self.base_url}{path}", timeout=self.timeout)
        return self._handle(path, r)

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        r = self.session.post(f"{self.base_url}{path}", json=payload, timeout=self.timeout)
        return self._handle(path, r)

    def _identity_field(self, name: str):
        if self._identity is None:
            self._identity = self._get("/identity")
        return self._identity[name]

    @property
    def guardian_id(self) -> str:
        return self._identity_field("guardian_id")

    @property
    def x_coordinate(self) -> int:
        return int(self._identity_field("x_coordinate"))

    @property
    def election_public_key(self) -> int:
        return wire.from_hex(self._identity_field("election_public_key"))

    ## --- key ceremony -----------------------------------------------------

    def share_public_keys(self) -> PublicKeySet:
        return wire.public_keys_from_dict(self._get("/public-keys"))

    def receive_public_keys(self, public_keys: PublicKeySet) -> bool:
        return bool(self._post("/public-keys", wire.public_keys_to_dict(public_keys))["ok"])

    def send_partial_key_backup(self, designated_id: str) -> PartialKeyBackup:
        return wire.backup_from_dict(self._post("/backups", {"designated_id": designated_id}))

    def verify_partial_key_backup(self, backup: PartialKeyBackup) -> PartialKeyVerification:
        return wire.verification_from_dict(self._post("/backups/verify", wire.backup_to_dict(backup)))

    def send_backup_challenge(self, designated_id: str) -> PartialKeyChallengeResponse:
        return wire.challenge_response_from_dict(
            self._post("/challenges", {"designated_id": designated_id})
        )

    def accept_challenge_response(self, response: PartialKeyChallengeResponse) -> bool:
        body = self._post("/challenges/accept", wire.challenge_response_to_dict(response))
        return bool(body["ok"])

    def publish_joint_key(self) -> int:
        return wire.from_hex(self._get("/joint-key")["joint_public_key"])

    ## --- decryption -------------------------------------------------------

    @staticmethod
    def _decrypt_payload(
        ciphertexts: Sequence[ElGamalCiphertext], extended_base_hash: int, nonce_seed: Optional[int]
    ) -> Dict[str, Any]:
        return {
            "ciphertexts": [wire.ciphertext_to_dict(c) for c in ciphertexts],
            "extended_base_hash": to_hex(extended_base_hash),
            "nonce_seed": None if nonce_seed is None else to_hex(nonce_seed),
        }

    def partial_decrypt(
        self,
        ciphertexts: Sequence[ElGamalCiphertext],
        extended_base_hash: int,
        nonce_seed: Optional[int] = None,
    ) -> List[DecryptionProofTuple]:
        body = self._post("/decrypt", self._decrypt_payload(ciphertexts, extended_base_hash, nonce_seed))
        return [wire.decryption_from_dict(r) for r in body["results"]]

    def compensated_decrypt(
        self,
        missing_guardian_id: str,
        ciphertexts: Sequence[ElGamalCiphertext],
        extended_base_hash: int,
        nonce_seed: Optional[int] = None,
    ) -> List[DecryptionProofRecovery]:
        payload = self._decrypt_payload(ciphertexts, extended_base_hash, nonce_seed)
        payload["missing_guardian_id"] = missing_guardian_id
        body = self._post("/compensate", payload)
        logger.debug("%s compensated for %s on %d ciphertexts",
                     self.base_url, missing_guardian_id, len(body["results"]))
        return [wire.recovery_from_dict(r) for r in body["results"]]
