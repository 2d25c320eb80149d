"""Capabilities the mediators require from a guardian.

Both an in-process `Guardian` and a `RemoteTrusteeProxy` implement these;
mediators and coordinators only ever talk to the interface.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from .decryption_share import DecryptionProofRecovery, DecryptionProofTuple
from .elgamal import ElGamalCiphertext
from .key_ceremony import (
    PartialKeyBackup,
    PartialKeyChallengeResponse,
    PartialKeyVerification,
    PublicKeySet,
)


class TrusteeIdentity(ABC):
    @property
    @abstractmethod
    def guardian_id(self) -> str:
        ...

    @property
    @abstractmethod
    def x_coordinate(self) -> int:
        ...

    @property
    @abstractmethod
    def election_public_key(self) -> int:
        ...


class KeyCeremonyTrusteeIF(TrusteeIdentity):
    @abstractmethod
    def share_public_keys(self) -> PublicKeySet:
        ...

    @abstractmethod
    def receive_public_keys(self, public_keys: PublicKeySet) -> bool:
        ...

    @abstractmethod
    def send_partial_key_backup(self, designated_id: str) -> PartialKeyBackup:
        ...

    @abstractmethod
    def verify_partial_key_backup(self, backup: PartialKeyBackup) -> PartialKeyVerification:
        ...

    @abstractmethod
    def send_backup_challenge(self, designated_id: str) -> PartialKeyChallengeResponse:
        ...

    @abstractmethod
    def accept_challenge_response(self, response: PartialKeyChallengeResponse) -> bool:
        ...

    @abstractmethod
    def publish_joint_key(self) -> int:
        ...


class DecryptingTrusteeIF(TrusteeIdentity):
    @abstractmethod
    def partial_decrypt(
        self,
        ciphertexts: Sequence[ElGamalCiphertext],
        extended_base_hash: int,
        nonce_seed: Optional[int] = None,
    ) -> List[DecryptionProofTuple]:
        ...

    @abstractmethod
    def compensated_decrypt(
        self,
        missing_guardian_id: str,
        ciphertexts: Sequence[ElGamalCiphertext],
        extended_base_hash: int,
        nonce_seed: Optional[int] = None,
    ) -> List[DecryptionProofRecovery]:
        ...
