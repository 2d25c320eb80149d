"""The in-process guardian (trustee).

A Guardian generates its polynomial and election keypair at construction and
never lets the secret coefficients leave this object: other parties only see
commitments, encrypted backups and (partial) decryptions with proofs.
"""

from typing import Dict, List, Optional, Sequence
import logging

from .decryption_share import DecryptionProofRecovery, DecryptionProofTuple
from .elgamal import ElGamalCiphertext, ElGamalKeyPair, elgamal_combine_public_keys
from .errors import (
    MissingBackupError,
    ProofInvalidError,
    SelfReferenceError,
    UnknownGuardianError,
)
from .group import rand_q
from .key_ceremony import (
    MAX_X_COORDINATE,
    PartialKeyBackup,
    PartialKeyChallengeResponse,
    PartialKeyVerification,
    PublicKeySet,
    valid_x_coordinate,
    verify_partial_key_challenge,
)
from .polynomial import (
    calculate_g_exp_pi_at_l,
    generate_polynomial,
    verify_polynomial_coordinate,
)
from .proofs import make_chaum_pedersen
from .transport import BackupTransport, HashedElGamalTransport
from .trustee import DecryptingTrusteeIF, KeyCeremonyTrusteeIF

logger = logging.getLogger(__name__)


class Guardian(KeyCeremonyTrusteeIF, DecryptingTrusteeIF):
    """A threshold key-share holder for one election.

    Args:
        guardian_id: unique, non-empty guardian id.
        x_coordinate: unique polynomial evaluation point in [1, 256).
        quorum: number of polynomial coefficients.
        nonce_seed: makes the polynomial predictable; tests only.
        transport: how backups are encrypted for their recipient.
    """

    def __init__(
        self,
        guardian_id: str,
        x_coordinate: int,
        quorum: int,
        nonce_seed: Optional[int] = None,
        transport: Optional[BackupTransport] = None,
    ):
        if not guardian_id:
            raise ValueError("guardian_id must be non-empty")
        if not 0 < x_coordinate < MAX_X_COORDINATE:
            raise ValueError(f"x_coordinate must be in [1, {MAX_X_COORDINATE})")
        if quorum < 1:
            raise ValueError("quorum must be at least 1")

        self._id = guardian_id
        self._x_coordinate = x_coordinate
        self._polynomial = generate_polynomial(quorum, nonce_seed)
        # the 0th coefficient is the secret key, its commitment the public key
        self._election_keys = ElGamalKeyPair(
            self._polynomial.coefficients[0],
            self._polynomial.coefficient_commitments[0],
        )
        self._transport = transport or HashedElGamalTransport()

        # every guardian's public keys, this one included, keyed by guardian id
        self.guardian_public_keys: Dict[str, PublicKeySet] = {
            guardian_id: self.share_public_keys()
        }
        # backups this guardian made for others, keyed by designated guardian id
        self.my_backups: Dict[str, PartialKeyBackup] = {}
        # backups others made for this guardian, keyed by owner id
        self.received_backups: Dict[str, PartialKeyBackup] = {}
        # decrypted (or publicly revealed) coordinates, keyed by owner id
        self._coordinates: Dict[str, int] = {}
        self._recovery_keys: Dict[str, int] = {}
        self._joint_key: Optional[int] = None

    def __repr__(self) -> str:
        return f"Guardian(id={self._id!r}, x_coordinate={self._x_coordinate})"

    @property
    def guardian_id(self) -> str:
        return self._id

    @property
    def x_coordinate(self) -> int:
        return self._x_coordinate

    @property
    def election_public_key(self) -> int:
        return self._election_keys.public_key

    @property
    def quorum(self) -> int:
        return len(self._polynomial.coefficients)

    ## --- key ceremony -----------------------------------------------------

    def share_public_keys(self) -> PublicKeySet:
        return PublicKeySet(self._id, self._x_coordinate, self._polynomial.coefficient_proofs)

    def receive_public_keys(self, public_keys: PublicKeySet) -> bool:
        """Store another guardian's keys after checking its Schnorr proofs.

        Keys already held are never replaced, and no new keys are taken once
        backups have been exchanged or the joint key computed.
        """
        owner_id = public_keys.owner_id
        if owner_id == self._id:
            raise SelfReferenceError(f"guardian {self._id} received its own public keys")
        if owner_id in self.guardian_public_keys:
            if self.guardian_public_keys[owner_id] == public_keys:
                return True
            logger.warning("guardian %s refused to replace public keys of %s", self._id, owner_id)
            return False
        if self._keys_frozen():
            logger.warning("guardian %s refused public keys of %s: key set is frozen", self._id, owner_id)
            return False
        if not valid_x_coordinate(public_keys.x_coordinate):
            logger.warning("guardian %s rejected public keys of %s: x coordinate %r not in [1, %d)",
                           self._id, owner_id, public_keys.x_coordinate, MAX_X_COORDINATE)
            return False
        if any(k.x_coordinate == public_keys.x_coordinate for k in self.guardian_public_keys.values()):
            logger.warning("guardian %s rejected public keys of %s: x coordinate %d already taken",
                           self._id, owner_id, public_keys.x_coordinate)
            return False
        if not public_keys.is_valid():
            logger.warning("guardian %s rejected public keys of %s: invalid Schnorr proof",
                           self._id, owner_id)
            return False
        self.guardian_public_keys[owner_id] = public_keys
        return True

    def _keys_frozen(self) -> bool:
        return bool(self.my_backups or self.received_backups) or self._joint_key is not None

    def all_public_keys_received(self, number_of_guardians: int) -> bool:
        return len(self.guardian_public_keys) == number_of_guardians

    def send_partial_key_backup(self, designated_id: str) -> PartialKeyBackup:
        """Encrypt P(x_designated) for the designated guardian."""
        if designated_id == self._id:
            raise SelfReferenceError(f"guardian {self._id} cannot back itself up")
        if designated_id in self.my_backups:
            return self.my_backups[designated_id]
        other = self.guardian_public_keys.get(designated_id)
        if other is None:
            raise UnknownGuardianError(
                f"guardian {self._id} has no public key for {designated_id}"
            )

        value = self._polynomial.value_at(other.x_coordinate)
        backup = PartialKeyBackup(
            self._id,
            designated_id,
            other.x_coordinate,
            self._transport.encrypt(value, other.election_public_key),
            self._polynomial.coefficient_commitments,
        )
        self.my_backups[designated_id] = backup
        return backup

    def verify_partial_key_backup(self, backup: PartialKeyBackup) -> PartialKeyVerification:
        """Decrypt a backup addressed to this guardian and Feldman-check it."""

        def failed(error: str) -> PartialKeyVerification:
            logger.warning("guardian %s: backup from %s failed verification: %s",
                           self._id, backup.owner_id, error)
            return PartialKeyVerification(backup.owner_id, backup.designated_id, self._id, False, error)

        if backup.designated_id != self._id:
            return failed(f"backup designated for {backup.designated_id}, not {self._id}")
        self.received_backups[backup.owner_id] = backup

        owner_keys = self.guardian_public_keys.get(backup.owner_id)
        if owner_keys is None:
            return failed(f"no public keys for {backup.owner_id}")
        if tuple(backup.coefficient_commitments) != owner_keys.coefficient_commitments:
            return failed("backup commitments differ from announced commitments")
        if backup.designated_x_coordinate != self._x_coordinate:
            return failed("backup made for the wrong x coordinate")

        value = self._transport.decrypt(backup.encrypted_coordinate, self._election_keys.secret_key)
        if value is None:
            return failed("could not decrypt backup coordinate")
        if not verify_polynomial_coordinate(value, self._x_coordinate, owner_keys.coefficient_commitments):
            return failed("coordinate does not match commitments")

        self._coordinates[backup.owner_id] = value
        return PartialKeyVerification(backup.owner_id, backup.designated_id, self._id, True)

    def send_backup_challenge(self, designated_id: str) -> PartialKeyChallengeResponse:
        """Publish, in the clear, the coordinate this guardian backed up for designated_id."""
        backup = self.my_backups.get(designated_id)
        if backup is None:
            raise MissingBackupError(
                f"guardian {self._id} never made a backup for {designated_id}"
            )
        return PartialKeyChallengeResponse(
            self._id,
            designated_id,
            backup.designated_x_coordinate,
            self._polynomial.value_at(backup.designated_x_coordinate),
            self._polynomial.coefficient_commitments,
        )

    def accept_challenge_response(self, response: PartialKeyChallengeResponse) -> bool:
        """Adopt a publicly revealed coordinate once it checks out against the owner's commitments."""
        if response.designated_id != self._id:
            return False
        owner_keys = self.guardian_public_keys.get(response.owner_id)
        if owner_keys is None:
            raise UnknownGuardianError(f"guardian {self._id} has no public key for {response.owner_id}")
        if tuple(response.coefficient_commitments) != owner_keys.coefficient_commitments:
            return False
        if response.designated_x_coordinate != self._x_coordinate:
            return False
        if not verify_partial_key_challenge(response, self._id).verified:
            return False
        self._coordinates[response.owner_id] = response.coordinate
        return True

    def publish_joint_key(self) -> int:
        if self._joint_key is None:
            self._joint_key = elgamal_combine_public_keys(
                keys.election_public_key for keys in self.guardian_public_keys.values()
            )
        return self._joint_key

    ## --- decryption -------------------------------------------------------

    def recover_public_key(self, missing_guardian_id: str) -> int:
        """g^P_missing(x_self), computed from the missing guardian's commitments."""
        key = self._recovery_keys.get(missing_guardian_id)
        if key is None:
            keys = self.guardian_public_keys.get(missing_guardian_id)
            if keys is None:
                raise UnknownGuardianError(
                    f"guardian {self._id} has no commitments for {missing_guardian_id}"
                )
            key = calculate_g_exp_pi_at_l(self._x_coordinate, keys.coefficient_commitments)
            self._recovery_keys[missing_guardian_id] = key
        return key

    def partial_decrypt(
        self,
        ciphertexts: Sequence[ElGamalCiphertext],
        extended_base_hash: int,
        nonce_seed: Optional[int] = None,
    ) -> List[DecryptionProofTuple]:
        """M_i = A^s_i for each ciphertext, with a Chaum-Pedersen proof of each."""
        if nonce_seed is None:
            nonce_seed = rand_q()
        secret = self._election_keys.secret_key
        public_key = self._election_keys.public_key

        results = []
        for index, ciphertext in enumerate(ciphertexts):
            _check_ciphertext(ciphertext)
            m = ciphertext.partial_decrypt(secret)
            proof = make_chaum_pedersen(ciphertext, secret, m, nonce_seed, extended_base_hash, index)
            if not proof.is_valid(ciphertext, public_key, m, extended_base_hash):
                raise ProofInvalidError(f"partial_decrypt produced an invalid proof for {self._id}")
            results.append(DecryptionProofTuple(m, proof))
        return results

    def compensated_decrypt(
        self,
        missing_guardian_id: str,
        ciphertexts: Sequence[ElGamalCiphertext],
        extended_base_hash: int,
        nonce_seed: Optional[int] = None,
    ) -> List[DecryptionProofRecovery]:
        """M_{i,l} = A^P_i(l) on behalf of missing guardian i, using its backup."""
        if missing_guardian_id == self._id:
            raise SelfReferenceError(f"guardian {self._id} cannot compensate for itself")
        coordinate = self._coordinates.get(missing_guardian_id)
        if coordinate is None:
            raise MissingBackupError(
                f"guardian {self._id} has no verified backup from {missing_guardian_id}"
            )
        recovery_key = self.recover_public_key(missing_guardian_id)
        if nonce_seed is None:
            nonce_seed = rand_q()

        results = []
        for index, ciphertext in enumerate(ciphertexts):
            _check_ciphertext(ciphertext)
            m = ciphertext.partial_decrypt(coordinate)
            proof = make_chaum_pedersen(ciphertext, coordinate, m, nonce_seed, extended_base_hash, index)
            if not proof.is_valid(ciphertext, recovery_key, m, extended_base_hash):
                raise ProofInvalidError(
                    f"compensated_decrypt produced an invalid proof for {self._id}, missing {missing_guardian_id}"
                )
            results.append(DecryptionProofRecovery(m, proof, recovery_key))
        return results


def _check_ciphertext(ciphertext: ElGamalCiphertext) -> None:
    if not ciphertext.is_valid():
        raise ValueError("ciphertext components must be valid residues mod p")
