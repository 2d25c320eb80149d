"""Flask API exposing one guardian's trustee operations.

Endpoints:
- GET  /identity            -> {"guardian_id", "x_coordinate", "election_public_key"}
- GET  /public-keys         -> this guardian's public key set
- POST /public-keys         -> receive another guardian's key set, {"ok": bool}
- POST /backups             -> {"designated_id"} -> partial key backup
- POST /backups/verify      -> backup -> verification
- POST /challenges          -> {"designated_id"} -> challenge response
- POST /challenges/accept   -> challenge response -> {"ok": bool}
- GET  /joint-key           -> {"joint_public_key"}
- POST /decrypt             -> {"ciphertexts", "extended_base_hash", "nonce_seed"?} -> {"results"}
- POST /compensate          -> same plus "missing_guardian_id" -> {"results"}

Protocol failures come back as HTTP 400 with {"error": message, "kind": error class}.
"""

from typing import Any, Dict
import logging

from flask import Flask, jsonify, request

from . import wire
from .errors import ThresholdError
from .group import to_hex
from .guardian import Guardian

logger = logging.getLogger(__name__)


def _body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("request body must be a JSON object")
    return data


def _decrypt_args(data: Dict[str, Any]):
    ciphertexts = [wire.ciphertext_from_dict(c) for c in data["ciphertexts"]]
    extended_base_hash = wire.from_hex(data["extended_base_hash"])
    seed = data.get("nonce_seed")
    return ciphertexts, extended_base_hash, None if seed is None else wire.from_hex(seed)


def create_app(guardian: Guardian) -> Flask:
    app = Flask(__name__)

    @app.errorhandler(ThresholdError)
    def threshold_error(e: ThresholdError):
        logger.warning("guardian %s: %s: %s", guardian.guardian_id, type(e).__name__, e)
        return jsonify({"error": str(e), "kind": type(e).__name__}), 400

    @app.errorhandler(ValueError)
    def value_error(e: ValueError):
        return jsonify({"error": str(e), "kind": "ValueError"}), 400

    @app.errorhandler(KeyError)
    def key_error(e: KeyError):
        return jsonify({"error": f"missing field {e}", "kind": "ValueError"}), 400

    @app.route("/identity", methods=["GET"])
    def identity():
        return jsonify(
            {
                "guardian_id": guardian.guardian_id,
                "x_coordinate": guardian.x_coordinate,
                "election_public_key": to_hex(guardian.election_public_key),
            }
        )

    @app.route("/public-keys", methods=["GET"])
    def share_public_keys():
        return jsonify(wire.public_keys_to_dict(guardian.share_public_keys()))

    @app.route("/public-keys", methods=["POST"])
    def receive_public_keys():
        ok = guardian.receive_public_keys(wire.public_keys_from_dict(_body()))
        return jsonify({"ok": ok})

    @app.route("/backups", methods=["POST"])
    def send_partial_key_backup():
        backup = guardian.send_partial_key_backup(_body()["designated_id"])
        return jsonify(wire.backup_to_dict(backup))

    @app.route("/backups/verify", methods=["POST"])
    def verify_partial_key_backup():
        verification = guardian.verify_partial_key_backup(wire.backup_from_dict(_body()))
        return jsonify(wire.verification_to_dict(verification))

    @app.route("/challenges", methods=["POST"])
    def send_backup_challenge():
        response = guardian.send_backup_challenge(_body()["designated_id"])
        return jsonify(wire.challenge_response_to_dict(response))

    @app.route("/challenges/accept", methods=["POST"])
    def accept_challenge_response():
        ok = guardian.accept_challenge_response(wire.challenge_response_from_dict(_body()))
        return jsonify({"ok": ok})

    @app.route("/joint-key", methods=["GET"])
    def publish_joint_key():
        return jsonify({"joint_public_key": to_hex(guardian.publish_joint_key())})

    @app.route("/decrypt", methods=["POST"])
    def partial_decrypt():
        ciphertexts, extended_base_hash, seed = _decrypt_args(_body())
        results = guardian.partial_decrypt(ciphertexts, extended_base_hash, seed)
        return jsonify({"results": [wire.decryption_to_dict(r) for r in results]})

    @app.route("/compensate", methods=["POST"])
    def compensated_decrypt():
        data = _body()
        ciphertexts, extended_base_hash, seed = _decrypt_args(data)
        results = guardian.compensated_decrypt(
            data["missing_guardian_id"], ciphertexts, extended_base_hash, seed
        )
        return jsonify({"results": [wire.recovery_to_dict(r) for r in results]})

    return app
