import pytest

# If Flask isn't installed in the environment, skip these integration tests.
pytest.importorskip("flask")

from threshold_eg.coordinator import DecryptionCoordinator
from threshold_eg.context import make_election_context
from threshold_eg.errors import MissingBackupError, SelfReferenceError
from threshold_eg.group import hash_elems
from threshold_eg.guardian import Guardian
from threshold_eg.mediator import run_key_ceremony
from threshold_eg.remote import RemoteTrusteeProxy
from threshold_eg.server import create_app
from threshold_eg.tally import encrypt_tally
from threshold_eg.wire import public_keys_to_dict


class _Response:
    def __init__(self, rv):
        self.status_code = rv.status_code
        self._rv = rv

    def json(self):
        data = self._rv.get_json()
        if data is None:
            raise ValueError("not JSON")
        return data


class FlaskSession:
    """Adapts a Flask test client to the requests.Session calls the proxy makes."""

    def __init__(self, app, base_url):
        self.client = app.test_client()
        self.base_url = base_url

    def _path(self, url):
        return url[len(self.base_url):]

    def get(self, url, timeout=None):
        return _Response(self.client.get(self._path(url)))

    def post(self, url, json=None, timeout=None):
        return _Response(self.client.post(self._path(url), json=json))


def _proxy(guardian):
    base = f"http://{guardian.guardian_id}.test"
    return RemoteTrusteeProxy(base, session=FlaskSession(create_app(guardian), base))


def test_identity_and_public_keys_endpoints():
    guardian = Guardian("g1", 1, 2)
    client = create_app(guardian).test_client()

    rv = client.get("/identity")
    assert rv.status_code == 200
    data = rv.get_json()
    assert data["guardian_id"] == "g1"
    assert int(data["election_public_key"], 16) == guardian.election_public_key

    rv = client.get("/public-keys")
    assert rv.status_code == 200
    assert len(rv.get_json()["coefficient_proofs"]) == 2


def test_errors_come_back_as_json_with_kind():
    guardian = Guardian("g1", 1, 2)
    client = create_app(guardian).test_client()

    rv = client.post("/backups", json={"designated_id": "g1"})
    assert rv.status_code == 400
    assert rv.get_json()["kind"] == "SelfReferenceError"

    rv = client.post("/backups", json={})
    assert rv.status_code == 400
    assert rv.get_json()["kind"] == "ValueError"


def test_proxy_raises_matching_errors():
    proxy = _proxy(Guardian("g1", 1, 2))
    with pytest.raises(SelfReferenceError):
        proxy.send_partial_key_backup("g1")
    with pytest.raises(MissingBackupError):
        proxy.send_backup_challenge("g2")


def test_remote_ceremony_and_threshold_decryption():
    guardians = [Guardian(f"g{i}", i, 2) for i in (1, 2, 3)]
    proxies = [_proxy(g) for g in guardians]
    assert proxies[0].guardian_id == "g1"
    assert proxies[1].x_coordinate == 2

    result = run_key_ceremony(proxies, 2)
    assert result is not None
    assert result.joint_key.joint_public_key == guardians[0].publish_joint_key()

    context = make_election_context(3, 2, result.joint_key, hash_elems("remote-manifest"))
    tally = encrypt_tally({"c": {"yes": 3, "no": 1}}, context.joint_public_key)
    coordinator = DecryptionCoordinator(context, result.guardian_records, tally)
    # one remote and one in-process trustee; g3 is missing
    assert coordinator.announce(proxies[0])
    assert coordinator.announce(guardians[1])
    plaintext = coordinator.get_plaintext_tally()
    assert plaintext is not None
    assert plaintext.counts() == {"c": {"yes": 3, "no": 1}}


def test_public_keys_cannot_be_replaced_after_ceremony():
    guardians = [Guardian(f"g{i}", i, 2) for i in (1, 2, 3)]
    result = run_key_ceremony(guardians, 2)
    assert result is not None
    client = create_app(guardians[0]).test_client()

    impostor = Guardian("g2", 2, 2).share_public_keys()
    rv = client.post("/public-keys", json=public_keys_to_dict(impostor))
    assert rv.status_code == 200
    assert rv.get_json() == {"ok": False}
    assert guardians[0].publish_joint_key() == result.joint_key.joint_public_key
