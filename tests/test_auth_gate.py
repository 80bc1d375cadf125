import pytest

from core.auth_gate import ConfigAuthGate, hash_secret, verify_secret
from core.errors import AuthError

pytestmark = pytest.mark.usefixtures("qapp")


@pytest.fixture
def gate():
    return ConfigAuthGate("admin", hash_secret("s3cret", iterations=1000))


def test_hash_and_verify():
    encoded = hash_secret("pw", iterations=1000)
    assert encoded.startswith("pbkdf2_sha256$1000$")
    assert verify_secret("pw", encoded)
    assert not verify_secret("nope", encoded)
    assert not verify_secret("pw", "garbage")


def test_gate_without_hash_is_open():
    gate = ConfigAuthGate("admin")
    assert not gate.requires_login
    assert gate.current_user == "admin"
    gate.logout()
    assert gate.current_user == "admin"


def test_login_and_logout(gate):
    seen = []
    unsubscribe = gate.subscribe(seen.append)
    assert seen == [None]

    assert gate.login("admin", "s3cret") == "admin"
    assert gate.current_user == "admin"

    gate.logout()
    assert gate.current_user is None
    assert seen == [None, "admin", None]

    unsubscribe()
    gate.login("admin", "s3cret")
    assert seen == [None, "admin", None]


@pytest.mark.parametrize("identity, secret", [("admin", "wrong"), ("root", "s3cret")])
def test_bad_login_is_rejected(gate, identity, secret):
    with pytest.raises(AuthError):
        gate.login(identity, secret)
    assert gate.current_user is None
