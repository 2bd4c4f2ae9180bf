from unittest.mock import MagicMock

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from conftest import b64, raw_public_key
from kuurier.clients.anonymous_client import TOR_PROXY, AnonymousClient, ClientError, create_tor_session
from kuurier.core.security import decode_signature, verify_signature


def _response(status_code, body):
    resp = MagicMock()
    resp.status_code = status_code
    resp.content = b"{}"
    resp.json.return_value = body
    return resp


@pytest.fixture
def session():
    return MagicMock()


def test_public_key_is_raw_base64():
    key = Ed25519PrivateKey.generate()
    client = AnonymousClient(private_key=key, session=MagicMock())
    assert client.public_key_b64 == b64(raw_public_key(key))


def test_sign_verifies():
    key = Ed25519PrivateKey.generate()
    client = AnonymousClient(private_key=key, session=MagicMock())
    signature = decode_signature(client.sign("abc123"))
    assert verify_signature(raw_public_key(key), signature, "abc123")


def test_login_round_trip(session):
    session.request.side_effect = [
        _response(201, {"user_id": "u1", "challenge": "c" * 64, "trust_score": 15}),
        _response(200, {"token": "tok", "expires_at": 1}),
        _response(200, {"id": "u1", "trust_score": 15}),
    ]
    client = AnonymousClient(server_url="http://server/", session=session)

    assert client.login("KUU-ABC123") == "tok"
    assert client.user_id == "u1"
    assert client.trust_score == 15

    register_call, verify_call = session.request.call_args_list
    assert register_call.args == ("POST", "http://server/api/v1/auth/register")
    assert register_call.kwargs["json"] == {"public_key": client.public_key_b64, "invite_code": "KUU-ABC123"}
    assert "Authorization" not in register_call.kwargs["headers"]
    assert verify_call.kwargs["json"]["user_id"] == "u1"
    assert verify_call.kwargs["json"]["signature"] == client.sign("c" * 64)

    client.me()
    me_call = session.request.call_args_list[-1]
    assert me_call.args == ("GET", "http://server/api/v1/me")
    assert me_call.kwargs["headers"]["Authorization"] == "Bearer tok"


def test_error_response_raises(session):
    session.request.return_value = _response(
        403, {"error": "insufficient trust to vouch for others", "required": 30, "current": 15}
    )
    client = AnonymousClient(session=session)
    client.token = "tok"

    with pytest.raises(ClientError) as exc:
        client.vouch("someone")
    assert exc.value.status_code == 403
    assert exc.value.body["required"] == 30


def test_tor_session_uses_socks_proxy():
    assert create_tor_session().proxies == TOR_PROXY
