from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from core.errors import AuthError, Unauthorized, UpstreamUnavailable
from core.models import AccessCredential, RenewedToken
from core.spotify_client import SCOPE, SpotifyAuthClient, SpotifyPlaybackClient, code_from_redirect


def response(status=200, body=None):
    r = MagicMock()
    r.status_code = status
    r.ok = 200 <= status < 400
    r.text = "" if body is None else str(body)
    if isinstance(body, Exception):
        r.json.side_effect = body
    else:
        r.json.return_value = body
    return r


@pytest.fixture
def auth():
    client = SpotifyAuthClient("id", "secret", "http://127.0.0.1:8888/callback", clock=lambda: 1000.0)
    client.session = MagicMock()
    return client


@pytest.fixture
def playback():
    client = SpotifyPlaybackClient()
    client.session = MagicMock()
    return client


CURRENTLY_PLAYING = {
    "is_playing": True,
    "progress_ms": 61000,
    "item": {
        "name": "Paranoid Android",
        "duration_ms": 387000,
        "artists": [{"name": "Radiohead"}],
        "album": {"images": [
            {"url": "https://i.scdn.co/image/300", "width": 300, "height": 300},
            {"url": "https://i.scdn.co/image/640", "width": 640, "height": 640},
        ]},
    },
}


def test_authorize_url_carries_scope_and_state(auth):
    url = auth.authorize_url("xyz")
    qs = parse_qs(urlparse(url).query)
    assert qs["client_id"] == ["id"]
    assert qs["scope"] == [SCOPE]
    assert qs["state"] == ["xyz"]
    assert qs["response_type"] == ["code"]


@pytest.mark.parametrize("text, code", [
    ("abc123", "abc123"),
    ("http://127.0.0.1:8888/callback?code=abc123&state=s", "abc123"),
    ("?code=abc123", "abc123"),
])
def test_code_from_redirect(text, code):
    assert code_from_redirect(text) == code


@pytest.mark.parametrize("text", [
    "http://127.0.0.1:8888/callback?error=access_denied",
    "http://127.0.0.1:8888/callback?state=s",
])
def test_code_from_redirect_rejects(text):
    with pytest.raises(AuthError):
        code_from_redirect(text)


def test_code_from_redirect_checks_state():
    url = "http://127.0.0.1:8888/callback?code=abc&state={}"

    assert code_from_redirect(url.format("mine"), expected_state="mine") == "abc"
    with pytest.raises(AuthError, match="State mismatch"):
        code_from_redirect(url.format("attacker"), expected_state="mine")
    # a bare code has no state to compare
    assert code_from_redirect("abc", expected_state="mine") == "abc"


def test_exchange_authorization_code(auth):
    auth.session.post.return_value = response(200, {
        "access_token": "at", "refresh_token": "rt", "expires_in": 3600,
    })

    cred = auth.exchange_authorization_code("abc")

    assert cred == AccessCredential("at", "rt", 4600.0)
    _, kwargs = auth.session.post.call_args
    assert kwargs["auth"] == ("id", "secret")
    assert kwargs["data"]["grant_type"] == "authorization_code"


def test_renew_credential(auth):
    auth.session.post.return_value = response(200, {"access_token": "new", "expires_in": 3600})
    assert auth.renew_credential("rt") == RenewedToken("new", 3600, None)


def test_token_error_raises_auth_error(auth):
    auth.session.post.return_value = response(400, {"error": "invalid_grant"})
    with pytest.raises(AuthError):
        auth.renew_credential("rt")


def test_token_network_failure_raises_auth_error(auth):
    auth.session.post.side_effect = requests.ConnectionError("offline")
    with pytest.raises(AuthError):
        auth.renew_credential("rt")


def test_malformed_token_response(auth):
    auth.session.post.return_value = response(200, {"token": "?"})
    with pytest.raises(AuthError):
        auth.exchange_authorization_code("abc")


def test_fetch_current_playback_parses_item(playback):
    playback.session.get.return_value = response(200, CURRENTLY_PLAYING)

    payload = playback.fetch_current_playback("at")

    assert payload.name == "Paranoid Android"
    assert payload.artists == ("Radiohead",)
    assert payload.duration_ms == 387000
    assert payload.progress_ms == 61000
    assert payload.is_playing
    assert len(payload.images) == 2
    _, kwargs = playback.session.get.call_args
    assert kwargs["headers"]["Authorization"] == "Bearer at"


@pytest.mark.parametrize("status", [202, 204])
def test_no_content(playback, status):
    playback.session.get.return_value = response(status)
    assert playback.fetch_current_playback("at") is None


def test_missing_item_is_no_content(playback):
    playback.session.get.return_value = response(200, {"is_playing": False, "item": None})
    assert playback.fetch_current_playback("at") is None


def test_401_raises_unauthorized(playback):
    playback.session.get.return_value = response(401)
    with pytest.raises(Unauthorized):
        playback.fetch_current_playback("at")


def test_server_error_raises_upstream_unavailable(playback):
    playback.session.get.return_value = response(503)
    with pytest.raises(UpstreamUnavailable) as exc:
        playback.fetch_current_playback("at")
    assert exc.value.status_code == 503


def test_network_error_raises_upstream_unavailable(playback):
    playback.session.get.side_effect = requests.Timeout("slow")
    with pytest.raises(UpstreamUnavailable):
        playback.fetch_current_playback("at")


def test_non_json_body_raises_upstream_unavailable(playback):
    playback.session.get.return_value = response(200, ValueError("not json"))
    with pytest.raises(UpstreamUnavailable):
        playback.fetch_current_playback("at")
