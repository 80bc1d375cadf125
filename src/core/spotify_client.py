from __future__ import annotations

import logging
import time
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse

import requests

from core.errors import AuthError, Unauthorized, UpstreamUnavailable
from core.models import AccessCredential, AlbumArt, PlaybackPayload, RenewedToken

logger = logging.getLogger(__name__)

ACCOUNTS_URL = "https://accounts.spotify.com"
API_URL = "https://api.spotify.com/v1"
SCOPE = "user-read-currently-playing user-read-playback-state"
USER_AGENT = "nowplaying-pyside6/0.1"


def _session() -> requests.Session:
    s = requests.Session()
    s.headers.update({"User-Agent": USER_AGENT})
    return s


def code_from_redirect(text: str, expected_state: Optional[str] = None) -> str:
    """
    Accepts either the bare authorization code or the full redirect URL
    the browser landed on (…/callback?code=XYZ&state=…).

    When expected_state is given, a redirect carrying a different state is
    rejected with AuthError.
    """
    text = (text or "").strip()
    if "://" not in text and "code=" not in text:
        return text
    query = urlparse(text).query if "://" in text else text.lstrip("?")
    qs = parse_qs(query)
    if "error" in qs:
        raise AuthError(f"Auth error: {qs['error'][0]}")
    states = qs.get("state")
    if expected_state is not None and states and states[0] != expected_state:
        raise AuthError("State mismatch: the redirect does not belong to this login")
    codes = qs.get("code")
    if not codes or not codes[0]:
        raise AuthError("No code provided")
    return codes[0]


class SpotifyAuthClient:
    """Authorization-code and refresh-token exchange against the accounts service."""

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str,
                 base_url: str = ACCOUNTS_URL, timeout: float = 10.0,
                 clock=time.time):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.clock = clock
        self.session = _session()

    def authorize_url(self, state: str | None = None) -> str:
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "scope": SCOPE,
            "redirect_uri": self.redirect_uri,
            "show_dialog": "false",
        }
        if state:
            params["state"] = state
        return f"{self.base_url}/authorize?{urlencode(params)}"

    def _token_request(self, data: dict) -> dict:
        try:
            r = self.session.post(
                f"{self.base_url}/api/token",
                data=data,
                auth=(self.client_id, self.client_secret),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AuthError(f"Token request failed: {e}") from e

        if not r.ok:
            raise AuthError(f"Token error ({r.status_code}): {r.text[:200]}")
        try:
            return r.json()
        except ValueError as e:
            raise AuthError("Token response is not JSON") from e

    def exchange_authorization_code(self, code: str) -> AccessCredential:
        body = self._token_request({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        })
        try:
            expires_in = int(body["expires_in"])
            return AccessCredential(
                access_token=body["access_token"],
                refresh_token=body.get("refresh_token") or "",
                expires_at=self.clock() + expires_in,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise AuthError(f"Malformed token response: {e}") from e

    def renew_credential(self, refresh_token: str) -> RenewedToken:
        body = self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })
        try:
            return RenewedToken(
                access_token=body["access_token"],
                expires_in=int(body["expires_in"]),
                refresh_token=body.get("refresh_token") or None,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise AuthError(f"Malformed refresh response: {e}") from e


def _parse_payload(data: dict) -> Optional[PlaybackPayload]:
    item = data.get("item")
    if not item:
        return None

    images = []
    for img in (item.get("album") or {}).get("images") or []:
        url = img.get("url")
        if not url:
            continue
        images.append(AlbumArt(url=url, width=int(img.get("width") or 0), height=int(img.get("height") or 0)))

    return PlaybackPayload(
        name=item.get("name") or "",
        artists=tuple(a.get("name") or "" for a in item.get("artists") or []),
        images=tuple(images),
        is_playing=bool(data.get("is_playing", False)),
        progress_ms=max(0, int(data.get("progress_ms") or 0)),
        duration_ms=int(item.get("duration_ms") or 0),
    )


class SpotifyPlaybackClient:
    def __init__(self, base_url: str = API_URL, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = _session()

    def fetch_current_playback(self, access_token: str) -> Optional[PlaybackPayload]:
        """
        None means nothing is playing (204/202 or no item).
        Raises Unauthorized on 401 and UpstreamUnavailable on anything else.
        """
        try:
            r = self.session.get(
                f"{self.base_url}/me/player/currently-playing",
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"Failed to fetch currently playing: {e}") from e

        if r.status_code in (202, 204):
            return None
        if r.status_code == 401:
            raise Unauthorized()
        if not r.ok:
            raise UpstreamUnavailable("Failed to fetch currently playing", status_code=r.status_code)

        try:
            return _parse_payload(r.json())
        except (ValueError, TypeError, AttributeError) as e:
            raise UpstreamUnavailable(f"Malformed playback response: {e}") from e
