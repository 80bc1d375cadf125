# core/errors.py
from __future__ import annotations


class NowPlayingError(Exception):
    """Base class for every error raised by the now-playing engine."""


class AuthRequired(NowPlayingError):
    """No usable credential: the user has to connect the account again."""


class AuthError(NowPlayingError):
    """The credential exchange (or the config gate) rejected the request."""


class UpstreamUnavailable(NowPlayingError):
    """Transient failure talking to the playback API."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class Unauthorized(UpstreamUnavailable):
    """Playback API answered 401 for the token we sent."""

    def __init__(self, message: str = "Access token rejected"):
        super().__init__(message, status_code=401)


class ConfigPersistError(NowPlayingError):
    """Saving the display configuration failed; local state is kept."""
