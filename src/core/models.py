# core/models.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


@dataclass(frozen=True)
class AccessCredential:
    access_token: str
    refresh_token: str
    expires_at: float  # epoch seconds

    def is_expired(self, now: float) -> bool:
        return not self.access_token or now >= self.expires_at


@dataclass(frozen=True)
class RenewedToken:
    access_token: str
    expires_in: int  # seconds
    refresh_token: str | None = None  # only when the server rotates it


@dataclass(frozen=True)
class AlbumArt:
    url: str
    width: int
    height: int


@dataclass(frozen=True)
class PlaybackPayload:
    """Raw currently-playing response, before we pick the album art."""
    name: str
    artists: tuple[str, ...]
    images: tuple[AlbumArt, ...]
    is_playing: bool
    progress_ms: int
    duration_ms: int


@dataclass(frozen=True)
class TrackIdentity:
    name: str
    album_art_url: str


@dataclass(frozen=True)
class PlaybackSnapshot:
    name: str
    artists: tuple[str, ...]
    album_art_url: str
    is_playing: bool
    progress_ms: int
    duration_ms: int
    observed_at: float  # monotonic seconds

    @property
    def identity(self) -> TrackIdentity:
        return TrackIdentity(self.name, self.album_art_url)

    def artists_text(self) -> str:
        return ", ".join(self.artists)


class TransitionPhase(Enum):
    IDLE = auto()
    TRANSITIONING = auto()


# --- track transition state (tagged union) ---

@dataclass(frozen=True)
class Idle:
    displayed: PlaybackSnapshot | None = None

    phase = TransitionPhase.IDLE


@dataclass(frozen=True)
class Transitioning:
    outgoing: PlaybackSnapshot | None
    incoming: PlaybackSnapshot | None
    deadline: float  # monotonic seconds

    phase = TransitionPhase.TRANSITIONING


# --- view states crossing the boundary to the widgets ---

@dataclass(frozen=True)
class Unauthenticated:
    pass


@dataclass(frozen=True)
class PlaybackError:
    message: str


@dataclass(frozen=True)
class NoActiveTrack:
    pass


@dataclass(frozen=True)
class Displaying:
    track: PlaybackSnapshot
    progress_percent: float
    phase: TransitionPhase = TransitionPhase.IDLE


@dataclass(frozen=True)
class NoSlides:
    pass


@dataclass(frozen=True)
class ShowingSlide:
    slide_id: str
    phase: TransitionPhase = TransitionPhase.IDLE
    incoming_id: str | None = None


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one poll, handed from the fetch worker to the poller."""
    snapshot: PlaybackSnapshot | None = None
    error: str | None = None
    unauthenticated: bool = False
