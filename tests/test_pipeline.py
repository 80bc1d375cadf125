import pytest

from conftest import make_payload
from core.credentials import CredentialManager
from core.errors import AuthError, UpstreamUnavailable
from core.models import (
    AccessCredential,
    Displaying,
    NoActiveTrack,
    PlaybackError,
    TransitionPhase,
    Unauthenticated,
)
from playback.pipeline import PlaybackPipeline
from playback.poller import LIVE_POLL_INTERVAL_MS, REDUCED_POLL_INTERVAL_MS, PlaybackPoller

pytestmark = pytest.mark.usefixtures("qapp")


@pytest.fixture
def credentials(auth_client, valid_credential):
    return CredentialManager(auth_client, valid_credential)


@pytest.fixture
def pipeline(credentials, api, pool, clock):
    poller = PlaybackPoller(credentials, api, pool=pool, clock=clock)
    p = PlaybackPipeline(credentials, api, poller=poller, clock=clock)
    p.states = []
    p.viewStateChanged.connect(lambda s: p.states.append(s))
    yield p
    p.stop()
    p.deleteLater()


def test_nothing_playing(pipeline):
    pipeline.start()
    assert pipeline.view_state == NoActiveTrack()


def test_displaying_track_with_progress(pipeline, api, clock):
    api.fetch_current_playback.return_value = make_payload(name="A", progress_ms=50_000, duration_ms=100_000)
    pipeline.start()

    state = pipeline.view_state
    assert isinstance(state, Displaying)
    assert state.track.name == "A"
    assert state.phase is TransitionPhase.IDLE
    assert state.progress_percent == pytest.approx(50.0)


def test_track_change_crossfades_then_settles(pipeline, api):
    api.fetch_current_playback.return_value = make_payload(name="A")
    pipeline.start()

    api.fetch_current_playback.return_value = make_payload(name="B")
    pipeline.poller.poll()
    state = pipeline.view_state
    assert state.phase is TransitionPhase.TRANSITIONING
    assert state.track.name == "A"

    pipeline.transitions.complete()
    state = pipeline.view_state
    assert state.phase is TransitionPhase.IDLE
    assert state.track.name == "B"


def test_playing_then_nothing_ends_in_no_active_track(pipeline, api):
    api.fetch_current_playback.return_value = make_payload(name="A")
    pipeline.start()

    api.fetch_current_playback.return_value = None
    pipeline.poller.poll()
    pipeline.poller.poll()
    pipeline.transitions.complete()

    assert pipeline.view_state == NoActiveTrack()
    assert not pipeline.progress.is_ticking


def test_upstream_error_until_next_success(pipeline, api):
    api.fetch_current_playback.return_value = make_payload(name="A")
    pipeline.start()

    api.fetch_current_playback.side_effect = UpstreamUnavailable("Service down")
    pipeline.poller.poll()
    assert pipeline.view_state == PlaybackError("Service down")
    assert pipeline.transitions.displayed.name == "A"

    api.fetch_current_playback.side_effect = None
    pipeline.poller.poll()
    assert isinstance(pipeline.view_state, Displaying)


def test_dismiss_error_returns_to_track(pipeline, api):
    api.fetch_current_playback.return_value = make_payload(name="A")
    pipeline.start()
    api.fetch_current_playback.side_effect = UpstreamUnavailable("Service down")
    pipeline.poller.poll()

    pipeline.dismiss_error()
    assert isinstance(pipeline.view_state, Displaying)


def test_unauthenticated_without_credential(auth_client, api, pool, clock):
    credentials = CredentialManager(auth_client, None)
    poller = PlaybackPoller(credentials, api, pool=pool, clock=clock)
    pipeline = PlaybackPipeline(credentials, api, poller=poller, clock=clock)

    pipeline.start()

    assert pipeline.view_state == Unauthenticated()
    assert not poller.is_running
    api.fetch_current_playback.assert_not_called()
    pipeline.stop()


def test_failed_renewal_suspends_then_adopt_resumes(auth_client, api, pool, clock):
    expired = AccessCredential(access_token="old", refresh_token="r", expires_at=0.0)
    auth_client.renew_credential.side_effect = AuthError("revoked")
    credentials = CredentialManager(auth_client, expired)
    poller = PlaybackPoller(credentials, api, pool=pool, clock=clock)
    pipeline = PlaybackPipeline(credentials, api, poller=poller, clock=clock)

    pipeline.start()
    assert pipeline.view_state == Unauthenticated()
    assert not poller.is_running

    api.fetch_current_playback.return_value = make_payload(name="A")
    credentials.adopt(AccessCredential("fresh", "r2", 10_000_000_000.0))

    assert poller.is_running
    assert isinstance(pipeline.view_state, Displaying)
    pipeline.stop()


def test_stop_releases_every_timer(pipeline, api):
    api.fetch_current_playback.return_value = make_payload(name="A")
    pipeline.start()
    api.fetch_current_playback.return_value = make_payload(name="B")
    pipeline.poller.poll()

    pipeline.stop()

    assert not pipeline.poller.is_running
    assert not pipeline.transitions.deadline_pending
    assert not pipeline.progress.is_ticking


def test_set_reduced_changes_poll_interval(pipeline):
    pipeline.set_reduced(True)
    assert pipeline.poller.interval_ms == REDUCED_POLL_INTERVAL_MS
    pipeline.set_reduced(False)
    assert pipeline.poller.interval_ms == LIVE_POLL_INTERVAL_MS


def test_publishes_only_on_change(pipeline, api):
    pipeline.start()
    pipeline.poller.poll()
    pipeline.poller.poll()
    assert pipeline.states == [NoActiveTrack()]


def test_promoted_track_is_published_with_its_own_progress(pipeline, api):
    api.fetch_current_playback.return_value = make_payload(name="A", progress_ms=180_000, duration_ms=200_000)
    pipeline.start()
    api.fetch_current_playback.return_value = make_payload(name="B", progress_ms=0, duration_ms=200_000)
    pipeline.poller.poll()
    assert pipeline.view_state.progress_percent == pytest.approx(90.0)

    pipeline.states.clear()
    pipeline.transitions.complete()

    promoted = [(s.track.name, s.progress_percent) for s in pipeline.states if isinstance(s, Displaying)]
    assert promoted == [("B", pytest.approx(0.0))]


def test_expired_credential_is_renewed_before_fetch(auth_client, api, pool, clock):
    expired = AccessCredential(access_token="old", refresh_token="refresh", expires_at=0.0)
    credentials = CredentialManager(auth_client, expired)
    poller = PlaybackPoller(credentials, api, pool=pool, clock=clock)
    pipeline = PlaybackPipeline(credentials, api, poller=poller, clock=clock)
    states = []
    pipeline.viewStateChanged.connect(lambda s: states.append(s))
    api.fetch_current_playback.return_value = make_payload(name="A")

    pipeline.start()

    auth_client.renew_credential.assert_called_once_with("refresh")
    api.fetch_current_playback.assert_called_once_with("renewed")
    assert isinstance(pipeline.view_state, Displaying)
    assert Unauthenticated() not in states
    pipeline.stop()
