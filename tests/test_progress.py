import pytest

from conftest import make_snapshot
from playback.progress import SEEK_DRIFT_MS, ProgressInterpolator

pytestmark = pytest.mark.usefixtures("qapp")


@pytest.fixture
def progress(clock):
    p = ProgressInterpolator(clock=clock)
    yield p
    p.clear()
    p.deleteLater()


def test_estimate_advances_with_time_while_playing(progress, clock):
    progress.anchor(make_snapshot(progress_ms=10_000, duration_ms=100_000, observed_at=clock.now))
    clock.advance(5.0)
    assert progress.position_ms() == pytest.approx(15_000)
    assert progress.percentage() == pytest.approx(15.0)
    assert progress.is_ticking


def test_estimate_frozen_while_paused(progress, clock):
    progress.anchor(make_snapshot(progress_ms=10_000, duration_ms=100_000, playing=False, observed_at=clock.now))
    clock.advance(30.0)
    assert progress.position_ms() == 10_000
    assert not progress.is_ticking


def test_percentage_clamped_to_100(progress, clock):
    progress.anchor(make_snapshot(progress_ms=99_000, duration_ms=100_000, observed_at=clock.now))
    clock.advance(60.0)
    assert progress.percentage() == 100.0


def test_no_track_is_zero(progress):
    assert progress.percentage() == 0.0


def test_same_track_poll_keeps_anchor(progress, clock):
    progress.anchor(make_snapshot(progress_ms=0, observed_at=clock.now))
    anchor = progress.anchor_point
    clock.advance(1.0)

    reanchored = progress.update(make_snapshot(progress_ms=1_100, observed_at=clock.now))

    assert not reanchored
    assert progress.anchor_point == anchor


def test_play_pause_flip_reanchors(progress, clock):
    progress.anchor(make_snapshot(progress_ms=0, observed_at=clock.now))
    clock.advance(2.0)

    assert progress.update(make_snapshot(progress_ms=2_000, playing=False, observed_at=clock.now))
    assert progress.anchor_point == (2_000, clock.now)
    assert not progress.is_ticking


def test_seek_beyond_drift_reanchors(progress, clock):
    progress.anchor(make_snapshot(progress_ms=0, observed_at=clock.now))
    clock.advance(1.0)
    seeked = 1_000 + SEEK_DRIFT_MS + 5_000

    assert progress.update(make_snapshot(progress_ms=seeked, observed_at=clock.now))
    assert progress.position_ms() == pytest.approx(seeked)


def test_progress_signal_reports_percentage(progress, clock):
    seen = []
    progress.progressChanged.connect(lambda pct: seen.append(pct))
    progress.anchor(make_snapshot(progress_ms=50_000, duration_ms=100_000, observed_at=clock.now))
    assert seen[-1] == pytest.approx(50.0)


def test_clear_stops_timer(progress, clock):
    progress.anchor(make_snapshot(observed_at=clock.now))
    progress.clear()
    assert not progress.is_ticking
    assert progress.percentage() == 0.0
