import pytest

from core.display_config import (
    EMBEDDED_PLAYER_SLIDE,
    DisplayConfig,
    derive_slide_list,
    normalize_scale,
    shows_live_player,
)


def test_defaults_for_empty_store():
    assert DisplayConfig.from_mapping(None) == DisplayConfig()
    assert DisplayConfig.from_mapping({}) == DisplayConfig()


def test_partial_mapping_merges_with_defaults():
    config = DisplayConfig.from_mapping({"display_mode": "images"})
    assert config.display_mode == "images"
    assert config.scale == DisplayConfig().scale
    assert config.slide_interval_sec == 10


def test_round_trip_through_mapping():
    config = DisplayConfig(
        scale=0.6,
        background_mode="black",
        show_progress_bar=False,
        display_mode="images",
        slides=("a.jpg", EMBEDDED_PLAYER_SLIDE),
        enabled_slides=(EMBEDDED_PLAYER_SLIDE,),
        frozen_slide=None,
        slide_interval_sec=15,
    )
    assert DisplayConfig.from_mapping(config.to_mapping()) == config


def test_legacy_keys_are_read():
    config = DisplayConfig.from_mapping({
        "displayMode": "images",
        "availableImages": ["a.jpg", "b.jpg"],
        "enabledImages": ["b.jpg"],
        "frozenImage": "a.jpg",
        "imageInterval": 20,
        "backgroundMode": "black",
        "showProgressBar": False,
    })
    assert config.display_mode == "images"
    assert config.slides == ("a.jpg", "b.jpg")
    assert config.enabled_slides == ("b.jpg",)
    assert config.frozen_slide == "a.jpg"
    assert config.slide_interval_sec == 20
    assert config.background_mode == "black"
    assert config.show_progress_bar is False


@pytest.mark.parametrize("raw, expected", [
    (0.1, 0.25),
    (0.25, 0.25),
    (0.5, 0.5),
    (0.75, 0.75),
    (2.0, 0.75),
    (1.25, 0.5),
    (5.0, 0.75),
])
def test_normalize_scale(raw, expected):
    assert normalize_scale(raw) == pytest.approx(expected)


def test_invalid_values_fall_back():
    config = DisplayConfig.from_mapping({
        "scale": "big",
        "background_mode": "plaid",
        "display_mode": "radio",
        "slides": "not-a-list",
        "slide_interval_sec": "soon",
        "show_progress_bar": "false",
    })
    assert config == DisplayConfig()


def test_interval_is_clamped():
    assert DisplayConfig.from_mapping({"slide_interval_sec": 1}).slide_interval_sec == 3
    assert DisplayConfig.from_mapping({"slide_interval_sec": 600}).slide_interval_sec == 60


def test_slide_lists_are_deduplicated_in_order():
    config = DisplayConfig.from_mapping({"slides": ["b", "a", "b", " ", "c"]})
    assert config.slides == ("b", "a", "c")


def test_with_changes_returns_new_snapshot():
    base = DisplayConfig()
    changed = base.with_changes(display_mode="images")
    assert base.display_mode == "player"
    assert changed.display_mode == "images"


def test_derive_slide_list():
    assert derive_slide_list(DisplayConfig(slides=("a", "b", "c"))) == ("a", "b", "c")
    assert derive_slide_list(DisplayConfig(slides=("a", "b", "c"), enabled_slides=("c", "a"))) == ("c", "a")
    assert derive_slide_list(DisplayConfig(slides=("a", "b"), enabled_slides=("a",), frozen_slide="b")) == ("b",)
    assert derive_slide_list(DisplayConfig()) == ()


def test_shows_live_player():
    assert shows_live_player(DisplayConfig(display_mode="player"), None)
    images = DisplayConfig(display_mode="images")
    assert shows_live_player(images, EMBEDDED_PLAYER_SLIDE)
    assert not shows_live_player(images, "a.jpg")
