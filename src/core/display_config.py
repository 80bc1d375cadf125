# core/display_config.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

EMBEDDED_PLAYER_SLIDE = "embedded-player"

BACKGROUND_MODES = ("cover", "black")
DISPLAY_MODES = ("player", "images")

SCALE_MIN, SCALE_MAX = 0.25, 0.75
LEGACY_SCALE_MIN, LEGACY_SCALE_MAX = 0.5, 2.0
INTERVAL_MIN_SEC, INTERVAL_MAX_SEC = 3, 60

# Old store keys -> current field names. The first spelling found wins.
_KEY_ALIASES = {
    "scale": ("scale",),
    "background_mode": ("background_mode", "backgroundMode"),
    "show_progress_bar": ("show_progress_bar", "showProgressBar"),
    "display_mode": ("display_mode", "displayMode"),
    "slides": ("slides", "availableImages"),
    "enabled_slides": ("enabled_slides", "enabledSlides", "enabledImages"),
    "frozen_slide": ("frozen_slide", "frozenSlide", "frozenImage"),
    "slide_interval_sec": ("slide_interval_sec", "slideIntervalSec", "imageInterval"),
}


def _unique(items: Iterable[Any]) -> tuple[str, ...]:
    seen: list[str] = []
    for item in items:
        s = str(item).strip()
        if s and s not in seen:
            seen.append(s)
    return tuple(seen)


def normalize_scale(value: float) -> float:
    """
    Clamp into [0.25, 0.75]. Values above 0.75 come from the old
    [0.5, 2.0] slider and are mapped linearly onto the new range.
    """
    v = float(value)
    if v > SCALE_MAX:
        v = min(LEGACY_SCALE_MAX, v)
        ratio = (v - LEGACY_SCALE_MIN) / (LEGACY_SCALE_MAX - LEGACY_SCALE_MIN)
        v = SCALE_MIN + ratio * (SCALE_MAX - SCALE_MIN)
    return round(min(SCALE_MAX, max(SCALE_MIN, v)), 4)


@dataclass(frozen=True)
class DisplayConfig:
    scale: float = 0.5
    background_mode: str = "cover"
    show_progress_bar: bool = True
    display_mode: str = "player"
    slides: tuple[str, ...] = ()
    enabled_slides: tuple[str, ...] = ()
    frozen_slide: str | None = None
    slide_interval_sec: int = 10

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "DisplayConfig":
        """Merge a stored (possibly partial or legacy) mapping with the defaults."""
        default = cls()
        if not data:
            return default

        raw: dict[str, Any] = {}
        for name, keys in _KEY_ALIASES.items():
            for k in keys:
                if k in data and data[k] is not None:
                    raw[name] = data[k]
                    break

        values: dict[str, Any] = {}

        try:
            values["scale"] = normalize_scale(raw["scale"]) if "scale" in raw else default.scale
        except (TypeError, ValueError):
            values["scale"] = default.scale

        bg = raw.get("background_mode", default.background_mode)
        values["background_mode"] = bg if bg in BACKGROUND_MODES else default.background_mode

        show = raw.get("show_progress_bar", default.show_progress_bar)
        values["show_progress_bar"] = show if isinstance(show, bool) else default.show_progress_bar

        mode = raw.get("display_mode", default.display_mode)
        values["display_mode"] = mode if mode in DISPLAY_MODES else default.display_mode

        for name in ("slides", "enabled_slides"):
            seq = raw.get(name, ())
            values[name] = _unique(seq) if isinstance(seq, (list, tuple)) else ()

        frozen = raw.get("frozen_slide")
        values["frozen_slide"] = (str(frozen).strip() or None) if frozen else None

        try:
            interval = int(raw.get("slide_interval_sec", default.slide_interval_sec))
        except (TypeError, ValueError):
            interval = default.slide_interval_sec
        values["slide_interval_sec"] = min(INTERVAL_MAX_SEC, max(INTERVAL_MIN_SEC, interval))

        return cls(**values)

    def to_mapping(self) -> dict[str, Any]:
        return {
            "scale": self.scale,
            "background_mode": self.background_mode,
            "show_progress_bar": self.show_progress_bar,
            "display_mode": self.display_mode,
            "slides": list(self.slides),
            "enabled_slides": list(self.enabled_slides),
            "frozen_slide": self.frozen_slide,
            "slide_interval_sec": self.slide_interval_sec,
        }

    def with_changes(self, **changes: Any) -> "DisplayConfig":
        """Return a new, re-validated config; the receiver is never touched."""
        merged = self.to_mapping()
        merged.update(changes)
        return DisplayConfig.from_mapping(merged)


def derive_slide_list(config: DisplayConfig) -> tuple[str, ...]:
    if config.frozen_slide:
        return (config.frozen_slide,)
    if config.enabled_slides:
        return config.enabled_slides
    return config.slides


def shows_live_player(config: DisplayConfig, active_slide: str | None) -> bool:
    if config.display_mode == "player":
        return True
    return active_slide == EMBEDDED_PLAYER_SLIDE
