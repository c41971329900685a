from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from bs4 import Tag


class CaptureProfile(str, Enum):
    arc = 'arc'
    time_series = 'time_series'
    metric = 'metric'
    default = 'default'


ARC_SELECTOR = '.arcs'
TIME_SERIES_SELECTOR = '.tvbVisTimeSeries'
METRIC_BACKGROUNDS = (
    'rgb(226, 0, 116)',
    'rgb(255, 154, 30)',
    'rgb(255, 211, 41)',
    'rgb(27, 173, 162)',
)
METRIC_SELECTOR = ', '.join(
    f'.tvbVis[style*="background-color: {color}"]' for color in METRIC_BACKGROUNDS
)


@dataclass(frozen=True)
class ProfileRules:
    profile: CaptureProfile
    scale: float | None = None
    background: str | None = '#ffffff'
    use_window_size: bool = False
    foreign_object_rendering: bool = True
    ignore_selectors: tuple[str, ...] = ()
    bake_transform_selectors: tuple[str, ...] = ()
    opaque_selectors: tuple[str, ...] = ()
    snap_near_white: bool = False

    def resolved_scale(self, requested: float) -> float:
        return self.scale if self.scale is not None else requested


PROFILE_RULES: dict[CaptureProfile, ProfileRules] = {
    CaptureProfile.arc: ProfileRules(
        CaptureProfile.arc,
        scale=2.0,
        foreign_object_rendering=False,
    ),
    CaptureProfile.time_series: ProfileRules(
        CaptureProfile.time_series,
        scale=1.5,
        use_window_size=True,
    ),
    CaptureProfile.metric: ProfileRules(
        CaptureProfile.metric,
        ignore_selectors=('.brush', '.echHighlighter'),
        bake_transform_selectors=('.tvbVisMetric__inner',),
        opaque_selectors=('.echLegendItem',),
    ),
    CaptureProfile.default: ProfileRules(
        CaptureProfile.default,
        use_window_size=True,
        snap_near_white=True,
    ),
}


def detect_profile(element: Tag) -> CaptureProfile:
    if element.select_one(ARC_SELECTOR) is not None:
        return CaptureProfile.arc
    if element.select_one(TIME_SERIES_SELECTOR) is not None:
        return CaptureProfile.time_series
    if element.select_one(METRIC_SELECTOR) is not None:
        return CaptureProfile.metric
    return CaptureProfile.default
