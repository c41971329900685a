from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Iterable

from bs4 import Tag

from .capture.profiles import CaptureProfile
from .config import get_settings
from .dom import closest, set_style, snapshot_style
from .types import PanelRecord


logger = logging.getLogger(__name__)

GRID_CELL_SELECTOR = '.react-grid-item'
PANEL_BODY_SELECTOR = '.embPanel'
CHART_SCOPE_SELECTOR = '.visChart'

SNAPSHOT_PROPERTIES = ('top', 'left', 'width', 'height', 'position', 'visibility')


class PanelKind(str, Enum):
    tsvb_time_series = 'tsvb_time_series'
    bar = 'bar'
    pie = 'pie'
    tsvb_top_n = 'tsvb_top_n'
    trend_metric = 'trend_metric'
    tsvb_metric = 'tsvb_metric'
    metric = 'metric'
    data_table = 'data_table'
    tsvb_split = 'tsvb_split'
    tsvb_table_view = 'tsvb_table_view'
    tag_cloud = 'tag_cloud'
    vega_map = 'vega_map'
    tsvb_markdown = 'tsvb_markdown'


@dataclass(frozen=True)
class Geometry:
    top: int
    left: int
    width: int
    height: int
    absolute: bool = True

    def grid_cell_styles(self) -> dict[str, str]:
        styles = {
            'top': f'{self.top}px',
            'left': f'{self.left}px',
            'width': f'{self.width}px',
            'height': f'{self.height}px',
            'visibility': 'hidden',
        }
        if self.absolute:
            styles['position'] = 'absolute'
        return styles


WIDE_CHART = Geometry(top=540, left=964, width=948, height=384)
WIDE_ARC = Geometry(top=540, left=964, width=640, height=440, absolute=False)
WIDE_TOP_N = Geometry(top=540, left=964, width=640, height=440)
TREND_METRIC = Geometry(top=260, left=637, width=318, height=340)
SPLIT_METRIC = Geometry(top=320, left=637, width=637, height=200)
CLASSIC_METRIC = Geometry(top=700, left=637, width=637, height=220)
LARGE_TABLE = Geometry(top=1600, left=955, width=955, height=540)


@dataclass(frozen=True)
class KindSpec:
    selector: str
    geometry: Geometry
    capture_profile: CaptureProfile
    chart_only: bool = True


# Application order matters: a panel matching several kinds ends in the last geometry.
KIND_TABLE: dict[PanelKind, KindSpec] = {
    PanelKind.tsvb_time_series: KindSpec('.tvbVisTimeSeries', WIDE_CHART, CaptureProfile.time_series),
    PanelKind.bar: KindSpec('.visAxis--y', WIDE_CHART, CaptureProfile.default),
    PanelKind.pie: KindSpec('.arcs', WIDE_ARC, CaptureProfile.arc),
    PanelKind.tsvb_top_n: KindSpec('.tvbVisTopN', WIDE_TOP_N, CaptureProfile.default),
    PanelKind.trend_metric: KindSpec('.osdRedirectCrossAppLinks', TREND_METRIC, CaptureProfile.metric),
    PanelKind.tsvb_metric: KindSpec('.tvbSplitVis', SPLIT_METRIC, CaptureProfile.metric),
    PanelKind.metric: KindSpec('.mtrVis', CLASSIC_METRIC, CaptureProfile.default, chart_only=False),
    PanelKind.data_table: KindSpec('.visualization.tableVis', LARGE_TABLE, CaptureProfile.default, chart_only=False),
    PanelKind.tsvb_split: KindSpec('.tvbSplitVis', LARGE_TABLE, CaptureProfile.default),
    PanelKind.tsvb_table_view: KindSpec('[data-test-subj="tableView"]', LARGE_TABLE, CaptureProfile.default),
    PanelKind.tag_cloud: KindSpec('.tgcChart', WIDE_CHART, CaptureProfile.default, chart_only=False),
    PanelKind.vega_map: KindSpec('.visChart.vgaVis', WIDE_CHART, CaptureProfile.default),
    PanelKind.tsvb_markdown: KindSpec(
        '[data-test-subj="tsvbMarkdown"]', WIDE_CHART, CaptureProfile.default, chart_only=False
    ),
}


def classify_panel(panel: Tag) -> list[PanelKind]:
    in_chart_scope = panel.select_one(CHART_SCOPE_SELECTOR) is not None
    kinds: list[PanelKind] = []
    for kind, kind_spec in KIND_TABLE.items():
        if kind_spec.chart_only and not in_chart_scope:
            continue
        if panel.select_one(kind_spec.selector) is not None:
            kinds.append(kind)
    return kinds


@dataclass
class LayoutSnapshot:
    """Inline styles captured before normalization, restorable exactly once."""

    saved: list[tuple[Tag, dict[str, str]]] = field(default_factory=list)
    restored: bool = False

    def __contains__(self, element: Tag) -> bool:
        return any(saved is element for saved, _ in self.saved)

    def __len__(self) -> int:
        return len(self.saved)

    def remember(self, element: Tag, properties: Iterable[str]) -> None:
        if element in self:
            return
        self.saved.append((element, snapshot_style(element, properties)))

    def restore(self) -> None:
        if self.restored:
            return
        self.restored = True
        for element, styles in reversed(self.saved):
            set_style(element, styles)
        logger.debug('Restored layout of %d elements', len(self.saved))


def _apply_geometry(panel: Tag, spec: KindSpec, snapshot: LayoutSnapshot) -> bool:
    grid_cell = closest(panel, GRID_CELL_SELECTOR)
    panel_body = closest(panel, PANEL_BODY_SELECTOR)
    if grid_cell is None or panel_body is None:
        return False
    snapshot.remember(grid_cell, SNAPSHOT_PROPERTIES)
    snapshot.remember(panel_body, SNAPSHOT_PROPERTIES)
    set_style(grid_cell, spec.geometry.grid_cell_styles())
    set_style(panel_body, {'width': '100%', 'height': '100%'})
    return True


def normalize(panels: Iterable[PanelRecord | Tag], snapshot: LayoutSnapshot | None = None) -> LayoutSnapshot:
    """Resize every matched panel into its capture geometry in one batch."""
    elements = [item.element if isinstance(item, PanelRecord) else item for item in panels]
    if snapshot is None:
        snapshot = LayoutSnapshot()
    classified = {id(element): classify_panel(element) for element in elements}
    for element in elements:
        kinds = classified[id(element)]
        if kinds:
            logger.debug(
                'Panel kinds %s, expected capture profile %s',
                [kind.value for kind in kinds],
                KIND_TABLE[kinds[-1]].capture_profile.value,
            )
    for kind, kind_spec in KIND_TABLE.items():
        for element in elements:
            if kind not in classified[id(element)]:
                continue
            if not _apply_geometry(element, kind_spec, snapshot):
                logger.debug('Panel has no grid cell or body; skipping %s geometry', kind.value)
    logger.info('Normalized layout for %d panels (%d styled elements)', len(elements), len(snapshot))
    return snapshot


async def wait_for_paint(settle_seconds: float) -> None:
    # One scheduler turn stands in for the paint cycle.
    await asyncio.sleep(0)
    if settle_seconds > 0:
        await asyncio.sleep(settle_seconds)


@asynccontextmanager
async def normalized_layout(
    panels: Iterable[PanelRecord | Tag],
    *,
    settle_seconds: float | None = None,
    restore_settle_seconds: float | None = None,
) -> AsyncIterator[LayoutSnapshot]:
    settings = get_settings()
    snapshot = LayoutSnapshot()
    try:
        normalize(panels, snapshot)
        await wait_for_paint(settings.layout_settle_seconds if settle_seconds is None else settle_seconds)
        yield snapshot
    finally:
        snapshot.restore()
        delay = settings.layout_restore_settle_seconds if restore_settle_seconds is None else restore_settle_seconds
        if delay > 0:
            await asyncio.sleep(delay)

