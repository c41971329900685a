from __future__ import annotations

import pytest

from canvasreport import layout
from canvasreport.dom import load_document, parse_style
from canvasreport.layout import (
    LARGE_TABLE,
    WIDE_ARC,
    WIDE_CHART,
    PanelKind,
    classify_panel,
    normalize,
    normalized_layout,
)
from canvasreport.panels import discover_panels

from conftest import GRID_STYLE, PANEL_STYLE, dashboard_html, panel_html


def _document(*panels: str):
    return load_document(dashboard_html(list(panels)))


def _styles(document):
    return [
        (str(cell.get('style') or ''), str(cell.div.get('style') or ''))
        for cell in document.select('.react-grid-item')
    ]


def test_classify_requires_chart_scope_for_chart_kinds():
    document = _document(
        panel_html('scoped', 'Pie', body='<div class="visChart"><svg class="arcs"></svg></div>'),
        panel_html('unscoped', 'Pie', body='<svg class="arcs"></svg>'),
    )
    scoped, unscoped = discover_panels(document)
    assert classify_panel(scoped) == [PanelKind.pie]
    assert classify_panel(unscoped) == []


def test_classify_table_without_chart_scope():
    document = _document(panel_html('t', 'Table', body='<div class="visualization tableVis"></div>'))
    assert classify_panel(discover_panels(document)[0]) == [PanelKind.data_table]


def test_normalize_applies_kind_geometry():
    document = _document(panel_html('bar', 'Bars'))
    normalize(discover_panels(document))

    cell = parse_style(document.select_one('.react-grid-item'))
    assert cell['width'] == f'{WIDE_CHART.width}px'
    assert cell['height'] == f'{WIDE_CHART.height}px'
    assert cell['top'] == f'{WIDE_CHART.top}px'
    assert cell['position'] == 'absolute'
    body = parse_style(document.select_one('.embPanel'))
    assert body['width'] == '100%'
    assert body['height'] == '100%'


def test_pie_geometry_keeps_original_position():
    document = _document(panel_html('pie', 'Pie', body='<div class="visChart"><svg class="arcs"></svg></div>'))
    normalize(discover_panels(document))

    cell = parse_style(document.select_one('.react-grid-item'))
    assert cell['width'] == f'{WIDE_ARC.width}px'
    assert cell['position'] == 'absolute'


def test_later_kind_geometry_wins():
    # A TSVB split panel matches both the metric and the split kinds.
    document = _document(panel_html('split', 'Split', body='<div class="visChart"><div class="tvbSplitVis"></div></div>'))
    panel = discover_panels(document)[0]
    assert classify_panel(panel) == [PanelKind.tsvb_metric, PanelKind.tsvb_split]

    normalize([panel])

    cell = parse_style(document.select_one('.react-grid-item'))
    assert cell['width'] == f'{LARGE_TABLE.width}px'
    assert cell['height'] == f'{LARGE_TABLE.height}px'


def test_panels_without_kind_are_untouched():
    document = _document(panel_html('plain', 'Plain', body='<canvas></canvas>'))
    snapshot = normalize(discover_panels(document))
    assert len(snapshot) == 0
    assert _styles(document) == [(GRID_STYLE, PANEL_STYLE)]


def test_restore_returns_exact_original_styles():
    document = _document(
        panel_html('bar', 'Bars'),
        panel_html('table', 'Table', body='<div class="visualization tableVis"></div>'),
    )
    before = _styles(document)
    snapshot = normalize(discover_panels(document))
    assert _styles(document) != before

    snapshot.restore()
    assert _styles(document) == before

    snapshot.restore()
    assert _styles(document) == before


@pytest.mark.asyncio
async def test_normalized_layout_restores_after_failure():
    document = _document(panel_html('bar', 'Bars'))
    before = _styles(document)

    with pytest.raises(RuntimeError):
        async with normalized_layout(discover_panels(document), settle_seconds=0, restore_settle_seconds=0):
            assert _styles(document) != before
            raise RuntimeError('capture failed')

    assert _styles(document) == before


@pytest.mark.asyncio
async def test_normalized_layout_yields_snapshot():
    document = _document(panel_html('bar', 'Bars'))
    async with normalized_layout(discover_panels(document)) as snapshot:
        assert len(snapshot) == 2
    assert snapshot.restored


@pytest.mark.asyncio
async def test_normalized_layout_restores_partial_batch(monkeypatch):
    document = _document(panel_html('first', 'First'), panel_html('second', 'Second'))
    before = _styles(document)
    original = layout._apply_geometry
    calls = []

    def _apply_then_fail(panel, kind_spec, snapshot):
        calls.append(panel)
        if len(calls) > 1:
            raise RuntimeError('geometry failed')
        return original(panel, kind_spec, snapshot)

    monkeypatch.setattr(layout, '_apply_geometry', _apply_then_fail)

    with pytest.raises(RuntimeError, match='geometry failed'):
        async with normalized_layout(discover_panels(document), settle_seconds=0, restore_settle_seconds=0):
            pass

    assert len(calls) == 2
    assert _styles(document) == before
