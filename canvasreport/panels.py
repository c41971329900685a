from __future__ import annotations

import logging

from bs4 import BeautifulSoup, Tag

from .dom import has_child_nodes, text_of
from .errors import NoValidPanels
from .types import PanelRecord


logger = logging.getLogger(__name__)

PANEL_SELECTOR = '[data-test-embeddable-id]'
PANEL_ID_ATTR = 'data-test-embeddable-id'

EXCLUDED_PANEL_SELECTORS = (
    '.visualization.markdownVis',
    '[data-test-subj="discoverTable"]',
    '.icvContainer',
)
EMPTY_CHART_SELECTOR = '.visualization > .visChart__container.osd-resetFocusState > .visChart > .tvbVis'
NO_DATA_MESSAGES = frozenset({
    'No data to display for the selected metrics',
    'No results found',
})

NO_TITLE = '[No Title]'
UNTITLED_PANEL = 'Untitled Panel'
UNKNOWN_PANEL_ID = 'unknown'


def discover_panels(document: BeautifulSoup | Tag) -> list[Tag]:
    return list(document.select(PANEL_SELECTOR))


def is_excluded_kind(panel: Tag) -> bool:
    return any(panel.select_one(selector) is not None for selector in EXCLUDED_PANEL_SELECTORS)


def is_empty_panel(panel: Tag) -> bool:
    container = panel.select_one(EMPTY_CHART_SELECTOR)
    return container is not None and not has_child_nodes(container)


def has_no_data_message(panel: Tag) -> bool:
    return any(p.get_text().strip() in NO_DATA_MESSAGES for p in panel.find_all('p'))


def is_valid_panel(panel: Tag) -> bool:
    return not is_excluded_kind(panel) and not is_empty_panel(panel) and not has_no_data_message(panel)


def declared_title(panel: Tag) -> str:
    node = panel.select_one('[data-title]')
    if node is not None and node.get('data-title'):
        return str(node['data-title'])
    return ''


def resolve_title(panel: Tag) -> str:
    return declared_title(panel) or text_of(panel.select_one('.embPanel__titleText')) or NO_TITLE


def header_title(panel: Tag) -> str:
    return text_of(panel.select_one('.embPanel__titleText')) or UNTITLED_PANEL


def resolve_panel_id(panel: Tag) -> str:
    return str(panel.get(PANEL_ID_ATTR) or '') or UNKNOWN_PANEL_ID


def validate_panels(panels: list[Tag]) -> list[PanelRecord]:
    records: list[PanelRecord] = []
    for panel in panels:
        if not is_valid_panel(panel):
            logger.debug('Skipping panel %s', resolve_panel_id(panel))
            continue
        records.append(PanelRecord(element=panel, title=resolve_title(panel), panel_id=resolve_panel_id(panel)))
    return records


def collect_valid_panels(document: BeautifulSoup | Tag) -> list[PanelRecord]:
    """Discover and filter dashboard panels; raise when nothing printable remains."""
    panels = discover_panels(document)
    records = validate_panels(panels)
    logger.info('Found %d panels, %d printable', len(panels), len(records))
    if not records:
        raise NoValidPanels()
    return records
