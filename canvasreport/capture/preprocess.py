from __future__ import annotations

import logging

from bs4 import BeautifulSoup, Tag

from ..dom import set_style, write_style
from ..types import VisualizationType


logger = logging.getLogger(__name__)

PANEL_HEADER_SELECTOR = '[data-test-embeddable-id] figcaption.embPanel__header'

# Nodes that never belong in a printed capture.
REMOVED_SELECTORS = (
    PANEL_HEADER_SELECTOR,
    '.sibling-container',
    '.euiPagination',
    '#dataTableExportData',
    '.visLib__legend',
)
HIDDEN_SELECTORS = ('.euiDataGridRowCell__expandButton',)
WHITENED_SELECTORS = ('.echChartBackground',)

# Watched while the renderer settles; late insertions of these are removed.
WATCHED_SELECTORS = (
    '.euiPagination',
    '.euiDataGridRowCell__expandButton',
    PANEL_HEADER_SELECTOR,
    '.sibling-container',
    '#dataTableExportData',
    '.visLib__legend',
)

PROFESSIONAL_TABLE_STYLES = {
    'table': {
        'width': '100% !important',
        'height': 'auto !important',
        'min-height': '50px !important',
        'opacity': '1 !important',
        'transform': 'none !important',
        'position': 'relative !important',
        'background-color': '#ffffff !important',
    },
    'header': {
        'background-color': '#f8f9fa',
        'padding': '12px',
        'text-align': 'left',
        'font-weight': '600',
        'color': '#495057',
        'border-bottom': '2px solid #dee2e6',
    },
    'cell': {
        'padding': '12px',
        'color': '#6c757d',
        'border-bottom': '1px solid #dee2e6',
    },
    'row': {'background-color': 'rgb(255, 255, 255)'},
}

DETAILS_WRAPPER_STYLES = {
    'position': 'relative',
    'width': '100%',
    'height': 'auto',
    'min-height': '50px',
    'overflow': 'visible',
    'z-index': '9999',
    'background-color': '#ffffff',
}


_FACTORY = BeautifulSoup('', 'html.parser')


def _new_tag(name: str) -> Tag:
    return _FACTORY.new_tag(name)


def _replace_style(element: Tag, styles: dict[str, str]) -> None:
    write_style(element, dict(styles))


def preprocess(element: Tag, kind: VisualizationType | str | None) -> None:
    """Kind-specific styling applied to a clone before it is rendered."""
    kind_value = kind.value if isinstance(kind, VisualizationType) else kind

    if kind_value == VisualizationType.table_of_contents.value:
        set_style(element, {'font-family': "'Helvetica Neue', Arial, sans-serif"})
        for heading in element.find_all('h1'):
            set_style(heading, {'font-weight': '600', 'letter-spacing': '-0.5px'})
        for line in element.select('div[style*="dotted"]'):
            set_style(line, {'border-bottom': '2px dotted #0055A6', 'margin': '0 15px'})
        return

    if kind_value == VisualizationType.header.value:
        for button in element.select('button.euiSuperDatePicker__prettyFormat'):
            _replace_style(button, {
                'display': 'flex !important',
                'justify-content': 'center !important',
                'align-items': 'center !important',
                'text-align': 'center !important',
                'width': '100% !important',
            })
            for span in button.select('span.euiSuperDatePicker__prettyFormatLink'):
                if span.get_text().strip().lower() == 'show dates':
                    span.decompose()
        _replace_style(element, {
            'overflow': 'visible !important',
            'white-space': 'nowrap !important',
            'text-align': 'center !important',
            'display': 'flex !important',
            'justify-content': 'center !important',
        })
        return

    if kind_value == VisualizationType.dashboard_title.value:
        _replace_style(element, {
            'font-size': '108px !important',
            'font-weight': '900 !important',
            'text-align': 'center !important',
            'padding': '40px 0 !important',
            'z-index': '-1 !important',
        })
        return

    if kind_value == VisualizationType.visualization.value:
        _replace_style(element, {
            'max-height': '300pt !important',
            'height': '300pt !important',
            'width': '100% !important',
            'margin': '0 auto !important',
        })


def strip_decorations(element: Tag) -> int:
    """Whiten chart backgrounds, drop non-printing nodes and hide row expanders."""
    for selector in WHITENED_SELECTORS:
        for node in element.select(selector):
            set_style(node, {'background-color': '#ffffff', 'background-image': 'none'})
    removed = 0
    for selector in REMOVED_SELECTORS:
        for node in element.select(selector):
            node.decompose()
            removed += 1
    for selector in HIDDEN_SELECTORS:
        for node in element.select(selector):
            set_style(node, {'display': 'none'})
    if removed:
        logger.debug('Stripped %d decorative nodes', removed)
    return removed


def remove_panel_headers(element: Tag) -> None:
    for node in element.select(PANEL_HEADER_SELECTOR):
        node.decompose()


def professional_table(details: Tag) -> Tag:
    """Rebuild the table inside a <details> disclosure as a flat, printable table."""
    source = details.find('table')
    table = _new_tag('table')
    if source is None:
        return table
    write_style(table, PROFESSIONAL_TABLE_STYLES['table'])

    thead = source.find('thead')
    if thead is not None:
        new_thead = _new_tag('thead')
        header_row = _new_tag('tr')
        headers = thead.find_all('th')
        for index, th in enumerate(headers):
            cell = _new_tag('th')
            cell.string = th.get_text()
            styles = dict(PROFESSIONAL_TABLE_STYLES['header'])
            if index == 0:
                styles['border-radius'] = '4px 0 0 0'
            elif index == len(headers) - 1:
                styles['border-radius'] = '0 4px 0 0'
            write_style(cell, styles)
            header_row.append(cell)
        new_thead.append(header_row)
        table.append(new_thead)

    tbody = source.find('tbody')
    if tbody is not None:
        new_tbody = _new_tag('tbody')
        for row_index, row in enumerate(tbody.find_all('tr')):
            cells = row.find_all('td')
            if any('N/A' in cell.get_text() for cell in cells):
                continue
            new_row = _new_tag('tr')
            if row_index % 2 == 0:
                write_style(new_row, PROFESSIONAL_TABLE_STYLES['row'])
            for cell in cells:
                new_cell = _new_tag('td')
                new_cell.string = cell.get_text()
                write_style(new_cell, PROFESSIONAL_TABLE_STYLES['cell'])
                new_row.append(new_cell)
            new_tbody.append(new_row)
        table.append(new_tbody)
    return table


def details_to_tables(element: Tag) -> int:
    replaced = 0
    for details in element.find_all('details'):
        wrapper = _new_tag('div')
        write_style(wrapper, DETAILS_WRAPPER_STYLES)
        wrapper.append(professional_table(details))
        details.replace_with(wrapper)
        replaced += 1
    return replaced


def position_offscreen(element: Tag, width: float | None, height: float | None) -> None:
    set_style(element, {
        'position': 'fixed',
        'left': '-9999px',
        'top': '0',
        'width': f'{width:g}px' if width else '',
        'height': f'{height:g}px' if height else '',
        'visibility': 'visible',
        'z-index': '-1',
        'contain': 'strict' if width and height else '',
        'pointer-events': 'none',
    })


def position_arc_clone(element: Tag, width: float | None) -> None:
    set_style(element, {
        'position': 'fixed',
        'left': '-9999px',
        'top': '0',
        'width': f'{width:g}px' if width else '',
        'height': 'auto',
        'min-height': '50px',
        'visibility': 'visible',
        'z-index': '9999',
        'contain': 'none',
        'pointer-events': 'auto',
        'background-color': '#ffffff',
    })