from __future__ import annotations

from datetime import date

import pytest

from canvasreport.fragments import footer_fragment, german_date, table_of_contents_fragment
from canvasreport.planner import (
    UNTITLED_VISUALIZATION,
    FooterLabel,
    TocSection,
    assemble_entries,
    content_footer_index,
    content_pages,
    dashboard_title_entry,
    footer_entries,
    footer_labels,
    header_entry,
    needs_page_break,
    paginate_pairs,
    pair_entries,
    panel_entry,
    panel_group,
    panel_title_entry,
    toc_entry,
    toc_sections,
    total_pages,
)
from canvasreport.types import VisualizationType


@pytest.mark.parametrize(
    ('panel_count', 'expected'),
    [(0, 3), (1, 4), (2, 5), (3, 5), (4, 6), (5, 6), (6, 7)],
)
def test_total_pages(panel_count, expected):
    assert total_pages(panel_count) == expected


def test_content_pages_follow_one_then_two_layout():
    assert [content_pages(n) for n in range(6)] == [0, 1, 2, 2, 3, 3]


def test_toc_sections_for_five_panels():
    titles = ['p1', 'p2', 'p3', 'p4', 'p5']
    sections = toc_sections(titles, total_pages(len(titles)))
    assert sections == [
        TocSection('Cover Page', 1),
        TocSection('Report Contents', 2),
        TocSection('p1', 3),
        TocSection('p2', 4),
        TocSection('p3', 4),
        TocSection('p4', 5),
        TocSection('p5', 5),
        TocSection('Appendix', 6),
    ]


def test_toc_sections_without_panels():
    assert toc_sections([], total_pages(0)) == [
        TocSection('Cover Page', 1),
        TocSection('Report Contents', 2),
        TocSection('Appendix', 3),
    ]


def test_footer_labels_cover_every_page_index():
    labels = footer_labels(6, allow_table_of_contents=True)
    assert len(labels) == 7
    assert [label.page_index for label in labels] == list(range(7))
    assert labels[3].text == 'Page 3 of 6'


def test_footer_labels_shift_without_contents_page():
    labels = footer_labels(6, allow_table_of_contents=False)
    assert len(labels) == 7
    assert labels[3].text == 'Page 2 of 5'


def test_page_breaks_after_every_second_panel_but_last():
    assert [needs_page_break(index, 5) for index in range(5)] == [False, True, False, True, False]
    assert [needs_page_break(index, 4) for index in range(4)] == [False, True, False, False]


def test_panel_group_order():
    main = panel_entry('p2', 'Panel', b'x')
    title = panel_title_entry('p2', 'Declared', b'y')
    group = panel_group(1, 5, main, title)

    assert [entry.type for entry in group] == [
        VisualizationType.visualization_title,
        VisualizationType.visualization,
        VisualizationType.page_break,
    ]
    assert group[0].id == 'p2-title'
    assert group[2].id == 'page-break-1'


def test_assemble_entries_order():
    footers = footer_entries([b'a', b'', b'c'])
    groups = [panel_group(0, 1, panel_entry('p1', 'One', b'1'), panel_title_entry('p1', 'One', b'1'))]
    entries = assemble_entries(toc_entry(b't'), footers, dashboard_title_entry(b'd'), header_entry(b''), groups)

    assert [entry.type for entry in entries] == [
        VisualizationType.table_of_contents,
        VisualizationType.page_footer,
        VisualizationType.page_footer,
        VisualizationType.page_footer,
        VisualizationType.dashboard_title,
        VisualizationType.header,
        VisualizationType.visualization_title,
        VisualizationType.visualization,
    ]
    assert [(entry.id, entry.page_number) for entry in footers] == [
        ('footer-page-1', 1),
        ('footer-page-2', 2),
        ('footer-page-3', 3),
    ]
    assert not footers[1].has_image


def test_pairing_supplies_missing_titles():
    entries = [
        panel_title_entry('a', 'A', b'1'),
        panel_entry('a', 'A', b'1'),
        panel_entry('b', 'B', b'2'),
        panel_title_entry('c', 'Orphan', b'3'),
    ]
    pairs = pair_entries(entries)

    assert [(title.title, main.id) for title, main in pairs] == [('A', 'a'), (UNTITLED_VISUALIZATION, 'b')]


def test_paginate_one_then_two():
    pairs = pair_entries([panel_entry(f'p{index}', 'x', b'1') for index in range(5)])
    pages = paginate_pairs(pairs)

    assert [[main.id for _, main in page] for page in pages] == [['p0'], ['p1', 'p2'], ['p3', 'p4']]
    assert paginate_pairs([]) == []


def test_content_footer_index_skips_cover_and_contents():
    assert [content_footer_index(index) for index in range(3)] == [3, 4, 5]


def test_german_date_has_no_leading_zeros():
    assert german_date(date(2026, 3, 5)) == '5.3.2026'


def test_footer_fragment_content():
    fragment = footer_fragment(
        FooterLabel(page_index=3, display_page=3, display_total=6),
        title='Sales <Q3>',
        organization='Acme',
        on=date(2026, 10, 19),
    )
    text = fragment.get_text(' ', strip=True)
    assert 'Sales <Q3>' in text
    assert 'Acme' in text
    assert '19.10.2026' in text
    assert 'Page 3 of 6' in text


def test_table_of_contents_fragment_lists_sections():
    fragment = table_of_contents_fragment(toc_sections(['Revenue'], total_pages(1)))
    text = fragment.get_text(' ', strip=True)
    assert text.startswith('Report Contents')
    assert 'Revenue 3' in text
    assert 'Appendix 4' in text


def test_footer_labels_without_panels():
    pages = total_pages(0)
    with_toc = footer_labels(pages, allow_table_of_contents=True)
    without_toc = footer_labels(pages, allow_table_of_contents=False)

    assert [label.text for label in with_toc] == ['Page 0 of 3', 'Page 1 of 3', 'Page 2 of 3', 'Page 3 of 3']
    assert [label.text for label in without_toc] == ['Page -1 of 2', 'Page 0 of 2', 'Page 1 of 2', 'Page 2 of 2']


def test_footer_labels_for_single_panel():
    labels = footer_labels(total_pages(1), allow_table_of_contents=True)
    assert len(labels) == 5
    assert labels[content_footer_index(0)].text == 'Page 3 of 4'
