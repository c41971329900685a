from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from .types import VisualizationEntry, VisualizationType


VISUALIZATIONS_PER_PAGE = 2
# Cover page and report contents come before the first content page,
# the appendix (template back page) after the last one.
FIXED_PAGES = 3
FIRST_CONTENT_PAGE = 3

UNTITLED_VISUALIZATION = 'Untitled Visualization'


@dataclass(frozen=True)
class TocSection:
    title: str
    page: int


@dataclass(frozen=True)
class FooterLabel:
    page_index: int
    display_page: int
    display_total: int

    @property
    def text(self) -> str:
        return f'Page {self.display_page} of {self.display_total}'


def content_pages(panel_count: int) -> int:
    if panel_count <= 0:
        return 0
    return 1 + math.ceil((panel_count - 1) / VISUALIZATIONS_PER_PAGE)


def total_pages(panel_count: int) -> int:
    return FIXED_PAGES + content_pages(panel_count)


def toc_sections(panel_titles: Sequence[str], pages_total: int) -> list[TocSection]:
    sections = [TocSection('Cover Page', 1), TocSection('Report Contents', 2)]
    for index, title in enumerate(panel_titles):
        sections.append(TocSection(title, FIRST_CONTENT_PAGE + (index + 1) // 2))
    sections.append(TocSection('Appendix', pages_total))
    return sections


def footer_labels(pages_total: int, allow_table_of_contents: bool) -> list[FooterLabel]:
    """One label per page index 0..pages_total inclusive."""
    shift = 0 if allow_table_of_contents else 1
    return [
        FooterLabel(page_index=page, display_page=page - shift, display_total=pages_total - shift)
        for page in range(pages_total + 1)
    ]


def needs_page_break(index: int, panel_count: int) -> bool:
    return (index + 1) % 2 == 0 and index != panel_count - 1


def toc_entry(data: bytes) -> VisualizationEntry:
    return VisualizationEntry(
        id='report-toc', title='Table of Contents', type=VisualizationType.table_of_contents, data=data
    )


def dashboard_title_entry(data: bytes) -> VisualizationEntry:
    return VisualizationEntry(
        id='dashboard-title', title='Dashboard Title', type=VisualizationType.dashboard_title, data=data
    )


def header_entry(data: bytes) -> VisualizationEntry:
    return VisualizationEntry(id='time-range', title='Time Range', type=VisualizationType.header, data=data)


def footer_entries(images: Sequence[bytes]) -> list[VisualizationEntry]:
    return [
        VisualizationEntry(
            id=f'footer-page-{index + 1}',
            title='Page Footer',
            type=VisualizationType.page_footer,
            data=image,
            page_number=index + 1,
        )
        for index, image in enumerate(images)
    ]


def panel_title_entry(panel_id: str, title: str, data: bytes) -> VisualizationEntry:
    return VisualizationEntry(
        id=f'{panel_id}-title', title=title, type=VisualizationType.visualization_title, data=data
    )


def panel_entry(panel_id: str, title: str, data: bytes) -> VisualizationEntry:
    return VisualizationEntry(id=panel_id, title=title, type=VisualizationType.visualization, data=data)


def page_break_entry(index: int) -> VisualizationEntry:
    return VisualizationEntry(id=f'page-break-{index}', title='', type=VisualizationType.page_break)


def panel_group(
    index: int,
    panel_count: int,
    main: VisualizationEntry,
    title: VisualizationEntry | None = None,
) -> list[VisualizationEntry]:
    group = [title] if title is not None else []
    group.append(main)
    if needs_page_break(index, panel_count):
        group.append(page_break_entry(index))
    return group


def assemble_entries(
    toc: VisualizationEntry,
    footers: Sequence[VisualizationEntry],
    dashboard_title: VisualizationEntry,
    header: VisualizationEntry,
    panel_groups: Iterable[Sequence[VisualizationEntry]],
) -> list[VisualizationEntry]:
    entries = [toc, *footers, dashboard_title, header]
    for group in panel_groups:
        entries.extend(group)
    return entries


def pair_entries(entries: Sequence[VisualizationEntry]) -> list[tuple[VisualizationEntry, VisualizationEntry]]:
    """Pair every visualization with the title entry preceding it."""
    pairs: list[tuple[VisualizationEntry, VisualizationEntry]] = []
    pending_title: VisualizationEntry | None = None
    for entry in entries:
        if entry.type == VisualizationType.visualization_title:
            pending_title = entry
        elif entry.type == VisualizationType.visualization:
            title = pending_title or VisualizationEntry(
                id=f'auto-title-{entry.id}',
                title=UNTITLED_VISUALIZATION,
                type=VisualizationType.visualization_title,
            )
            pairs.append((title, entry))
            pending_title = None
    return pairs


def paginate_pairs(pairs: Sequence[tuple[VisualizationEntry, VisualizationEntry]]) -> list[list[tuple[VisualizationEntry, VisualizationEntry]]]:
    if not pairs:
        return []
    pages = [list(pairs[:1])]
    rest = pairs[1:]
    for start in range(0, len(rest), VISUALIZATIONS_PER_PAGE):
        pages.append(list(rest[start:start + VISUALIZATIONS_PER_PAGE]))
    return pages


def content_footer_index(page_index: int) -> int:
    page_number = page_index + 2
    return page_number + 1
