from __future__ import annotations

import io
import shutil
from pathlib import Path

import pytest
import reportlab
from pypdf import PdfReader

from canvasreport.errors import MergeFailure
from canvasreport.planner import (
    assemble_entries,
    dashboard_title_entry,
    footer_entries,
    header_entry,
    panel_entry,
    panel_group,
    panel_title_entry,
    toc_entry,
    total_pages,
)
from canvasreport.report.assembler import assemble_report, mm_to_pt
from canvasreport.report.content_pdf import build_content_pdf
from canvasreport.report.fonts import OverlayFonts, resolve_overlay_fonts
from canvasreport.types import ReportInfo, TextPositions

from conftest import png_bytes, template_pdf


INFO = ReportInfo(tenant_name='Acme Holdings', dashboard_name='Sales Overview', timestamp='19.10.2026 @ 14:05')


def _entries(panel_count: int):
    footers = footer_entries([png_bytes(794, 40) for _ in range(total_pages(panel_count) + 1)])
    groups = [
        panel_group(
            index,
            panel_count,
            panel_entry(f'p{index}', f'Panel {index}', png_bytes(600, 300)),
            panel_title_entry(f'p{index}', f'Panel {index}', png_bytes(734, 40)),
        )
        for index in range(panel_count)
    ]
    return assemble_entries(
        toc_entry(png_bytes(794, 1123, (255, 255, 255))),
        footers,
        dashboard_title_entry(png_bytes(794, 60)),
        header_entry(png_bytes(400, 40)),
        groups,
    )


def _page_count(pdf: bytes) -> int:
    return len(PdfReader(io.BytesIO(pdf)).pages)


@pytest.mark.parametrize(('panel_count', 'pages'), [(1, 2), (2, 3), (3, 3), (5, 4)])
def test_content_pages_with_contents_page(panel_count, pages):
    pdf = build_content_pdf(_entries(panel_count), allow_table_of_contents=True, logo=png_bytes(120, 40))
    assert _page_count(pdf) == pages
    assert _page_count(pdf) == total_pages(panel_count) - 2


def test_content_without_contents_page():
    pdf = build_content_pdf(_entries(3), allow_table_of_contents=False)
    assert _page_count(pdf) == 2


def test_content_tolerates_missing_images():
    entries = [
        toc_entry(b''),
        dashboard_title_entry(b''),
        header_entry(b''),
        panel_entry('p0', 'Panel', b''),
    ]
    pdf = build_content_pdf(entries, allow_table_of_contents=True)
    assert _page_count(pdf) == 2


def test_empty_content_still_renders_a_page():
    assert _page_count(build_content_pdf([], allow_table_of_contents=True)) == 1


def test_mm_to_pt():
    assert mm_to_pt(10) == pytest.approx(28.3465)


def test_assemble_report_orders_pages():
    content = build_content_pdf(_entries(5), allow_table_of_contents=True)
    merged = assemble_report(template_pdf(), content, INFO, TextPositions())

    reader = PdfReader(io.BytesIO(merged))
    assert len(reader.pages) == total_pages(5)
    cover = reader.pages[0].extract_text()
    assert 'Template page 1' in cover
    assert 'Acme Holdings' in cover
    assert 'Sales Overview' in cover
    assert '19.10.2026 @ 14:05' in cover
    assert 'Template page 2' in reader.pages[-1].extract_text()


def test_assemble_report_draws_multiline_tenant():
    info = INFO.model_copy(update={'tenant_name': 'Very Long Organization Name\nWith Second Line'})
    content = build_content_pdf(_entries(1), allow_table_of_contents=True)
    merged = assemble_report(template_pdf(), content, info, TextPositions(), fonts=OverlayFonts())

    cover = PdfReader(io.BytesIO(merged)).pages[0].extract_text()
    assert 'Very Long Organization Name' in cover
    assert 'With Second Line' in cover


def test_assemble_report_requires_two_template_pages():
    content = build_content_pdf(_entries(1), allow_table_of_contents=True)
    with pytest.raises(MergeFailure, match='at least 2 pages'):
        assemble_report(template_pdf(pages=1), content, INFO, TextPositions())


def test_assemble_report_wraps_broken_input():
    with pytest.raises(MergeFailure, match='Failed to assemble'):
        assemble_report(b'not a pdf', b'also not a pdf', INFO, TextPositions())


def test_standard_fonts_without_paths():
    assert resolve_overlay_fonts() == OverlayFonts('Helvetica', 'Helvetica-Bold')


def test_missing_font_file_is_a_merge_failure(tmp_path):
    with pytest.raises(MergeFailure, match='Failed to embed font'):
        resolve_overlay_fonts(regular_path=tmp_path / 'missing.ttf')


def test_tall_titles_keep_page_plan():
    panel_count = 5
    footers = footer_entries([png_bytes(794, 40) for _ in range(total_pages(panel_count) + 1)])
    groups = [
        panel_group(
            index,
            panel_count,
            panel_entry(f'p{index}', f'Panel {index}', png_bytes(955, 540)),
            panel_title_entry(f'p{index}', f'Panel {index}', png_bytes(734, 160)),
        )
        for index in range(panel_count)
    ]
    entries = assemble_entries(
        toc_entry(png_bytes(794, 1123, (255, 255, 255))),
        footers,
        dashboard_title_entry(png_bytes(794, 300)),
        header_entry(png_bytes(400, 120)),
        groups,
    )

    pdf = build_content_pdf(entries, allow_table_of_contents=True)

    assert _page_count(pdf) == total_pages(panel_count) - 2


def test_font_names_follow_configured_path(tmp_path):
    bundled = Path(reportlab.__file__).parent / 'fonts'
    first = tmp_path / 'first.ttf'
    second = tmp_path / 'second.ttf'
    shutil.copyfile(bundled / 'Vera.ttf', first)
    shutil.copyfile(bundled / 'VeraBd.ttf', second)

    initial = resolve_overlay_fonts(regular_path=first)
    changed = resolve_overlay_fonts(regular_path=second)

    assert initial.regular != changed.regular
    assert resolve_overlay_fonts(regular_path=first) == initial
    assert changed.bold == 'Helvetica-Bold'
