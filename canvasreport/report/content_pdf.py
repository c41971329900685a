from __future__ import annotations

import io
import logging
from typing import Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.platypus import Image, KeepTogether, PageBreak, SimpleDocTemplate, Spacer, Table, TableStyle

from ..capture.imaging import image_size
from ..planner import content_footer_index, pair_entries, paginate_pairs
from ..types import VisualizationEntry, VisualizationType


logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
PAGE_PADDING = 40
PAGE_PADDING_BOTTOM = 50
FRAME_WIDTH = PAGE_WIDTH - 2 * PAGE_PADDING
FRAME_HEIGHT = PAGE_HEIGHT - PAGE_PADDING - PAGE_PADDING_BOTTOM
# SimpleDocTemplate frames pad content by 6pt on each side.
FRAME_INNER_WIDTH = FRAME_WIDTH - 12
FRAME_INNER_HEIGHT = FRAME_HEIGHT - 12

LOGO_BOX = (120, 40)
LOGO_OFFSET = (10, 20)
FOOTER_HEIGHT = 30
FOOTER_BOTTOM = 15
FOOTER_LEFT = 20

DASHBOARD_TITLE_MAX_HEIGHT = 110
HEADER_WIDTH = 400
HEADER_MAX_HEIGHT = 45
VISUALIZATION_MAX_HEIGHT = 260
VISUALIZATION_MIN_HEIGHT = 40
VISUALIZATION_PADDING = 8
PANEL_TITLE_MAX_HEIGHT = 48
DIVIDER_HEIGHT = 4
PAIR_GAP_ABOVE = 6
PAIR_GAP_BELOW = 15
BOX_PADDING = VISUALIZATION_PADDING + 10
# Headroom for float rounding in the frame layout.
PAIR_SLACK = 4


def _fitted_image(data: bytes, max_width: float, max_height: float | None = None) -> Image | None:
    if not data:
        return None
    pixel_width, pixel_height = image_size(data)
    if pixel_width <= 0 or pixel_height <= 0:
        return None
    width = max_width
    height = max_width * pixel_height / pixel_width
    if max_height is not None and height > max_height:
        height = max_height
        width = max_height * pixel_width / pixel_height
    return Image(io.BytesIO(data), width=width, height=height)


def _dashboard_title_block(entry: VisualizationEntry | None) -> list:
    if entry is None:
        return []
    image = _fitted_image(entry.data, FRAME_INNER_WIDTH * 0.7, DASHBOARD_TITLE_MAX_HEIGHT)
    block: list = [image] if image is not None else []
    rule = Table([['']], colWidths=[FRAME_INNER_WIDTH], rowHeights=[2])
    rule.setStyle(TableStyle([('LINEBELOW', (0, 0), (-1, -1), 2, colors.HexColor('#c0c0c0'))]))
    block.extend([Spacer(1, 10), rule, Spacer(1, 15)])
    return block


def _header_block(headers: Sequence[VisualizationEntry]) -> list:
    block: list = []
    for entry in headers:
        image = _fitted_image(entry.data, HEADER_WIDTH, HEADER_MAX_HEIGHT)
        if image is not None:
            block.extend([image, Spacer(1, 5)])
    if block:
        block.append(Spacer(1, 8))
    return block


def _block_height(block: Sequence) -> float:
    return sum(flowable.wrap(FRAME_INNER_WIDTH, FRAME_INNER_HEIGHT)[1] for flowable in block)


def _pair_budget(page_index: int, lead_height: float) -> float:
    """Vertical space one title/visualization pair may occupy on a content page."""
    if page_index == 0:
        return FRAME_INNER_HEIGHT - lead_height
    return FRAME_INNER_HEIGHT / 2


def _pair_block(title: VisualizationEntry, visualization: VisualizationEntry, budget: float) -> KeepTogether:
    parts: list = []
    title_height = 0.0
    title_image = _fitted_image(title.data, FRAME_INNER_WIDTH * 0.8 * 0.8, PANEL_TITLE_MAX_HEIGHT)
    if title_image is not None:
        title_image.hAlign = 'LEFT'
        title_height = title_image.drawHeight
        parts.append(title_image)
    divider = Table([['']], colWidths=[FRAME_INNER_WIDTH * 0.8], rowHeights=[DIVIDER_HEIGHT], hAlign='LEFT')
    divider.setStyle(TableStyle([('LINEBELOW', (0, 0), (-1, -1), 1, colors.HexColor('#e0e0e0'))]))
    parts.append(divider)

    fixed = title_height + DIVIDER_HEIGHT + PAIR_GAP_ABOVE + 2 * BOX_PADDING + PAIR_GAP_BELOW + PAIR_SLACK
    chart_height = max(VISUALIZATION_MIN_HEIGHT, min(VISUALIZATION_MAX_HEIGHT, budget - fixed))
    inner_width = FRAME_INNER_WIDTH - 2 * VISUALIZATION_PADDING - 8
    chart = _fitted_image(visualization.data, inner_width, chart_height) or Spacer(1, 20)
    box = Table([[chart]], colWidths=[FRAME_INNER_WIDTH])
    box.setStyle(
        TableStyle(
            [
                ('BOX', (0, 0), (-1, -1), 2, colors.HexColor('#e0e0e0')),
                ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
                ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
                ('TOPPADDING', (0, 0), (-1, -1), BOX_PADDING),
                ('BOTTOMPADDING', (0, 0), (-1, -1), BOX_PADDING),
            ]
        )
    )
    parts.extend([Spacer(1, PAIR_GAP_ABOVE), box, Spacer(1, PAIR_GAP_BELOW)])
    return KeepTogether(parts)


def _draw_image(canvas, data: bytes, x: float, y: float, width: float, height: float) -> None:
    if not data:
        return
    canvas.drawImage(
        ImageReader(io.BytesIO(data)),
        x,
        y,
        width=width,
        height=height,
        preserveAspectRatio=True,
        anchor='c',
        mask='auto',
    )


def build_content_pdf(
    entries: Sequence[VisualizationEntry],
    *,
    allow_table_of_contents: bool,
    logo: bytes | None = None,
) -> bytes:
    """Lay out the ordered entry sequence as A4 content pages."""
    toc = next((entry for entry in entries if entry.type == VisualizationType.table_of_contents), None)
    dashboard_title = next((entry for entry in entries if entry.type == VisualizationType.dashboard_title), None)
    headers = [entry for entry in entries if entry.type == VisualizationType.header]
    footers = [entry for entry in entries if entry.type == VisualizationType.page_footer]
    pages = paginate_pairs(pair_entries(entries))
    with_toc = toc is not None and allow_table_of_contents

    story: list = []
    if with_toc:
        toc_image = _fitted_image(toc.data, FRAME_INNER_WIDTH, FRAME_INNER_HEIGHT)
        story.append(toc_image or Spacer(1, 1))
        if pages:
            story.append(PageBreak())

    for page_index, page_pairs in enumerate(pages):
        if page_index > 0:
            story.append(PageBreak())
        lead: list = []
        if page_index == 0:
            lead = _dashboard_title_block(dashboard_title) + _header_block(headers)
            story.extend(lead)
        budget = _pair_budget(page_index, _block_height(lead))
        for title, visualization in page_pairs:
            story.append(_pair_block(title, visualization, budget))

    if not story:
        story.append(Spacer(1, 1))

    def _on_page(canvas, doc):
        canvas.saveState()
        canvas.setProducer('canvasreport')
        if logo:
            _draw_image(
                canvas,
                logo,
                PAGE_WIDTH - LOGO_OFFSET[0] - LOGO_BOX[0],
                PAGE_HEIGHT - LOGO_OFFSET[1] - LOGO_BOX[1],
                LOGO_BOX[0],
                LOGO_BOX[1],
            )
        page_number = canvas.getPageNumber()
        if with_toc and page_number == 1:
            footer_index = 0
        else:
            content_index = page_number - (2 if with_toc else 1)
            footer_index = content_footer_index(content_index)
        if 0 <= footer_index < len(footers):
            _draw_image(
                canvas,
                footers[footer_index].data,
                FOOTER_LEFT,
                FOOTER_BOTTOM,
                PAGE_WIDTH - FOOTER_LEFT,
                FOOTER_HEIGHT,
            )
        canvas.restoreState()

    buffer = io.BytesIO()
    document = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=PAGE_PADDING,
        rightMargin=PAGE_PADDING,
        topMargin=PAGE_PADDING,
        bottomMargin=PAGE_PADDING_BOTTOM,
        title='Dashboard Report',
    )
    document.build(story, onFirstPage=_on_page, onLaterPages=_on_page)
    logger.info('Rendered content document: %d content pages, toc=%s', len(pages), with_toc)
    return buffer.getvalue()
