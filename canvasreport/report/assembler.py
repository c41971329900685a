from __future__ import annotations

import io
import logging

from pypdf import PdfReader, PdfWriter
from reportlab.lib import colors
from reportlab.pdfgen import canvas as pdf_canvas

from ..errors import MergeFailure
from ..types import ReportInfo, TextPosition, TextPositions
from .fonts import OverlayFonts


logger = logging.getLogger(__name__)

MM_TO_PT = 2.83465
LINE_SPACING = 1.2
MIN_TEMPLATE_PAGES = 2


def mm_to_pt(value: float) -> float:
    return value * MM_TO_PT


def _draw_text(canvas, text: str, position: TextPosition, font_name: str) -> None:
    canvas.setFont(font_name, position.size)
    x = mm_to_pt(position.x)
    y = mm_to_pt(position.y)
    for offset, line in enumerate(text.split('\n')):
        canvas.drawString(x, y - offset * position.size * LINE_SPACING, line)


def cover_overlay(
    page_width: float,
    page_height: float,
    info: ReportInfo,
    positions: TextPositions,
    fonts: OverlayFonts,
) -> bytes:
    buffer = io.BytesIO()
    canvas = pdf_canvas.Canvas(buffer, pagesize=(page_width, page_height))
    canvas.setFillColor(colors.black)
    _draw_text(canvas, info.tenant_name, positions.tenant_name, fonts.bold)
    _draw_text(canvas, info.dashboard_name, positions.dashboard_name, fonts.bold)
    _draw_text(canvas, info.timestamp, positions.timestamp, fonts.regular)
    canvas.showPage()
    canvas.save()
    return buffer.getvalue()


def assemble_report(
    template_pdf: bytes,
    content_pdf: bytes,
    info: ReportInfo,
    positions: TextPositions,
    *,
    fonts: OverlayFonts | None = None,
) -> bytes:
    """Cover page with text overlay, then every content page, then the back page."""
    fonts = fonts or OverlayFonts()
    try:
        template = PdfReader(io.BytesIO(template_pdf))
        if len(template.pages) < MIN_TEMPLATE_PAGES:
            raise MergeFailure(
                f'Template PDF must contain at least {MIN_TEMPLATE_PAGES} pages, found {len(template.pages)}.'
            )
        content = PdfReader(io.BytesIO(content_pdf))

        writer = PdfWriter()
        cover = writer.add_page(template.pages[0])
        overlay = PdfReader(
            io.BytesIO(
                cover_overlay(
                    float(cover.mediabox.width),
                    float(cover.mediabox.height),
                    info,
                    positions,
                    fonts,
                )
            )
        )
        cover.merge_page(overlay.pages[0])

        for page in content.pages:
            writer.add_page(page)
        writer.add_page(template.pages[1])

        output = io.BytesIO()
        writer.write(output)
    except MergeFailure:
        raise
    except Exception as exc:
        raise MergeFailure(f'Failed to assemble report PDF: {exc}') from exc

    logger.info('Assembled report PDF: %d content pages', len(content.pages))
    return output.getvalue()
