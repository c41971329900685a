from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from ..errors import MergeFailure


logger = logging.getLogger(__name__)

STANDARD_REGULAR = 'Helvetica'
STANDARD_BOLD = 'Helvetica-Bold'
CUSTOM_REGULAR = 'CanvasReport-Regular'
CUSTOM_BOLD = 'CanvasReport-Bold'


@dataclass(frozen=True)
class OverlayFonts:
    regular: str = STANDARD_REGULAR
    bold: str = STANDARD_BOLD


def font_name_for(prefix: str, font_path: Path) -> str:
    digest = hashlib.sha1(str(Path(font_path).resolve()).encode('utf-8')).hexdigest()[:10]
    return f'{prefix}-{digest}'


def _register_ttf_font(prefix: str, font_path: Path) -> str:
    font_name = font_name_for(prefix, font_path)
    if font_name in pdfmetrics.getRegisteredFontNames():
        return font_name
    try:
        pdfmetrics.registerFont(TTFont(font_name, str(font_path)))
    except Exception as exc:
        raise MergeFailure(f'Failed to embed font {font_name} from {font_path}: {exc}') from exc
    logger.info('Registered PDF font %s from %s', font_name, font_path)
    return font_name


def resolve_overlay_fonts(
    regular_path: Path | None = None,
    bold_path: Path | None = None,
) -> OverlayFonts:
    regular = _register_ttf_font(CUSTOM_REGULAR, regular_path) if regular_path else STANDARD_REGULAR
    bold = _register_ttf_font(CUSTOM_BOLD, bold_path) if bold_path else STANDARD_BOLD
    return OverlayFonts(regular=regular, bold=bold)
