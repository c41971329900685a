from __future__ import annotations

import io
from html import escape
from typing import Callable

import pytest
from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas as pdf_canvas

from canvasreport.capture.renderer import RenderRequest
from canvasreport.config import get_settings
from canvasreport.types import ModalKind


def png_bytes(width: int = 200, height: int = 100, color: tuple[int, ...] = (30, 90, 200)) -> bytes:
    mode = 'RGBA' if len(color) == 4 else 'RGB'
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format='PNG')
    return buffer.getvalue()


def template_pdf(pages: int = 2) -> bytes:
    buffer = io.BytesIO()
    canvas = pdf_canvas.Canvas(buffer, pagesize=A4)
    for index in range(pages):
        canvas.drawString(72, 720, f'Template page {index + 1}')
        canvas.showPage()
    canvas.save()
    return buffer.getvalue()


class FakeRenderer:
    """Returns a solid PNG sized like the requested box."""

    def __init__(self, fail_when: Callable[[RenderRequest], bool] | None = None):
        self.requests: list[RenderRequest] = []
        self.fail_when = fail_when

    async def render(self, request: RenderRequest) -> bytes:
        self.requests.append(request)
        if self.fail_when is not None and self.fail_when(request):
            raise RuntimeError('renderer exploded')
        width = max(1, int(request.width or 400))
        height = max(1, int(request.height or 40))
        return png_bytes(width, height)


class RecordingModal:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def show_modal(self, message: str, kind: ModalKind, percent: int) -> None:
        self.calls.append(('show', message, kind, percent))

    def hide_modal(self) -> None:
        self.calls.append(('hide',))

    @property
    def shows(self) -> list[tuple]:
        return [call for call in self.calls if call[0] == 'show']


class StaticAssets:
    def __init__(self, template: bytes | None = None, logo: bytes = b''):
        self.template = template_pdf() if template is None else template
        self.logo = logo

    async def get_template(self) -> bytes:
        return self.template

    async def get_logo(self) -> bytes:
        return self.logo


GRID_STYLE = 'top: 0px; left: 0px; width: 600px; height: 300px; position: absolute'
PANEL_STYLE = 'width: 600px; height: 300px'


def panel_html(
    panel_id: str,
    title: str,
    *,
    body: str | None = None,
    data_title: str | None = None,
    grid_style: str = GRID_STYLE,
) -> str:
    if body is None:
        body = (
            '<div class="visChart"><div class="visAxis--y"></div>'
            f'<canvas width="10" height="10" data-pixels="pixels-{panel_id}"></canvas></div>'
        )
    declared = escape(data_title if data_title is not None else title, quote=True)
    return (
        f'<div class="react-grid-item" style="{grid_style}">'
        f'<div class="embPanel" data-test-embeddable-id="{panel_id}" style="{PANEL_STYLE}">'
        '<figcaption class="embPanel__header">'
        f'<span class="embPanel__titleText">{escape(title)}</span>'
        '</figcaption>'
        f'<div class="visualization" data-title="{declared}">{body}</div>'
        '</div>'
        '</div>'
    )


def dashboard_html(
    panels: list[str],
    *,
    title: str = 'Sales Overview',
    tenant: str = 'acme',
    organization: str | None = 'Acme Holdings',
    with_time_range: bool = True,
    with_header: bool = True,
) -> str:
    parts = [
        '<html><head><style>.embPanel { font-family: Arial; }</style></head><body>',
        f'<span id="tenantName">{escape(tenant)}</span>',
        f'<span data-test-subj="breadcrumb last" class="euiBreadcrumb euiBreadcrumb--last">{escape(title)}</span>',
    ]
    if organization is not None:
        parts.append(
            '<div data-test-subj="tableDocViewRow-organization.name-value">'
            f'<span>{escape(organization)}</span></div>'
        )
    if with_time_range:
        parts.append('<div data-test-subj="dataSharedTimefilterDuration">Last 15 minutes</div>')
    if with_header:
        parts.append(
            '<div class="euiDatePickerRange euiDatePickerRange--inGroup">'
            '<button class="euiSuperDatePicker__prettyFormat">Last 15 minutes'
            '<span class="euiSuperDatePicker__prettyFormatLink">Show dates</span></button>'
            '</div>'
        )
    parts.append(f'<div class="dshDashboardViewport">{"".join(panels)}</div>')
    parts.append('</body></html>')
    return ''.join(parts)


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv('CANVASREPORT_REPORT_DIRECTORY', str(tmp_path / 'reports'))
    for name in (
        'LAYOUT_SETTLE_SECONDS',
        'LAYOUT_RESTORE_SETTLE_SECONDS',
        'CAPTURE_SETTLE_SECONDS',
        'MODAL_DISMISS_SECONDS',
    ):
        monkeypatch.setenv(f'CANVASREPORT_{name}', '0')
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def modal() -> RecordingModal:
    return RecordingModal()
