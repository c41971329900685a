from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Sequence

from bs4 import BeautifulSoup, Tag

from .adapters.assets import AssetProvider
from .adapters.modal import ModalHost
from .adapters.resolver import DomInfoResolver, InfoResolver, dashboard_title_text
from .capture.orchestrator import CaptureOrchestrator
from .capture.renderer import Renderer
from .config import Settings, get_settings
from .dom import attach, text_of
from .errors import CaptureFailure, ElementNotFound, MergeFailure, MissingDependency
from .fragments import dashboard_title_fragment, footer_fragment, panel_title_fragment, table_of_contents_fragment
from .layout import normalized_layout
from .panels import (
    NO_TITLE,
    collect_valid_panels,
    declared_title,
    discover_panels,
    header_title,
    is_valid_panel,
    resolve_panel_id,
)
from .phases import PhaseOrchestrator, phase_message
from .planner import (
    assemble_entries,
    dashboard_title_entry,
    footer_entries,
    footer_labels,
    header_entry,
    panel_entry,
    panel_group,
    panel_title_entry,
    toc_entry,
    toc_sections,
    total_pages,
)
from .report.assembler import assemble_report
from .report.content_pdf import build_content_pdf
from .report.fonts import OverlayFonts, resolve_overlay_fonts
from .types import (
    DashboardState,
    ModalKind,
    PanelRecord,
    PhaseKey,
    ReportInfo,
    ReportOutcome,
    ReportStatus,
    TextPosition,
    TextPositions,
    VisualizationEntry,
    VisualizationType,
    utcnow,
)


logger = logging.getLogger(__name__)

TIME_RANGE_SELECTOR = '[data-test-subj="dataSharedTimefilterDuration"]'
TIME_RANGE_DEFAULT = 'Unknown Time Range'
HEADER_SELECTOR = '.euiDatePickerRange.euiDatePickerRange--inGroup'
NO_DASHBOARD_MESSAGE = 'No Dashboard selected. Please go to your Dashboard and try again.'

AUXILIARY_SCALE = 2.0

ContentBuilder = Callable[..., bytes]


def formatted_timestamp(moment: datetime, *, file_safe: bool = False) -> str:
    day = moment.strftime('%d.%m.%Y')
    if file_safe:
        return f"{day}_{moment.strftime('%H-%M')}"
    return f"{day} @ {moment.strftime('%H:%M')}"


def report_file_name(title: str, moment: datetime) -> str:
    stem = re.sub(r'\s+', '_', title)
    return f"{stem}_{formatted_timestamp(moment, file_safe=True)}.pdf"


def gathering_steps(panel_count: int, has_header: bool) -> int:
    # time range, dashboard title, header, two per panel, one per footer
    return 2 + int(has_header) + 2 * panel_count + total_pages(panel_count) + 1


@dataclass
class ReportOptions:
    text_positions: TextPositions
    allow_table_of_contents: bool = True
    organization: str = 'Organization, Inc'

    @classmethod
    def from_settings(cls, settings: Settings) -> ReportOptions:
        return cls(
            text_positions=TextPositions(
                tenant_name=TextPosition(x=settings.tenant_x, y=settings.tenant_y, size=settings.tenant_size),
                dashboard_name=TextPosition(
                    x=settings.dashboard_x, y=settings.dashboard_y, size=settings.dashboard_size
                ),
                timestamp=TextPosition(x=settings.timestamp_x, y=settings.timestamp_y, size=settings.timestamp_size),
            ),
            allow_table_of_contents=settings.allow_table_of_contents,
            organization=settings.organization,
        )


@dataclass
class PipelineTimings:
    layout_settle_seconds: float = 0.3
    layout_restore_settle_seconds: float = 0.1
    capture_settle_seconds: float = 0.5
    modal_dismiss_seconds: float = 3.0

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineTimings:
        return cls(
            layout_settle_seconds=settings.layout_settle_seconds,
            layout_restore_settle_seconds=settings.layout_restore_settle_seconds,
            capture_settle_seconds=settings.capture_settle_seconds,
            modal_dismiss_seconds=settings.modal_dismiss_seconds,
        )


class ReportPipeline:
    def __init__(
        self,
        document: BeautifulSoup | None,
        *,
        renderer: Renderer | None,
        assets: AssetProvider | None,
        modal: ModalHost | None = None,
        resolver: InfoResolver | None = None,
        phases: PhaseOrchestrator | None = None,
        content_builder: ContentBuilder = build_content_pdf,
        fonts: OverlayFonts | None = None,
        timings: PipelineTimings | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        settings = get_settings()
        self.document = document
        self.renderer = renderer
        self.assets = assets
        self.modal = modal
        self.resolver = resolver or (DomInfoResolver(document) if document is not None else None)
        self.phases = phases or PhaseOrchestrator(modal)
        if self.phases.modal is None:
            self.phases.modal = modal
        self.content_builder = content_builder
        self.fonts = fonts
        self.timings = timings or PipelineTimings.from_settings(settings)
        self._settings = settings
        self._now = now
        self._dismissals: set[asyncio.Task] = set()
        self._capture: CaptureOrchestrator | None = None

    def _check_dependencies(self) -> None:
        required = (
            ('dashboard document', self.document),
            ('capture renderer', self.renderer),
            ('asset provider', self.assets),
            ('info resolver', self.resolver),
        )
        for name, value in required:
            if value is None:
                raise MissingDependency(name)

    async def generate(self, options: ReportOptions) -> ReportOutcome:
        """Run every phase in order; any failure ends the run in ``failed``."""
        outcome = ReportOutcome(status=ReportStatus.running)
        try:
            self._check_dependencies()
            self._capture = CaptureOrchestrator(
                self.renderer,
                self.document,
                settle_seconds=self.timings.capture_settle_seconds,
            )
            await self.phases.execute_phase(PhaseKey.initialization, self._initialize)
            state = await self.phases.execute_phase(PhaseKey.data_gathering, lambda: self._gather(options))
            info = await self.phases.execute_phase(PhaseKey.info_retrieval, self._retrieve_info)
            pdf = await self.phases.execute_phase(
                PhaseKey.pdf_generation, lambda: self._generate_pdf(options, state, info)
            )
            await self.phases.execute_phase(PhaseKey.success, self._succeed)
        except Exception as exc:
            self._handle_error(exc)
            outcome.status = ReportStatus.failed
            outcome.error = str(exc) or phase_message(PhaseKey.data_gathering)
            outcome.failed_phase = self.phases.current.phase if self.phases.current else None
            outcome.finished_at = utcnow()
            return outcome

        moment = self._now()
        outcome.status = ReportStatus.succeeded
        outcome.title = state.title
        outcome.file_name = report_file_name(state.title, moment)
        outcome.pdf = pdf
        outcome.finished_at = utcnow()
        return outcome

    def _handle_error(self, exc: Exception) -> None:
        logger.error('PDF generation failed: %s', exc, exc_info=exc)
        message = str(exc) or phase_message(PhaseKey.data_gathering)
        self.phases.show(message, ModalKind.error, 0)
        self._schedule_dismissal()

    def _schedule_dismissal(self) -> None:
        if self.modal is None:
            return
        task = asyncio.create_task(self._dismiss_after(self.timings.modal_dismiss_seconds))
        self._dismissals.add(task)
        task.add_done_callback(self._dismissals.discard)

    async def _dismiss_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self.modal is not None:
            self.modal.hide_modal()

    async def drain(self) -> None:
        """Wait for scheduled modal dismissals."""
        if self._dismissals:
            await asyncio.gather(*list(self._dismissals))

    async def _initialize(self) -> None:
        self.phases.update_progress(PhaseKey.initialization, 0)

    async def _succeed(self) -> None:
        self.phases.show(phase_message(PhaseKey.success), ModalKind.success, 100)
        self._schedule_dismissal()

    async def _gather(self, options: ReportOptions) -> DashboardState:
        document = self.document
        printable = sum(1 for panel in discover_panels(document) if is_valid_panel(panel))
        has_header = document.select_one(HEADER_SELECTOR) is not None
        step = self.phases.progress_handler(PhaseKey.data_gathering, gathering_steps(printable, has_header))

        title = dashboard_title_text(document)
        time_range = self._time_range(step)
        records = collect_valid_panels(document)

        async with normalized_layout(
            records,
            settle_seconds=self.timings.layout_settle_seconds,
            restore_settle_seconds=self.timings.layout_restore_settle_seconds,
        ):
            title_image = await self._capture_dashboard_title(title, step)
            header_image = await self._capture_header(step)
            groups = await self._capture_panels(records, step)
            pages_total = total_pages(len(records))
            footer_images = await self._capture_footers(options, title, pages_total, step)
            toc_image = await self._capture_toc(records, pages_total)

        entries = assemble_entries(
            toc_entry(toc_image),
            footer_entries(footer_images),
            dashboard_title_entry(title_image),
            header_entry(header_image),
            groups,
        )
        logger.info('Collected %d entries for %d panels (%d pages)', len(entries), len(records), pages_total)
        return DashboardState(
            title=title,
            time_range=time_range,
            timestamp=utcnow().isoformat(),
            visualizations=entries,
        )

    def _time_range(self, step: Callable[[], int]) -> str:
        element = self.document.select_one(TIME_RANGE_SELECTOR)
        time_range = text_of(element) or TIME_RANGE_DEFAULT
        step()
        if element is None:
            raise ElementNotFound(NO_DASHBOARD_MESSAGE, selector=TIME_RANGE_SELECTOR)
        return time_range

    async def _retrieve_info(self) -> ReportInfo:
        step = self.phases.progress_handler(PhaseKey.info_retrieval, 3)

        async def _tenant() -> str:
            name = await self.resolver.tenant_name()
            step()
            return name

        async def _dashboard() -> str:
            name = await self.resolver.dashboard_name()
            step()
            return name

        tenant_name, dashboard_name = await asyncio.gather(_tenant(), _dashboard())
        complete_name = await self.resolver.organization_name(tenant_name)
        step()
        return ReportInfo(
            tenant_name=complete_name,
            dashboard_name=dashboard_name,
            timestamp=formatted_timestamp(self._now()),
        )

    async def _generate_pdf(self, options: ReportOptions, state: DashboardState, info: ReportInfo) -> bytes:
        step = self.phases.progress_handler(PhaseKey.pdf_generation, len(state.visualizations))

        async def _template() -> bytes:
            data = await self.assets.get_template()
            step()
            return data

        async def _content() -> bytes:
            logo = await self.assets.get_logo()
            try:
                data = await asyncio.to_thread(
                    self.content_builder,
                    state.visualizations,
                    allow_table_of_contents=options.allow_table_of_contents,
                    logo=logo or None,
                )
            except Exception as exc:
                raise MergeFailure(f'Failed to render report content: {exc}') from exc
            step()
            return data

        template, content = await asyncio.gather(_template(), _content())
        fonts = self.fonts or resolve_overlay_fonts(
            self._settings.pdf_regular_font_path,
            self._settings.pdf_bold_font_path,
        )
        merged = assemble_report(template, content, info, options.text_positions, fonts=fonts)
        for _ in state.visualizations:
            step()
        return merged

    async def _capture_fragment(
        self,
        fragment: Tag,
        *,
        label: str,
        on_progress: Callable[[], object] | None = None,
        scale: float | None = None,
        kind: VisualizationType | None = None,
    ) -> bytes:
        attach(self.document, fragment)
        try:
            return await self._capture.capture(fragment, on_progress, scale, kind)
        except CaptureFailure as exc:
            logger.warning('%s capture failed: %s', label, exc)
            return b''
        finally:
            fragment.extract()

    async def _capture_dashboard_title(self, title: str, step: Callable[[], int]) -> bytes:
        return await self._capture_fragment(
            dashboard_title_fragment(title),
            label='Dashboard title',
            on_progress=step,
            scale=AUXILIARY_SCALE,
            kind=VisualizationType.dashboard_title,
        )

    async def _capture_header(self, step: Callable[[], int]) -> bytes:
        element = self.document.select_one(HEADER_SELECTOR)
        if element is None:
            return b''
        return await self._capture.capture(element, step, AUXILIARY_SCALE, VisualizationType.header)

    async def _capture_panel_title(self, panel: Tag, panel_id: str) -> VisualizationEntry:
        data_title = declared_title(panel) or NO_TITLE
        data = await self._capture_fragment(panel_title_fragment(data_title), label=f'Title of {panel_id}')
        return panel_title_entry(panel_id, data_title, data)

    async def _capture_panel(
        self,
        index: int,
        record: PanelRecord,
        panel_count: int,
        step: Callable[[], int],
    ) -> list[VisualizationEntry]:
        panel = record.element
        panel_id = resolve_panel_id(panel)
        screenshot = await self._capture.capture(panel, step)
        step()
        title = await self._capture_panel_title(panel, panel_id)
        return panel_group(index, panel_count, panel_entry(panel_id, header_title(panel), screenshot), title)

    async def _capture_panels(
        self,
        records: Sequence[PanelRecord],
        step: Callable[[], int],
    ) -> list[list[VisualizationEntry]]:
        results = await asyncio.gather(
            *(self._capture_panel(index, record, len(records), step) for index, record in enumerate(records)),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                if isinstance(result, CaptureFailure):
                    raise result
                raise CaptureFailure(f'Panel capture failed: {result}') from result
        return list(results)

    async def _capture_footers(
        self,
        options: ReportOptions,
        title: str,
        pages_total: int,
        step: Callable[[], int],
    ) -> list[bytes]:
        today: date = self._now().date()
        images: list[bytes] = []
        for label in footer_labels(pages_total, options.allow_table_of_contents):
            fragment = footer_fragment(label, title=title, organization=options.organization, on=today)
            images.append(
                await self._capture_fragment(
                    fragment,
                    label=f'Footer {label.page_index}',
                    on_progress=step,
                    scale=AUXILIARY_SCALE,
                )
            )
        return images

    async def _capture_toc(self, records: Sequence[PanelRecord], pages_total: int) -> bytes:
        sections = toc_sections([record.title for record in records], pages_total)
        return await self._capture_fragment(
            table_of_contents_fragment(sections),
            label='Table of contents',
            scale=AUXILIARY_SCALE,
            kind=VisualizationType.table_of_contents,
        )
