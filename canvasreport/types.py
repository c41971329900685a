from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PhaseKey(str, Enum):
    initialization = 'initialization'
    data_gathering = 'data_gathering'
    info_retrieval = 'info_retrieval'
    pdf_generation = 'pdf_generation'
    success = 'success'


PHASE_ORDER: tuple[PhaseKey, ...] = tuple(PhaseKey)

PHASE_WEIGHTS: dict[PhaseKey, float] = {
    PhaseKey.initialization: 0.05,
    PhaseKey.data_gathering: 0.65,
    PhaseKey.info_retrieval: 0.20,
    PhaseKey.pdf_generation: 0.05,
    PhaseKey.success: 0.05,
}


class ModalKind(str, Enum):
    loading = 'loading'
    error = 'error'
    success = 'success'


class ReportStatus(str, Enum):
    pending = 'pending'
    running = 'running'
    succeeded = 'succeeded'
    failed = 'failed'


class VisualizationType(str, Enum):
    table_of_contents = 'TableOfContents'
    dashboard_title = 'DashboardTitle'
    header = 'Header'
    visualization = 'Visualization'
    visualization_title = 'visualizationTitle'
    page_break = 'PageBreak'
    page_footer = 'PageFooter'


class PhaseTracking(BaseModel):
    phase: PhaseKey
    start_time: datetime = Field(default_factory=utcnow)
    historical_durations: list[float] = Field(default_factory=list)


class TextPosition(BaseModel):
    x: float = Field(ge=0, le=210)
    y: float = Field(ge=0, le=297)
    size: float = Field(ge=8, le=102)


class TextPositions(BaseModel):
    tenant_name: TextPosition = Field(default_factory=lambda: TextPosition(x=20, y=140, size=42))
    dashboard_name: TextPosition = Field(default_factory=lambda: TextPosition(x=20, y=120, size=28))
    timestamp: TextPosition = Field(default_factory=lambda: TextPosition(x=20, y=55, size=28))


class VisualizationEntry(BaseModel):
    id: str
    title: str
    type: VisualizationType
    data: bytes = b''
    page_number: int | None = None

    @property
    def has_image(self) -> bool:
        return bool(self.data)


class PanelRecord(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    element: Any
    title: str
    panel_id: str


class DashboardState(BaseModel):
    title: str
    time_range: str
    timestamp: str
    visualizations: list[VisualizationEntry] = Field(default_factory=list)


class ReportInfo(BaseModel):
    tenant_name: str
    dashboard_name: str
    timestamp: str


class ReportOutcome(BaseModel):
    status: ReportStatus
    title: str | None = None
    file_name: str | None = None
    pdf: bytes | None = None
    error: str | None = None
    failed_phase: PhaseKey | None = None
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: datetime | None = None

    @property
    def ok(self) -> bool:
        return self.status == ReportStatus.succeeded


class ReportRecord(BaseModel):
    file_id: str
    name: str
    tenant: str
    size_bytes: int = 0
    created_at: datetime = Field(default_factory=utcnow)
