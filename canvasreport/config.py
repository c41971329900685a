from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        env_prefix='CANVASREPORT_',
        case_sensitive=False,
        extra='ignore',
    )

    app_name: str = 'Canvas Report Generator'

    report_directory: Path = Field(
        default=Path('/var/tmp/osd-reports'),
        validation_alias=AliasChoices('CANVASREPORT_REPORT_DIRECTORY', 'REPORT_DIRECTORY'),
    )

    # Branding assets. Local paths win over the remote asset endpoint.
    template_path: Path | None = None
    logo_path: Path | None = None
    assets_base_url: str | None = None
    assets_endpoint: str = '/api/canvas_report_data_analyzer/assets'
    assets_timeout_seconds: int = 30

    # Cover page text
    organization: str = 'Organization, Inc'
    allow_table_of_contents: bool = True
    tenant_x: float = 20
    tenant_y: float = 140
    tenant_size: float = 42
    dashboard_x: float = 20
    dashboard_y: float = 120
    dashboard_size: float = 28
    timestamp_x: float = 20
    timestamp_y: float = 55
    timestamp_size: float = 28

    # Optional TTF faces for the cover overlay; standard Helvetica otherwise
    pdf_regular_font_path: Path | None = None
    pdf_bold_font_path: Path | None = None

    # Capture timings, seconds
    layout_settle_seconds: float = 0.3
    layout_restore_settle_seconds: float = 0.1
    capture_settle_seconds: float = 0.5
    capture_scale: float = 1.5
    modal_dismiss_seconds: float = 3.0

    # Headless browser used to rasterize captures
    browser_viewport_width: int = 1920
    browser_viewport_height: int = 1080
    browser_headless: bool = True

    def validate_asset_paths(self) -> None:
        if self.logo_path is not None and self.logo_path.suffix.lower() != '.png':
            raise ValueError(f'logo_path must point to a .png file: {self.logo_path}')
        if self.template_path is not None and self.template_path.suffix.lower() != '.pdf':
            raise ValueError(f'template_path must point to a .pdf file: {self.template_path}')


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    settings.validate_asset_paths()
    return settings
