from __future__ import annotations

import io
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

from pypdf import PdfReader, PdfWriter

from .config import get_settings
from .types import ReportRecord


logger = logging.getLogger(__name__)

TENANT_KEY = '/Tenant'
ORIGINAL_NAME_KEY = '/OriginalName'


def reports_root() -> Path:
    root = get_settings().report_directory / 'pdf_reports'
    root.mkdir(parents=True, exist_ok=True)
    return root


def events_path() -> Path:
    return reports_root() / 'events.jsonl'


def _safe_file_id(file_id: UUID | str) -> str:
    if isinstance(file_id, UUID):
        return str(file_id)
    token = str(file_id or '').strip()
    if not token:
        raise ValueError('file_id is required')
    try:
        return str(UUID(token))
    except Exception as exc:
        raise ValueError(f'invalid file_id: {file_id}') from exc


def report_path(file_id: UUID | str) -> Path:
    return reports_root() / f'{_safe_file_id(file_id)}.pdf'


def write_bytes_atomic(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + '.tmp')
    tmp.write_bytes(content)
    tmp.replace(path)


def append_event(event: str, **extra: Any) -> None:
    now = datetime.now(timezone.utc).isoformat()
    row = {
        'ts': now,
        'event': event,
        **extra,
    }
    events_file = events_path()
    with events_file.open('a', encoding='utf-8') as f:
        f.write(json.dumps(row, ensure_ascii=False) + '\n')


def inject_metadata(pdf: bytes, *, tenant: str, file_name: str) -> bytes:
    reader = PdfReader(io.BytesIO(pdf))
    writer = PdfWriter()
    writer.append(reader)
    writer.add_metadata({TENANT_KEY: tenant, ORIGINAL_NAME_KEY: file_name})
    output = io.BytesIO()
    writer.write(output)
    return output.getvalue()


def read_metadata(path: Path) -> tuple[str, str]:
    metadata = PdfReader(path).metadata or {}
    return str(metadata.get(TENANT_KEY) or ''), str(metadata.get(ORIGINAL_NAME_KEY) or path.name)


def save_report(pdf: bytes, *, tenant: str, file_name: str) -> ReportRecord:
    file_id = str(uuid4())
    path = report_path(file_id)
    write_bytes_atomic(path, inject_metadata(pdf, tenant=tenant, file_name=file_name))
    path.chmod(0o644)
    append_event('saved', file_id=file_id, name=file_name, tenant=tenant)
    return ReportRecord(file_id=file_id, name=file_name, tenant=tenant, size_bytes=path.stat().st_size)


def list_reports(tenant: str) -> list[ReportRecord]:
    records: list[ReportRecord] = []
    for path in sorted(reports_root().glob('*.pdf')):
        try:
            file_tenant, name = read_metadata(path)
        except Exception as exc:
            logger.error('Error processing %s: %s', path.name, exc)
            continue
        if file_tenant != tenant:
            continue
        stat = path.stat()
        records.append(
            ReportRecord(
                file_id=path.stem,
                name=name,
                tenant=file_tenant,
                size_bytes=stat.st_size,
                created_at=datetime.fromtimestamp(stat.st_ctime, tz=timezone.utc),
            )
        )
    return records


def load_report(file_id: UUID | str) -> bytes:
    path = report_path(file_id)
    if not path.exists():
        raise FileNotFoundError(f'Report not found: {file_id}')
    return path.read_bytes()


def delete_report(file_id: UUID | str) -> None:
    path = report_path(file_id)
    if not path.exists():
        raise FileNotFoundError(f'Report not found: {file_id}')
    path.unlink()
    append_event('deleted', file_id=path.stem)
