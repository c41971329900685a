from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import httpx

from ..errors import AssetUnavailable


logger = logging.getLogger(__name__)

PNG_MAGIC = b'\x89PNG\r\n\x1a\n'
PDF_MAGIC = b'%PDF'


class AssetProvider(Protocol):
    async def get_template(self) -> bytes: ...

    async def get_logo(self) -> bytes: ...


def validate_asset(data: bytes, kind: str, source: str) -> bytes:
    if kind == 'png' and not data.startswith(PNG_MAGIC):
        raise AssetUnavailable(f'Invalid PNG file: {source}')
    if kind == 'pdf' and not data.startswith(PDF_MAGIC):
        raise AssetUnavailable(f'Invalid PDF file: {source}')
    return data


class FileAssetProvider:
    """Reads branding assets from disk, re-reading only when a file changes."""

    def __init__(self, template_path: Path, logo_path: Path | None = None):
        self.template_path = Path(template_path)
        self.logo_path = Path(logo_path) if logo_path else None
        self._cache: dict[Path, tuple[float, bytes]] = {}

    def _read(self, path: Path, kind: str) -> bytes:
        try:
            mtime = path.stat().st_mtime
            cached = self._cache.get(path)
            if cached is not None and mtime <= cached[0]:
                return cached[1]
            data = validate_asset(path.read_bytes(), kind, str(path))
        except AssetUnavailable:
            raise
        except OSError as exc:
            logger.error('File read error: %s', exc)
            raise AssetUnavailable(f'Failed to read {path}: {exc}') from exc
        self._cache[path] = (mtime, data)
        return data

    async def get_template(self) -> bytes:
        return await asyncio.to_thread(self._read, self.template_path, 'pdf')

    async def get_logo(self) -> bytes:
        if self.logo_path is None:
            return b''
        return await asyncio.to_thread(self._read, self.logo_path, 'png')

    def clear_cache(self) -> None:
        self._cache.clear()


@dataclass
class HttpAssetConfig:
    base_url: str
    endpoint: str = '/api/canvas_report_data_analyzer/assets'
    timeout_seconds: int = 30


class HttpAssetProvider:
    """Fetches base64 encoded assets served as ``{"data": "..."}``."""

    def __init__(self, cfg: HttpAssetConfig, *, transport: httpx.AsyncBaseTransport | None = None):
        self.cfg = cfg
        self._transport = transport
        self._logo: bytes | None = None
        self._template: bytes | None = None

    def _url(self, name: str) -> str:
        return f"{self.cfg.base_url.rstrip('/')}/{self.cfg.endpoint.strip('/')}/{name}"

    async def _fetch(self, name: str, kind: str) -> bytes:
        url = self._url(name)
        try:
            async with httpx.AsyncClient(timeout=self.cfg.timeout_seconds, transport=self._transport) as client:
                response = await client.get(url)
            response.raise_for_status()
            payload = response.json()
            data = base64.b64decode(str(payload.get('data') or ''))
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            raise AssetUnavailable(f'Failed to fetch {name}: {exc}') from exc
        return validate_asset(data, kind, url)

    async def get_logo(self) -> bytes:
        if self._logo is None:
            self._logo = await self._fetch('logo', 'png')
        return self._logo

    async def get_template(self) -> bytes:
        if self._template is None:
            self._template = await self._fetch('template', 'pdf')
        return self._template

    def clear_cache(self) -> None:
        self._logo = None
        self._template = None
