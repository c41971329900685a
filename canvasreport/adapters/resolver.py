from __future__ import annotations

import re
from typing import Protocol

from bs4 import BeautifulSoup

from ..dom import text_of


DEFAULT_TENANT_NAME = 'Private'
DEFAULT_DASHBOARD_TITLE = 'Dashboard Report'
MAX_TENANT_NAME_LENGTH = 29

TENANT_SELECTOR = '#tenantName'
ORGANIZATION_SELECTOR = '[data-test-subj="tableDocViewRow-organization.name-value"] span'
VIEWPORT_SELECTOR = '.dshDashboardViewport'
BREADCRUMB_SELECTOR = '[data-test-subj="breadcrumb last"].euiBreadcrumb.euiBreadcrumb--last'

_DISALLOWED_NAME_CHARS = re.compile(r'[^a-zA-Z0-9äüöÄÜÖß.\s]')


class InfoResolver(Protocol):
    async def tenant_name(self) -> str: ...

    async def organization_name(self, tenant_name: str) -> str: ...

    async def dashboard_name(self) -> str: ...


def capitalize_first_letter(value: str) -> str:
    return value[:1].upper() + value[1:].lower()


def format_organization_name(full_text: str) -> str:
    """Strip unsupported characters and break long names onto two lines."""
    sanitized = _DISALLOWED_NAME_CHARS.sub('', full_text)
    if len(sanitized) <= MAX_TENANT_NAME_LENGTH:
        return sanitized
    last_space = sanitized.rfind(' ', 0, MAX_TENANT_NAME_LENGTH + 1)
    if last_space == -1:
        return sanitized
    return f'{sanitized[:last_space]}\n{sanitized[last_space + 1:]}'


def dashboard_title_text(document: BeautifulSoup) -> str:
    return text_of(document.select_one(BREADCRUMB_SELECTOR)) or DEFAULT_DASHBOARD_TITLE


class DomInfoResolver:
    """Reads tenant, organization and dashboard names from the dashboard snapshot."""

    def __init__(self, document: BeautifulSoup):
        self.document = document

    async def tenant_name(self) -> str:
        raw = text_of(self.document.select_one(TENANT_SELECTOR)) or DEFAULT_TENANT_NAME
        return capitalize_first_letter(raw)

    async def organization_name(self, tenant_name: str) -> str:
        raw = text_of(self.document.select_one(ORGANIZATION_SELECTOR)) or tenant_name
        return format_organization_name(raw)

    async def dashboard_name(self) -> str:
        viewport = self.document.select_one(VIEWPORT_SELECTOR)
        if viewport is not None and viewport.get('data-title'):
            return str(viewport['data-title'])
        return dashboard_title_text(self.document)
