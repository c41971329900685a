from __future__ import annotations

from datetime import date
from html import escape
from typing import Sequence

from bs4 import Tag

from .dom import load_document
from .planner import FooterLabel, TocSection


PAGE_WIDTH_PX = 794
PAGE_HEIGHT_PX = 1123
CONTENT_WIDTH_PX = PAGE_WIDTH_PX - 60
FOOTER_HEIGHT_PX = 40

OFFSCREEN = 'position: absolute; left: -9999px; top: -9999px'

DASHBOARD_TITLE_STYLES = (
    "font-family: 'Arial', sans-serif; font-size: 48px; font-weight: 900; color: #000000; "
    'text-align: center; padding: 40px 0; margin: 0 auto; width: 100%; background: white; '
    'letter-spacing: 1px; text-shadow: 1px 1px 2px rgba(0,0,0,0.1)'
)


def _fragment(markup: str) -> Tag:
    tag = load_document(markup).find(True)
    assert tag is not None
    return tag


def german_date(value: date) -> str:
    return f'{value.day}.{value.month}.{value.year}'


def dashboard_title_fragment(title: str) -> Tag:
    return _fragment(
        f'<div style="{OFFSCREEN}; background: white; box-sizing: border-box; '
        f'width: {PAGE_WIDTH_PX}px; padding: 30px 0">'
        f'<div><div style="{DASHBOARD_TITLE_STYLES}">{escape(title)}</div></div>'
        '</div>'
    )


def panel_title_fragment(title: str) -> Tag:
    return _fragment(
        f'<div style="{OFFSCREEN}; color: #000; font-family: Arial, sans-serif; margin: 0; '
        f'width: {CONTENT_WIDTH_PX}px; max-width: {CONTENT_WIDTH_PX}px; white-space: pre-line; '
        'font-size: 28px; word-wrap: break-word; line-height: 1.4; text-align: left; '
        'background-color: #ffffff; box-sizing: border-box; z-index: 1">'
        f'{escape(title)}</div>'
    )


def _toc_row(section: TocSection, emphasized: bool) -> str:
    margin = '24px' if emphasized else '8px'
    color = '#0055A6' if emphasized else '#444'
    weight = 'font-weight: 600;' if emphasized else ''
    divider = '' if emphasized else '<div style="border-bottom: 1px solid #eee; margin: 8px 0"></div>'
    return (
        f'<div style="margin: {margin} 0; font-size: 12px">'
        '<div style="display: flex; justify-content: space-between; align-items: center">'
        f'<span style="color: {color}; {weight}">{escape(section.title)}</span>'
        '<div style="flex-grow: 1; border-bottom: 1px dotted #ddd; margin: 0 12px"></div>'
        f'<span style="color: #666; min-width: 40px; text-align: right">{section.page}</span>'
        '</div>'
        f'{divider}'
        '</div>'
    )


def table_of_contents_fragment(sections: Sequence[TocSection]) -> Tag:
    last = len(sections) - 1
    rows = ''.join(_toc_row(section, index <= 1 or index == last) for index, section in enumerate(sections))
    return _fragment(
        f'<div style="{OFFSCREEN}; width: {PAGE_WIDTH_PX}px; height: {PAGE_HEIGHT_PX}px; padding: 50px; '
        'background-color: #ffffff; box-sizing: border-box; font-family: Arial, sans-serif">'
        '<div style="margin-bottom: 40px">'
        '<h1 style="font-size: 32px; color: #0055A6; border-bottom: 1px solid #0055A6; '
        'padding-bottom: 8px; margin-bottom: 24px">Report Contents</h1>'
        f'<div style="margin-top: 30px">{rows}</div>'
        '</div>'
        '</div>'
    )


def footer_fragment(label: FooterLabel, *, title: str, organization: str, on: date) -> Tag:
    return _fragment(
        f'<div style="{OFFSCREEN}; width: {PAGE_WIDTH_PX}px; height: {FOOTER_HEIGHT_PX}px; overflow: hidden">'
        '<div style="display: flex; justify-content: space-between; align-items: center; '
        f'width: {PAGE_WIDTH_PX}px; height: {FOOTER_HEIGHT_PX}px; padding: 0 40px; '
        'background-color: #f8f8f8; box-sizing: border-box; font-family: Arial, sans-serif">'
        '<div style="display: flex; gap: 8px; font-size: 10px; color: #555; align-items: center">'
        f'<span>{escape(title)}</span><span style="color: #ccc">|</span>'
        f'<span>{escape(organization)}</span><span style="color: #ccc">|</span>'
        f'<span>{german_date(on)}</span>'
        '</div>'
        f'<div style="font-size: 10px; color: #888">{escape(label.text)}</div>'
        '</div>'
        '</div>'
    )
