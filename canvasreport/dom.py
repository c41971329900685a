from __future__ import annotations

import copy
import re
from typing import Iterable

from bs4 import BeautifulSoup, Tag


PIXELS_ATTR = 'data-pixels'
CLONE_ATTR = 'data-capture-clone'

_PX_RE = re.compile(r'^\s*(-?\d+(?:\.\d+)?)\s*px\s*$', re.IGNORECASE)


def load_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, 'html.parser')


def parse_style(tag: Tag) -> dict[str, str]:
    raw = str(tag.get('style') or '')
    styles: dict[str, str] = {}
    for chunk in raw.split(';'):
        if ':' not in chunk:
            continue
        name, _, value = chunk.partition(':')
        name = name.strip().lower()
        if name:
            styles[name] = value.strip()
    return styles


def write_style(tag: Tag, styles: dict[str, str]) -> None:
    rendered = '; '.join(f'{name}: {value}' for name, value in styles.items() if value != '')
    if rendered:
        tag['style'] = rendered
    elif tag.has_attr('style'):
        del tag['style']


def get_style(tag: Tag, name: str) -> str:
    return parse_style(tag).get(name, '')


def set_style(tag: Tag, values: dict[str, str]) -> None:
    """Merge inline style properties; an empty value removes the property."""
    styles = parse_style(tag)
    for name, value in values.items():
        if value == '':
            styles.pop(name, None)
        else:
            styles[name] = value
    write_style(tag, styles)


def snapshot_style(tag: Tag, properties: Iterable[str]) -> dict[str, str]:
    styles = parse_style(tag)
    return {name: styles.get(name, '') for name in properties}


def closest(tag: Tag, selector: str) -> Tag | None:
    return tag.css.closest(selector)


def text_of(tag: Tag | None) -> str:
    if tag is None:
        return ''
    return tag.get_text(' ', strip=True)


def px(value: str) -> float | None:
    match = _PX_RE.match(value or '')
    if not match:
        return None
    return float(match.group(1))


def element_box(tag: Tag) -> tuple[float | None, float | None]:
    """Best-known layout box of an element from inline geometry, None where unknown."""
    candidates = [tag]
    grid_cell = closest(tag, '.react-grid-item')
    if grid_cell is not None and grid_cell is not tag:
        candidates.append(grid_cell)
    width = height = None
    for candidate in candidates:
        styles = parse_style(candidate)
        if width is None:
            width = px(styles.get('width', ''))
        if height is None:
            height = px(styles.get('height', ''))
    return width, height


def clone_element(tag: Tag) -> Tag:
    """Deep structural copy. Canvas pixel buffers are not part of the structure."""
    clone = copy.copy(tag)
    for canvas in clone.find_all('canvas'):
        if canvas.has_attr(PIXELS_ATTR):
            del canvas[PIXELS_ATTR]
    return clone


def replay_canvas_pixels(original: Tag, clone: Tag) -> int:
    replayed = 0
    for source, target in zip(original.find_all('canvas'), clone.find_all('canvas')):
        for attr in ('width', 'height'):
            if source.has_attr(attr):
                target[attr] = source[attr]
        if source.has_attr(PIXELS_ATTR):
            target[PIXELS_ATTR] = source[PIXELS_ATTR]
            replayed += 1
    return replayed


def attach(document: BeautifulSoup, tag: Tag) -> None:
    container = document.body or document
    container.append(tag)


def standalone_html(document: BeautifulSoup, fragment: Tag) -> str:
    """Wrap a fragment with the document's stylesheets so it renders on its own."""
    head_parts: list[str] = ['<meta charset="utf-8">']
    head = document.head
    if head is not None:
        for node in head.find_all(['style', 'link']):
            if node.name == 'link' and 'stylesheet' not in (node.get('rel') or []):
                continue
            head_parts.append(str(node))
    return (
        '<!DOCTYPE html><html><head>'
        + ''.join(head_parts)
        + '</head><body style="margin: 0; background: transparent">'
        + str(fragment)
        + '</body></html>'
    )


def has_child_nodes(tag: Tag) -> bool:
    return next(iter(tag.children), None) is not None
