from __future__ import annotations

import asyncio
import logging
from typing import Callable

from bs4 import BeautifulSoup, Tag

from ..config import get_settings
from ..dom import (
    CLONE_ATTR,
    attach,
    clone_element,
    element_box,
    get_style,
    replay_canvas_pixels,
    set_style,
    standalone_html,
)
from ..errors import CaptureFailure, ReportError
from ..types import VisualizationType
from .imaging import snap_near_white
from .preprocess import (
    WATCHED_SELECTORS,
    details_to_tables,
    position_arc_clone,
    position_offscreen,
    preprocess,
    remove_panel_headers,
    strip_decorations,
)
from .profiles import PROFILE_RULES, CaptureProfile, detect_profile
from .renderer import Renderer, RenderRequest


logger = logging.getLogger(__name__)


def _describe(element: Tag) -> str:
    for attr in ('data-test-embeddable-id', 'id', 'data-test-subj'):
        value = element.get(attr)
        if value:
            return f'{element.name}[{attr}={value}]'
    return element.name or 'element'


class CaptureOrchestrator:
    def __init__(
        self,
        renderer: Renderer,
        document: BeautifulSoup,
        *,
        settle_seconds: float | None = None,
        default_scale: float | None = None,
    ):
        settings = get_settings()
        self.renderer = renderer
        self.document = document
        self.settle_seconds = settings.capture_settle_seconds if settle_seconds is None else settle_seconds
        self.default_scale = settings.capture_scale if default_scale is None else default_scale

    def _make_clone(self, original: Tag) -> Tag:
        clone = clone_element(original)
        replay_canvas_pixels(original, clone)
        clone[CLONE_ATTR] = '1'
        return clone

    async def capture(
        self,
        element: Tag | None,
        on_progress: Callable[[], object] | None = None,
        scale: float | None = None,
        kind_hint: VisualizationType | str | None = None,
    ) -> bytes:
        """Rasterize ``element`` through a styled off-screen clone.

        The original element is hidden only for the duration of the call and
        ``on_progress`` fires once whatever the outcome.
        """
        if element is None:
            if on_progress is not None:
                on_progress()
            raise CaptureFailure('Screenshot capture failed: element is missing.')

        requested_scale = self.default_scale if scale is None else scale
        label = _describe(element)
        original_visibility = get_style(element, 'visibility')
        clone: Tag | None = None
        try:
            width, height = element_box(element)
            profile = detect_profile(element)

            set_style(element, {'visibility': 'hidden'})
            clone = self._make_clone(element)
            preprocess(clone, kind_hint)
            position_offscreen(clone, width, height)
            attach(self.document, clone)

            await asyncio.sleep(0)
            strip_decorations(clone)

            if profile == CaptureProfile.arc:
                clone.extract()
                clone = self._make_clone(element)
                details_to_tables(clone)
                remove_panel_headers(clone)
                position_arc_clone(clone, width)
                attach(self.document, clone)

            rules = PROFILE_RULES[profile]
            request = RenderRequest(
                html=standalone_html(self.document, clone),
                profile=profile,
                scale=rules.resolved_scale(requested_scale),
                width=width,
                height=None if profile == CaptureProfile.arc else height,
                background=rules.background,
                use_window_size=rules.use_window_size,
                foreign_object_rendering=rules.foreign_object_rendering,
                ignore_selectors=rules.ignore_selectors,
                bake_transform_selectors=rules.bake_transform_selectors,
                opaque_selectors=rules.opaque_selectors,
                strip_selectors=WATCHED_SELECTORS,
                settle_seconds=self.settle_seconds,
            )
            image = await self.renderer.render(request)
            if rules.snap_near_white:
                image = snap_near_white(image)
            logger.debug('Captured %s with %s profile (%d bytes)', label, profile.value, len(image))
            return image
        except ReportError:
            raise
        except Exception as exc:
            raise CaptureFailure(f'Screenshot capture failed for {label}: {exc}', element_id=label) from exc
        finally:
            if clone is not None:
                clone.extract()
            set_style(element, {'visibility': original_visibility})
            if on_progress is not None:
                on_progress()
