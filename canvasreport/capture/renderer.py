from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Protocol

from playwright.async_api import Browser, Playwright, async_playwright

from ..dom import CLONE_ATTR
from .profiles import CaptureProfile


logger = logging.getLogger(__name__)


@dataclass
class RenderRequest:
    html: str
    profile: CaptureProfile
    scale: float
    width: float | None = None
    height: float | None = None
    background: str | None = '#ffffff'
    use_window_size: bool = False
    foreign_object_rendering: bool = True
    ignore_selectors: tuple[str, ...] = ()
    bake_transform_selectors: tuple[str, ...] = ()
    opaque_selectors: tuple[str, ...] = ()
    strip_selectors: tuple[str, ...] = field(default_factory=tuple)
    settle_seconds: float = 0.0


class Renderer(Protocol):
    async def render(self, request: RenderRequest) -> bytes:
        """Rasterize the tagged clone in ``request.html`` to PNG bytes.

        Nodes matching ``request.strip_selectors`` that appear while the page
        settles must be gone before the image is taken.
        """
        ...


_WATCH_SCRIPT = """
(selectors) => {
  const strip = (root) => selectors.forEach((selector) => {
    root.querySelectorAll(selector).forEach((node) => node.remove());
  });
  strip(document);
  const observer = new MutationObserver((mutations) => {
    mutations.forEach((mutation) => mutation.addedNodes.forEach((node) => {
      if (node instanceof HTMLElement) {
        selectors.forEach((selector) => {
          if (node.matches(selector)) node.remove();
        });
        strip(node);
      }
    }));
  });
  observer.observe(document.body, { childList: true, subtree: true });
  window.__captureObserver = observer;
}
"""

_PAINT_CANVASES_SCRIPT = """
() => Promise.all(Array.from(document.querySelectorAll('canvas[data-pixels]')).map((canvas) =>
  new Promise((resolve) => {
    const image = new Image();
    image.onload = () => {
      const context = canvas.getContext('2d');
      if (context) context.drawImage(image, 0, 0);
      resolve();
    };
    image.onerror = () => resolve();
    image.src = canvas.getAttribute('data-pixels');
  })
))
"""

_PREPARE_TARGET_SCRIPT = """
({ selector, background, ignore, bake, opaque }) => {
  const target = document.querySelector(selector);
  if (!target) return false;
  target.style.position = 'relative';
  target.style.left = '0';
  target.style.top = '0';
  target.style.zIndex = 'auto';
  if (background) target.style.backgroundColor = background;
  ignore.forEach((sel) => target.querySelectorAll(sel).forEach((node) => {
    node.style.visibility = 'hidden';
  }));
  bake.forEach((sel) => target.querySelectorAll(sel).forEach((node) => {
    node.style.transform = window.getComputedStyle(node).transform;
  }));
  opaque.forEach((sel) => target.querySelectorAll(sel).forEach((node) => {
    node.style.opacity = '1';
  }));
  return true;
}
"""

_FINISH_SCRIPT = """
(selectors) => {
  if (window.__captureObserver) window.__captureObserver.disconnect();
  selectors.forEach((selector) => {
    document.querySelectorAll(selector).forEach((node) => node.remove());
  });
}
"""


class PlaywrightRenderer:
    """Renders capture clones in headless Chromium."""

    def __init__(
        self,
        *,
        viewport_width: int = 1920,
        viewport_height: int = 1080,
        headless: bool = True,
    ):
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.headless = headless
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    async def _ensure_browser(self) -> Browser:
        async with self._lock:
            if self._browser is None:
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(headless=self.headless)
                logger.info('Launched Chromium for captures (headless=%s)', self.headless)
            return self._browser

    def _viewport(self, request: RenderRequest) -> dict[str, int]:
        width = self.viewport_width
        height = self.viewport_height
        if not request.use_window_size:
            if request.width:
                width = max(width, math.ceil(request.width))
            if request.height:
                height = max(height, math.ceil(request.height))
        return {'width': width, 'height': height}

    async def render(self, request: RenderRequest) -> bytes:
        browser = await self._ensure_browser()
        logger.debug(
            'Rendering %s capture at scale %.1f (foreign objects %s)',
            request.profile.value,
            request.scale,
            'on' if request.foreign_object_rendering else 'off',
        )
        context = await browser.new_context(
            viewport=self._viewport(request),
            device_scale_factor=request.scale,
        )
        try:
            page = await context.new_page()
            await page.set_content(request.html, wait_until='load')
            await page.evaluate(_WATCH_SCRIPT, list(request.strip_selectors))
            await page.evaluate(_PAINT_CANVASES_SCRIPT)
            await page.evaluate('() => document.fonts.ready.then(() => true)')
            if request.settle_seconds > 0:
                await page.wait_for_timeout(request.settle_seconds * 1000)
            selector = f'[{CLONE_ATTR}]'
            found = await page.evaluate(
                _PREPARE_TARGET_SCRIPT,
                {
                    'selector': selector,
                    'background': request.background,
                    'ignore': list(request.ignore_selectors),
                    'bake': list(request.bake_transform_selectors),
                    'opaque': list(request.opaque_selectors),
                },
            )
            if not found:
                raise RuntimeError('capture target is missing from the rendered page')
            await page.evaluate(_FINISH_SCRIPT, list(request.strip_selectors))
            return await page.locator(selector).first.screenshot(
                type='png',
                omit_background=request.background is None,
            )
        finally:
            await context.close()

    async def aclose(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
