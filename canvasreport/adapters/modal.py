from __future__ import annotations

import logging
from typing import Protocol

from ..types import ModalKind


logger = logging.getLogger(__name__)


class ModalHost(Protocol):
    def show_modal(self, message: str, kind: ModalKind, percent: int) -> None: ...

    def hide_modal(self) -> None: ...


class LoggingModalHost:
    """Modal host for headless runs: progress goes to the log."""

    def __init__(self) -> None:
        self.visible = False
        self.last_percent = 0

    def show_modal(self, message: str, kind: ModalKind, percent: int) -> None:
        self.visible = True
        self.last_percent = percent
        headline = message.splitlines()[0] if message else ''
        if kind == ModalKind.error:
            logger.error('[%3d%%] %s', percent, headline)
        else:
            logger.info('[%3d%%] %s', percent, headline)

    def hide_modal(self) -> None:
        self.visible = False
        logger.debug('Progress modal dismissed')
