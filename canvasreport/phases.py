from __future__ import annotations

import logging
import math
import time
from collections import deque
from typing import Awaitable, Callable, TypeVar

from .adapters.modal import ModalHost
from .types import PHASE_ORDER, PHASE_WEIGHTS, ModalKind, PhaseKey, PhaseTracking


logger = logging.getLogger(__name__)

T = TypeVar('T')

HISTORY_SIZE = 10

PHASE_MESSAGES: dict[PhaseKey, tuple[str, bool]] = {
    PhaseKey.initialization: ('Starting report generation...', False),
    PhaseKey.data_gathering: (
        'Hang tight! We’re gathering your dashboard data... \n\n'
        'This might take a moment – why not grab a coffee in the meantime?\n\n'
        'Please keep the window open while we finish creating your PDF report.',
        False,
    ),
    PhaseKey.info_retrieval: ('Retrieving information...', False),
    PhaseKey.pdf_generation: ('Generating PDF content...', False),
    PhaseKey.success: ('Report generated successfully!', True),
}


def phase_message(phase: PhaseKey) -> str:
    return PHASE_MESSAGES[phase][0]


def calculate_progress(phase: PhaseKey, phase_progress: float) -> int:
    clamped = min(1.0, max(0.0, float(phase_progress)))
    accumulated = 0.0
    for key in PHASE_ORDER:
        if key == phase:
            break
        accumulated += PHASE_WEIGHTS[key]
    value = (accumulated + PHASE_WEIGHTS[phase] * clamped) * 100
    # Round half up.
    return int(math.floor(value + 0.5))


class PhaseOrchestrator:
    def __init__(
        self,
        modal: ModalHost | None = None,
        *,
        history_size: int = HISTORY_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.modal = modal
        self._clock = clock
        self._history: dict[PhaseKey, deque[float]] = {
            phase: deque(maxlen=history_size) for phase in PHASE_ORDER
        }
        self.current: PhaseTracking | None = None

    def calculate_progress(self, phase: PhaseKey, phase_progress: float) -> int:
        return calculate_progress(phase, phase_progress)

    def history(self, phase: PhaseKey) -> list[float]:
        return list(self._history[phase])

    def estimated_duration_ms(self, phase: PhaseKey) -> float | None:
        durations = self._history[phase]
        if not durations:
            return None
        return sum(durations) / len(durations)

    def show(self, message: str, kind: ModalKind, percent: float) -> None:
        if self.modal is None:
            return
        self.modal.show_modal(message, kind, max(0, min(100, int(percent))))

    def update_progress(self, phase: PhaseKey, phase_progress: float) -> int:
        percent = self.calculate_progress(phase, phase_progress)
        message, is_success = PHASE_MESSAGES[phase]
        self.show(message, ModalKind.success if is_success else ModalKind.loading, percent)
        return percent

    def progress_handler(self, phase: PhaseKey, total_steps: int) -> Callable[[], int]:
        """Return a callback that advances ``phase`` by one step per call."""
        step = 0

        def _advance() -> int:
            nonlocal step
            step += 1
            fraction = step / total_steps if total_steps > 0 else 1.0
            return self.update_progress(phase, fraction)

        return _advance

    async def execute_phase(self, phase: PhaseKey, operation: Callable[[], Awaitable[T]]) -> T:
        started = self._clock()
        self.current = PhaseTracking(phase=phase, historical_durations=self.history(phase))
        logger.info('Phase %s started', phase.value)
        self.update_progress(phase, 0)
        try:
            result = await operation()
            self.update_progress(phase, 1)
            return result
        finally:
            duration_ms = (self._clock() - started) * 1000.0
            self._history[phase].append(duration_ms)
            self.current.historical_durations = self.history(phase)
            logger.info('Phase %s finished in %.1f ms', phase.value, duration_ms)
