"""
SpeedTrainer: step a PlaybackController's tempo up as repetitions complete.

A repetition is one pass of the melody (an END tick) or of the loop range (a
LOOP tick). After ``repetitions`` of them the tempo rises by
``increment_bpm`` until ``target_bpm`` has been played through.
"""

import logging
import math
from collections.abc import Callable

from fretwork.playback import PlaybackController, TickEvent, TickKind

logger = logging.getLogger(__name__)


class SpeedTrainer:
    """
    Gradual tempo ramp bound to one controller.

    Usage:
        trainer = SpeedTrainer(controller, start_bpm=60, target_bpm=100)
        controller.set_loop(0, len(notes) - 1)
        trainer.start()
        controller.play()
    """

    DEFAULT_START_BPM = 60
    DEFAULT_TARGET_BPM = 120
    DEFAULT_INCREMENT_BPM = 5
    DEFAULT_REPETITIONS = 4

    def __init__(
        self,
        controller: PlaybackController,
        start_bpm: float = DEFAULT_START_BPM,
        target_bpm: float = DEFAULT_TARGET_BPM,
        increment_bpm: float = DEFAULT_INCREMENT_BPM,
        repetitions: int = DEFAULT_REPETITIONS,
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        """
        Args:
            controller:    Controller whose ``bpm`` is driven.
            start_bpm:     First tempo.
            target_bpm:    Last tempo; must not be below ``start_bpm``.
            increment_bpm: Tempo step between stages.
            repetitions:   Passes played at each tempo.
            on_complete:   Called once the target tempo has been played through.

        Raises:
            ValueError: On a non-positive tempo, step or repetition count,
                or a target below the start.
        """
        if start_bpm <= 0 or increment_bpm <= 0:
            raise ValueError("start_bpm and increment_bpm must be positive.")
        if target_bpm < start_bpm:
            raise ValueError(f"target_bpm {target_bpm} is below start_bpm {start_bpm}.")
        if repetitions < 1:
            raise ValueError(f"repetitions must be at least 1, got {repetitions}.")

        self.controller = controller
        self.start_bpm = start_bpm
        self.target_bpm = target_bpm
        self.increment_bpm = increment_bpm
        self.repetitions = repetitions
        self.on_complete = on_complete

        self.training = False
        self.paused = False
        self.current_bpm = start_bpm
        self.current_repetition = 0
        self._unsubscribe = controller.on_tick(self._on_tick)

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    @property
    def total_steps(self) -> int:
        return math.ceil((self.target_bpm - self.start_bpm) / self.increment_bpm) + 1

    @property
    def current_step(self) -> int:
        return math.floor((self.current_bpm - self.start_bpm) / self.increment_bpm) + 1

    @property
    def progress(self) -> float:
        """Percent of the way from start to target tempo, 0-100."""
        span = self.target_bpm - self.start_bpm
        if span == 0:
            return 100.0
        return min(max((self.current_bpm - self.start_bpm) / span * 100, 0.0), 100.0)

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin at ``start_bpm`` with no repetitions counted."""
        self.training = True
        self.paused = False
        self.current_repetition = 0
        self._set_bpm(self.start_bpm)

    def stop(self) -> None:
        self.training = False
        self.paused = False
        self.current_repetition = 0
        self.current_bpm = self.start_bpm

    def toggle_pause(self) -> None:
        """While paused, repetitions are not counted."""
        self.paused = not self.paused

    def close(self) -> None:
        """Detach from the controller."""
        self._unsubscribe()

    def complete_repetition(self) -> None:
        """Count one repetition, moving to the next tempo when the stage is done."""
        if not self.training or self.paused:
            return
        self.current_repetition += 1
        if self.current_repetition < self.repetitions:
            return
        if self.current_bpm >= self.target_bpm:
            self._complete()
            return
        self._advance(min(self.current_bpm + self.increment_bpm, self.target_bpm))

    def next_speed(self) -> None:
        if not self.training:
            return
        if self.current_bpm >= self.target_bpm:
            self._complete()
            return
        self._advance(min(self.current_bpm + self.increment_bpm, self.target_bpm))

    def prev_speed(self) -> None:
        if not self.training:
            return
        self._advance(max(self.current_bpm - self.increment_bpm, self.start_bpm))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _on_tick(self, event: TickEvent) -> None:
        if event.kind in (TickKind.LOOP, TickKind.END):
            self.complete_repetition()

    def _set_bpm(self, bpm: float) -> None:
        self.current_bpm = bpm
        self.controller.bpm = bpm
        logger.debug("Speed trainer at %s bpm.", bpm)

    def _advance(self, bpm: float) -> None:
        self.current_repetition = 0
        self._set_bpm(bpm)

    def _complete(self) -> None:
        self.training = False
        logger.info("Speed training complete at %s bpm.", self.current_bpm)
        if self.on_complete is not None:
            self.on_complete()
