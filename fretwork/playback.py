"""
PlaybackController: tick-driven walk over a melody with count-in and bar accents.

The controller never sleeps. Every beat is a callback handed to a
``Scheduler``: ``AsyncioScheduler`` for real time, ``VirtualScheduler`` for
tests and offline rendering (see ``fretwork.midi_exporter``).
"""

import asyncio
import heapq
import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from fretwork.fretboard import Position
from fretwork.note_models import Note

logger = logging.getLogger(__name__)


# ── Time signature ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TimeSignature:
    numerator: int = 4
    denominator: int = 4

    @classmethod
    def parse(cls, text: str) -> "TimeSignature":
        """
        Parse "num/den", e.g. "3/4".

        Raises:
            ValueError: On malformed text or a non-positive part.
        """
        num, sep, den = text.strip().partition("/")
        if not sep:
            raise ValueError(f"Time signature must look like '4/4', got {text!r}.")
        try:
            numerator, denominator = int(num), int(den)
        except ValueError:
            raise ValueError(f"Time signature must look like '4/4', got {text!r}.") from None
        if numerator <= 0 or denominator <= 0:
            raise ValueError(f"Time signature parts must be positive, got {text!r}.")
        return cls(numerator, denominator)

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"


# ── Schedulers ───────────────────────────────────────────────────────────────

class Scheduler(ABC):
    """One-shot timer service the controller runs on."""

    @abstractmethod
    def delay(self, seconds: float, callback: Callable[[], None]) -> Any:
        """Run ``callback`` once after ``seconds``; return a handle for ``cancel``."""

    @abstractmethod
    def cancel(self, handle: Any) -> None:
        """Prevent a pending callback from running. Unknown or fired handles are ignored."""


@dataclass(order=True)
class _Timer:
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class VirtualScheduler(Scheduler):
    """
    Deterministic scheduler on a manual clock.

    Nothing runs until ``advance()`` or ``run_until_idle()`` is called;
    callbacks then run inline, in due-time order (FIFO for equal times),
    with ``now`` set to each callback's due time.
    """

    #: Guard against a callback chain that never drains
    MAX_CALLBACKS = 1_000_000

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self._queue: list[_Timer] = []
        self._seq = 0

    def delay(self, seconds: float, callback: Callable[[], None]) -> _Timer:
        timer = _Timer(self.now + max(0.0, seconds), self._seq, callback)
        self._seq += 1
        heapq.heappush(self._queue, timer)
        return timer

    def cancel(self, handle: _Timer | None) -> None:
        if handle is not None:
            handle.cancelled = True

    @property
    def pending(self) -> int:
        return sum(1 for timer in self._queue if not timer.cancelled)

    def _run_due(self, until: float) -> None:
        ran = 0
        while self._queue and self._queue[0].due <= until:
            timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self.now = timer.due
            timer.callback()
            ran += 1
            if ran > self.MAX_CALLBACKS:
                raise RuntimeError("VirtualScheduler exceeded its callback limit.")

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running every callback that falls due."""
        target = self.now + seconds
        self._run_due(target)
        self.now = target

    def run_until_idle(self) -> None:
        """Run callbacks until none are pending; the clock stops at the last one."""
        self._run_due(math.inf)


class AsyncioScheduler(Scheduler):
    """Wall-clock scheduler on an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def delay(self, seconds: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(seconds, callback)

    def cancel(self, handle: asyncio.TimerHandle | None) -> None:
        if handle is not None:
            handle.cancel()


# ── Sink & events ────────────────────────────────────────────────────────────

class AudioSink(Protocol):
    """Anything that can sound a note or a metronome click without blocking."""

    def play(self, midi: int, string_index: int, *, gain: float) -> None: ...

    def click(self, high: bool) -> None: ...


class TickKind(str, Enum):
    COUNT_IN = "count-in"
    NOTE = "note"
    LOOP = "loop"
    END = "end"


@dataclass(frozen=True)
class TickEvent:
    """
    One tick reported to ``on_tick`` listeners.

    Attributes:
        kind:    COUNT_IN per click, NOTE per beat item, LOOP per jump back
                 to the loop start, END once per run.
        index:   Melody index (for COUNT_IN: the click number, 1-4).
        elapsed: Seconds of melody played before this tick.
        beat:    Beat within the bar, 0-based (before it is incremented).
        accent:  True on the first beat of a bar and on the high click.
    """

    kind: TickKind
    index: int
    elapsed: float
    beat: int = 0
    accent: bool = False


TickListener = Callable[[TickEvent], None]


@dataclass(frozen=True)
class LoopRange:
    """
    Section repeated during playback, by note index (both ends inclusive).

    ``max_loops`` is the number of passes through the section before
    playback carries on past it; 0 repeats forever.
    """

    start: int
    end: int
    max_loops: int = 0

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def contains(self, index: int) -> bool:
        return self.start <= index <= self.end


class PlaybackState(str, Enum):
    STOPPED = "stopped"
    COUNTING_IN = "counting-in"
    PLAYING = "playing"
    PAUSED = "paused"


def format_time(seconds: float | None) -> str:
    """Render seconds as "m:ss.cc", e.g. 75.5 -> "1:15.50"."""
    if seconds is None:
        return "0:00.00"
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    hundredths = int((seconds % 1) * 100)
    return f"{minutes}:{secs:02d}.{hundredths:02d}"


# ── Controller ───────────────────────────────────────────────────────────────

class PlaybackController:
    """
    Walks a Note sequence one beat at a time and drives an AudioSink.

    Bar lines reset the beat counter and take no time; layout symbols are
    skipped; pitched notes, rests and extensions take one beat each. The
    first beat of every bar is accented. Starting from Stopped with
    count-in enabled plays three low clicks and a high one, one beat apart,
    and the first note sounds together with the high click.

    With a loop range set, playing past its end jumps back to its start
    (a fresh bar) until ``max_loops`` passes are done.

    Usage:
        controller = PlaybackController(sink, VirtualScheduler(), bpm=90)
        controller.load(notes, positions)
        controller.play()
    """

    DEFAULT_BPM = 120
    ACCENT_GAIN = 1.3
    NORMAL_GAIN = 0.7
    COUNT_IN_BEATS = 4

    def __init__(
        self,
        sink: AudioSink,
        scheduler: Scheduler,
        bpm: float = DEFAULT_BPM,
        time_signature: str | TimeSignature = "4/4",
        count_in: bool = True,
    ) -> None:
        """
        Args:
            sink:           Receives note and click events.
            scheduler:      Timer service for beats.
            bpm:            Tempo; may be reassigned while playing.
            time_signature: "num/den" or a TimeSignature; only num matters.
            count_in:       Whether play() from Stopped counts in first.
        """
        if bpm <= 0:
            raise ValueError(f"bpm must be positive, got {bpm}.")
        self.sink = sink
        self.scheduler = scheduler
        self.bpm = bpm
        self.time_signature = (
            time_signature if isinstance(time_signature, TimeSignature)
            else TimeSignature.parse(time_signature)
        )
        self.count_in = count_in

        self.notes: list[Note] = []
        self.positions: list[Position | None] = []
        self.state = PlaybackState.STOPPED
        self.index = -1
        self.elapsed = 0.0
        self.beat_counter = 0
        self.count_in_remaining = 0
        self.loop: LoopRange | None = None
        self.loop_count = 0
        self._start_index = 0
        self._sounded_index: int | None = None
        self._pending: Any = None
        self._listeners: list[TickListener] = []

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def playing(self) -> bool:
        return self.state in (PlaybackState.PLAYING, PlaybackState.COUNTING_IN)

    @property
    def beat_seconds(self) -> float:
        return 60.0 / self.bpm

    @property
    def formatted_time(self) -> str:
        return format_time(self.elapsed)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def load(self, notes: Sequence[Note], positions: Sequence[Position | None] | None = None) -> None:
        """Replace the melody (stops any run in progress and clears the loop)."""
        self.stop()
        self.clear_loop()
        self.notes = list(notes)
        self.positions = list(positions) if positions is not None else [None] * len(self.notes)

    def set_loop(self, start: int, end: int, max_loops: int = 0) -> LoopRange:
        """
        Repeat notes ``start``..``end`` (inclusive) while playing.

        Raises:
            IndexError: If either end is outside the loaded melody.
            ValueError: If ``start`` is not before ``end`` or ``max_loops`` < 0.
        """
        for index in (start, end):
            if not 0 <= index < len(self.notes):
                raise IndexError(f"No note at index {index}.")
        if start >= end:
            raise ValueError(f"Loop start {start} must come before loop end {end}.")
        if max_loops < 0:
            raise ValueError(f"max_loops must be >= 0, got {max_loops}.")
        self.loop = LoopRange(start, end, max_loops)
        self.loop_count = 0
        logger.debug("Loop set to %d-%d (max %d).", start, end, max_loops)
        return self.loop

    def set_loop_by_bars(self, start: int, bars: int, notes_per_bar: int = 4, max_loops: int = 0) -> LoopRange:
        """Loop ``bars * notes_per_bar`` items from ``start``, clipped to the melody."""
        end = min(start + bars * notes_per_bar - 1, len(self.notes) - 1)
        return self.set_loop(start, end, max_loops)

    def clear_loop(self) -> None:
        self.loop = None
        self.loop_count = 0

    def on_tick(self, callback: TickListener) -> Callable[[], None]:
        """Register a tick listener; returns a function that unregisters it."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def play(self, start_index: int | None = None) -> None:
        """
        Start or resume playback.

        From Stopped: begin at ``start_index`` (default 0), counting in
        first when enabled. From Paused: resume at ``start_index`` or the
        preserved index, without count-in. Ignored while already running
        or when nothing is loaded. A negative ``start_index`` means no
        selection and starts from the top.

        Raises:
            IndexError: If ``start_index`` is past the last note.
        """
        if not self.notes or self.playing:
            return
        if start_index is not None:
            if start_index >= len(self.notes):
                raise IndexError(f"No note at index {start_index}.")
            start_index = max(start_index, 0)

        if self.state is PlaybackState.PAUSED:
            if start_index is not None and start_index != self.index:
                self.index = start_index
                self._sounded_index = None
            logger.debug("Resuming at index %d.", self.index)
            self.state = PlaybackState.PLAYING
            self._step()
            return

        self._start_index = start_index if start_index is not None else 0
        self.elapsed = 0.0
        self.beat_counter = 0
        self.loop_count = 0
        self._sounded_index = None
        if self.count_in:
            logger.debug("Counting in at %s bpm.", self.bpm)
            self.state = PlaybackState.COUNTING_IN
            self.count_in_remaining = self.COUNT_IN_BEATS
            self._count_in_tick()
        else:
            self._begin()

    def pause(self) -> None:
        """Cancel the pending beat; Playing -> Paused, CountingIn -> Stopped."""
        if self.state is PlaybackState.COUNTING_IN:
            self.stop()
            return
        if self.state is not PlaybackState.PLAYING:
            return
        self._cancel_pending()
        self.state = PlaybackState.PAUSED
        logger.debug("Paused at index %d (beat %d).", self.index, self.beat_counter)

    def stop(self) -> None:
        """Return to Stopped from any state, clearing time and beat count."""
        self._cancel_pending()
        self.state = PlaybackState.STOPPED
        self.index = -1
        self.elapsed = 0.0
        self.beat_counter = 0
        self.count_in_remaining = 0
        self._sounded_index = None

    def toggle(self, selected_index: int | None = None) -> None:
        """Pause when running, otherwise play from ``selected_index`` if given."""
        if self.playing:
            self.pause()
        else:
            self.play(selected_index)

    def audition(self, index: int) -> None:
        """
        Select ``index`` and sound it once as the first beat of a bar.

        While playing, playback jumps to the note and carries on from it;
        otherwise the controller is left paused there, so the next play()
        continues after the selection with the bar already counted.
        """
        if not 0 <= index < len(self.notes):
            raise IndexError(f"No note at index {index}.")
        self._cancel_pending()
        self.index = index
        self.beat_counter = 0
        self._sounded_index = None
        if self.state is PlaybackState.PLAYING:
            self._step()
            return
        self.state = PlaybackState.PAUSED
        self._sound(index, self.NORMAL_GAIN)
        self._sounded_index = index
        self.beat_counter = 1

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _emit(self, event: TickEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self.scheduler.cancel(self._pending)
            self._pending = None

    def _sound(self, index: int, gain: float) -> None:
        note = self.notes[index]
        position = self.positions[index] if index < len(self.positions) else None
        if note.is_pitched and position is not None:
            self.sink.play(position.midi, position.string, gain=gain)

    def _count_in_tick(self) -> None:
        self._pending = None
        self.count_in_remaining -= 1
        high = self.count_in_remaining == 0
        self.sink.click(high)
        self._emit(TickEvent(TickKind.COUNT_IN, self.COUNT_IN_BEATS - self.count_in_remaining,
                             0.0, accent=high))
        if high:
            self._begin()
        else:
            self._pending = self.scheduler.delay(self.beat_seconds, self._count_in_tick)

    def _begin(self) -> None:
        self.state = PlaybackState.PLAYING
        self.index = self._start_index
        self._step()

    def _finish(self) -> None:
        logger.debug("Finished after %.2f s.", self.elapsed)
        self._emit(TickEvent(TickKind.END, self.index, self.elapsed, self.beat_counter))
        self.stop()

    def _skip_to_beat(self) -> None:
        while self.index < len(self.notes):
            note = self.notes[self.index]
            if note.is_separator:
                self.beat_counter = 0
            elif not note.is_symbol:
                break
            self.index += 1

    def _loop_due(self, loop: LoopRange) -> bool:
        """True when the last sounded beat was inside the loop and ``index`` has left it."""
        if self._sounded_index is None:
            return False
        return loop.contains(self._sounded_index) and self.index > loop.end

    def _wrap_loop(self, loop: LoopRange) -> bool:
        """Count a finished pass; jump back to the loop start unless the passes are used up."""
        self.loop_count += 1
        if loop.max_loops and self.loop_count >= loop.max_loops:
            logger.debug("Loop done after %d pass(es).", self.loop_count)
            return False
        self.index = loop.start
        self.beat_counter = 0
        self._sounded_index = None
        self._emit(TickEvent(TickKind.LOOP, self.index, self.elapsed))
        return True

    def _step(self) -> None:
        """Process the item at ``index`` and schedule the next beat."""
        self._skip_to_beat()
        loop = self.loop
        if loop is not None and self._loop_due(loop) and self._wrap_loop(loop):
            if self.state is not PlaybackState.PLAYING:
                return  # a LOOP listener paused or stopped the run
            self._skip_to_beat()

        if self.index >= len(self.notes):
            self._finish()
            return

        interval = self.beat_seconds
        if self._sounded_index != self.index:
            accent = self.beat_counter % self.time_signature.numerator == 0
            self._sound(self.index, self.ACCENT_GAIN if accent else self.NORMAL_GAIN)
            self._sounded_index = self.index
            self._emit(TickEvent(TickKind.NOTE, self.index, self.elapsed, self.beat_counter, accent))
            self.beat_counter += 1

        def advance() -> None:
            self._pending = None
            self.index += 1
            self.elapsed += interval
            self._step()

        self._pending = self.scheduler.delay(interval, advance)


def create_playback(
    sink: AudioSink,
    scheduler: Scheduler | None = None,
    bpm: float = PlaybackController.DEFAULT_BPM,
    time_signature: str | TimeSignature = "4/4",
    count_in: bool = True,
) -> PlaybackController:
    """Build a controller; without a scheduler it runs on a fresh VirtualScheduler."""
    return PlaybackController(
        sink,
        scheduler if scheduler is not None else VirtualScheduler(),
        bpm=bpm,
        time_signature=time_signature,
        count_in=count_in,
    )
