"""FingeringStrategy: Strategy pattern for mapping melody notes to fretboard positions."""

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from functools import cached_property

from fretwork.errors import UnknownScale
from fretwork.fretboard import (
    STANDARD_TUNING,
    STRING_COUNT,
    MAX_FRET,
    Position,
    best_in_hand_position,
    best_low_position,
    check_tuning,
    closest_position,
)
from fretwork.note_models import Note
from fretwork.pitch import SEMITONES_PER_OCTAVE, floor_div, name_to_pitch_class, positive_mod
from fretwork.scales import SCALES, Scale, resolve_scale_id

logger = logging.getLogger(__name__)

NOTES_PER_STRING = 3
CENTER_OFFSET = 2  # fallback anchor sits two frets above the pattern root


def _layout_scale(mode: str) -> Scale:
    try:
        return SCALES[resolve_scale_id(mode)]
    except UnknownScale:
        logger.warning("Unknown mode %r; laying out the major scale.", mode)
        return SCALES["major"]


def _round_half_up(value: float) -> int:
    """Round to the nearest integer, half-way cases toward +infinity (-0.5 -> 0)."""
    return math.floor(value + 0.5)


# ── Static 3NPS map ──────────────────────────────────────────────────────────

def build_3nps_map(
    start_string: int = 5,
    key: str = "C",
    mode: str = "major",
    tuning: Sequence[int] = STANDARD_TUNING,
) -> list[Position]:
    """
    Lay a scale out three notes per string, starting from the key's root.

    The root is the first fret (0-11) of ``start_string`` that sounds the
    key. Degrees then climb three per string up to string 0; strings below
    the start string carry the scale downward from the root (degree -1,
    -2, ...). Slots that would fall outside frets 0..24 are skipped.

    Example (A aeolian from the low E string, standard tuning):
        string 5 -> frets 5 7 8, string 4 -> 5 7 8, string 3 -> 5 7 9, ...

    Args:
        start_string: String carrying degrees 1-3 (0 = high E, 5 = low E).
        key:          Root note name.
        mode:         Scale id or alias.
        tuning:       Six open-string MIDI pitches, high to low.

    Returns:
        Map entries in walk order: the upward walk first, then the
        downward extension. The first entry is always the root.

    Raises:
        ValueError: If start_string is not 0..5 or the tuning is malformed.
    """
    strings = check_tuning(tuning)
    if not 0 <= start_string < STRING_COUNT:
        raise ValueError(f"start_string must be 0-{STRING_COUNT - 1}, got {start_string}.")

    intervals = _layout_scale(mode).intervals
    cycle = len(intervals)
    open_midi = strings[start_string]
    root_midi = open_midi + positive_mod(name_to_pitch_class(key) - open_midi, SEMITONES_PER_OCTAVE)

    def slot(string: int, degree: int) -> Position | None:
        target = (
            root_midi
            + intervals[positive_mod(degree, cycle)]
            + SEMITONES_PER_OCTAVE * floor_div(degree, cycle)
        )
        fret = target - strings[string]
        return Position(string, fret, target) if 0 <= fret <= MAX_FRET else None

    walk: list[tuple[int, int]] = []
    degree = 0
    for string in range(start_string, -1, -1):
        for _ in range(NOTES_PER_STRING):
            walk.append((string, degree))
            degree += 1

    degree = -1
    for string in range(start_string + 1, STRING_COUNT):
        for _ in range(NOTES_PER_STRING):
            walk.append((string, degree))
            degree -= 1

    return [entry for entry in (slot(s, d) for s, d in walk) if entry is not None]


# ── Note assignment ──────────────────────────────────────────────────────────

def auto_octave_shift(notes: Sequence[Note], scale_map: Sequence[Position]) -> int:
    """
    Semitone shift that brings the first pitched note nearest the map root.

    Only the first pitched note is considered, so a melody straddling two
    octaves may align differently when its opening note changes.
    """
    first = next((n for n in notes if n.is_pitched and n.midi is not None), None)
    if first is None or not scale_map:
        return 0
    return _round_half_up((scale_map[0].midi - first.midi) / SEMITONES_PER_OCTAVE) * SEMITONES_PER_OCTAVE


def assign_3nps_positions(
    notes: Sequence[Note],
    start_string: int = 5,
    key: str = "C",
    mode: str = "major",
    tuning: Sequence[int] = STANDARD_TUNING,
    user_octave_shift: int = 0,
) -> list[Position | None]:
    """Convenience wrapper around ``ThreeNpsFingering(...).assign(notes)``."""
    return ThreeNpsFingering(
        start_string=start_string,
        key=key,
        mode=mode,
        tuning=tuple(tuning),
        user_octave_shift=user_octave_shift,
    ).assign(notes)


@dataclass(frozen=True)
class FingeringSummary:
    """Fret span of a fingering, for display."""

    min_fret: int | None
    max_fret: int | None
    text: str


def describe_positions(positions: Sequence[Position | None]) -> FingeringSummary:
    """Summarise the fret range covered by the non-empty positions."""
    frets = [p.fret for p in positions if p is not None]
    if not frets:
        return FingeringSummary(None, None, "3NPS")
    low, high = min(frets), max(frets)
    return FingeringSummary(low, high, f"3NPS (Range: {low}-{high})")


# ── Abstract base ────────────────────────────────────────────────────────────

class FingeringStrategy(ABC):
    """
    Abstract Strategy for choosing where each melody note is played.

    Concrete subclasses implement ``_place()`` for one pitched note;
    ``assign()`` keeps the output parallel to the input and leaves every
    non-pitched item (and every unreachable pitch) as None.
    """

    @abstractmethod
    def _place(self, note: Note, midi: int) -> Position | None:
        """Position for one pitched note, or None when it cannot be played."""

    def _octave_shift(self, notes: Sequence[Note]) -> int:
        """Semitones added to every pitch before placement."""
        return 0

    def assign(self, notes: Sequence[Note]) -> list[Position | None]:
        """
        Map every note to a position.

        Args:
            notes: Melody items in playing order.

        Returns:
            A list the same length as ``notes``.
        """
        shift = self._octave_shift(notes)
        positions: list[Position | None] = []
        for note in notes:
            if not note.is_pitched or note.midi is None:
                positions.append(None)
                continue
            position = self._place(note, note.midi + shift)
            if position is None:
                logger.debug("Note %d (%s) is unreachable on this tuning.", note.index, note.display_str)
            positions.append(position)
        return positions


# ── Concrete strategies ──────────────────────────────────────────────────────

class ThreeNpsFingering(FingeringStrategy):
    """
    Three-notes-per-string fingering anchored on one start string.

    Every note is first shifted by whole octaves so that the melody's first
    pitched note lands next to the pattern root (plus any user shift). A
    note whose shifted pitch is a slot of the static map takes that slot;
    otherwise it goes to the reachable position nearest a fret two above
    the pattern root, higher strings winning ties.

    The map is derived once per instance from (start_string, key, mode,
    tuning); build a new instance when any of them changes.
    """

    def __init__(
        self,
        start_string: int = 5,
        key: str = "C",
        mode: str = "major",
        tuning: tuple[int, ...] = STANDARD_TUNING,
        user_octave_shift: int = 0,
    ) -> None:
        self.start_string = start_string
        self.key = key
        self.mode = mode
        self.tuning = check_tuning(tuning)
        self.user_octave_shift = user_octave_shift

    @cached_property
    def scale_map(self) -> list[Position]:
        return build_3nps_map(self.start_string, self.key, self.mode, self.tuning)

    @property
    def center_fret(self) -> int:
        return self.scale_map[0].fret + CENTER_OFFSET

    def _place(self, note: Note, midi: int) -> Position | None:
        for entry in self.scale_map:
            if entry.midi == midi:
                return entry
        position = closest_position(midi, self.center_fret, self.tuning)
        if position is not None:
            logger.debug("Note %d off the 3NPS map; placed at string %d fret %d.",
                         note.index, position.string, position.fret)
        return position

    def _octave_shift(self, notes: Sequence[Note]) -> int:
        shift = auto_octave_shift(notes, self.scale_map) + self.user_octave_shift * SEMITONES_PER_OCTAVE
        logger.debug("3NPS octave shift: %+d semitones.", shift)
        return shift


class LowestFretFingering(FingeringStrategy):
    """Every note at its lowest reachable fret; the generic fallback layout."""

    def __init__(self, tuning: tuple[int, ...] = STANDARD_TUNING) -> None:
        self.tuning = check_tuning(tuning)

    def _place(self, note: Note, midi: int) -> Position | None:
        return best_low_position(midi, self.tuning)


class HandPositionFingering(FingeringStrategy):
    """
    Every note as close as possible to one hand position (1-12).

    Position 1 is the open position (frets 0-4); position n covers frets
    n to n+3.
    """

    def __init__(self, hand_position: int = 1, tuning: tuple[int, ...] = STANDARD_TUNING) -> None:
        self.hand_position = hand_position
        self.tuning = check_tuning(tuning)

    def _place(self, note: Note, midi: int) -> Position | None:
        return best_in_hand_position(midi, self.hand_position, self.tuning)
