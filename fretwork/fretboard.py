"""Fret resolver: where a MIDI pitch can be played on a six-string tuning."""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from fretwork.pitch import name_to_pitch_class, pitch_class
from fretwork.scales import get_scale

# ── Instrument constants ─────────────────────────────────────────────────────
STRING_COUNT = 6
MAX_FRET = 24

#: Standard tuning, index 0 = highest-sounding string: E4 B3 G3 D3 A2 E2
STANDARD_TUNING: tuple[int, ...] = (64, 59, 55, 50, 45, 40)
STRING_NAMES: tuple[str, ...] = ("E", "B", "G", "D", "A", "E")


@dataclass(frozen=True)
class Position:
    """
    A fretted (or open) note on one string.

    Attributes:
        string: String index, 0 = highest-sounding string.
        fret:   Fret number, 0 = open string.
        midi:   Sounding MIDI pitch, always ``tuning[string] + fret``.
    """

    string: int
    fret: int
    midi: int


def check_tuning(tuning: Sequence[int]) -> tuple[int, ...]:
    """
    Return the tuning as a tuple of ints.

    Raises:
        ValueError: Unless the tuning has exactly six strings.
    """
    strings = tuple(int(midi) for midi in tuning)
    if len(strings) != STRING_COUNT:
        raise ValueError(f"A tuning needs exactly {STRING_COUNT} strings, got {len(strings)}.")
    return strings


def _reachable_frets(midi: int, tuning: Sequence[int]) -> tuple[np.ndarray, np.ndarray]:
    """Fret of ``midi`` on every string, plus a mask of playable ones."""
    frets = midi - np.asarray(check_tuning(tuning), dtype=int)
    return frets, (frets >= 0) & (frets <= MAX_FRET)


def positions_for_midi(midi: int, tuning: Sequence[int] = STANDARD_TUNING) -> list[Position]:
    """
    Every playable position of a pitch, ordered from high string to low.

    An empty list means the pitch is unreachable on this tuning.
    """
    frets, playable = _reachable_frets(midi, tuning)
    return [Position(int(s), int(frets[s]), midi) for s in np.flatnonzero(playable)]


def best_low_position(midi: int, tuning: Sequence[int] = STANDARD_TUNING) -> Position | None:
    """Reachable position with the smallest fret; ties go to the higher string."""
    frets, playable = _reachable_frets(midi, tuning)
    if not playable.any():
        return None
    # argmin returns the first minimum, i.e. the smallest string index
    string = int(np.argmin(np.where(playable, frets, MAX_FRET + 1)))
    return Position(string, int(frets[string]), midi)


def closest_position(
    midi: int,
    center_fret: int,
    tuning: Sequence[int] = STANDARD_TUNING,
) -> Position | None:
    """Reachable position whose fret is nearest ``center_fret``; ties go to the higher string."""
    frets, playable = _reachable_frets(midi, tuning)
    if not playable.any():
        return None
    distance = np.where(playable, np.abs(frets - center_fret), np.iinfo(int).max)
    string = int(np.argmin(distance))
    return Position(string, int(frets[string]), midi)


# ── Hand positions ───────────────────────────────────────────────────────────

#: Fret window (first, last) covered by the fretting hand in each position
HAND_POSITIONS: dict[int, tuple[int, int]] = {
    1: (0, 4),  # open position
    2: (2, 5),
    **{n: (n, n + 3) for n in range(3, 13)},
}


def positions_in_hand_position(
    midi: int,
    hand_position: int = 1,
    tuning: Sequence[int] = STANDARD_TUNING,
) -> list[Position]:
    """
    Reachable positions of a pitch ranked for a given hand position.

    Positions inside the window come first; within each group the one
    closest to the window's first fret wins. Python's sort is stable, so
    equal candidates keep high-to-low string order. Unknown hand positions
    fall back to position 1.
    """
    start, end = HAND_POSITIONS.get(hand_position, HAND_POSITIONS[1])
    return sorted(
        positions_for_midi(midi, tuning),
        key=lambda p: (not start <= p.fret <= end, abs(p.fret - start)),
    )


def best_in_hand_position(
    midi: int,
    hand_position: int = 1,
    tuning: Sequence[int] = STANDARD_TUNING,
) -> Position | None:
    ranked = positions_in_hand_position(midi, hand_position, tuning)
    return ranked[0] if ranked else None


def scale_positions(
    root: str,
    scale_id: str,
    tuning: Sequence[int] = STANDARD_TUNING,
    max_fret: int = MAX_FRET,
) -> list[Position]:
    """All fretboard positions (string by string, fret ascending) that belong to a scale."""
    root_pc = name_to_pitch_class(root)
    members = {pitch_class(root_pc + interval) for interval in get_scale(scale_id).intervals}
    return [
        Position(string, fret, open_midi + fret)
        for string, open_midi in enumerate(check_tuning(tuning))
        for fret in range(max_fret + 1)
        if pitch_class(open_midi + fret) in members
    ]
