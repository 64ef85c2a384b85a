"""Chromatic arithmetic: note names, pitch classes and MIDI numbers."""

import math

from fretwork.errors import UnknownNote

# ── MIDI constants ──────────────────────────────────────────────────────────
SEMITONES_PER_OCTAVE = 12
MIDDLE_C_MIDI = 60  # C4 in Scientific Pitch Notation

#: Canonical spellings, index = pitch class (0=C, 1=C#, ..., 11=B)
NOTE_NAMES: list[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

_NATURALS: dict[str, int] = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}
_ACCIDENTALS: dict[str, int] = {"": 0, "#": 1, "♯": 1, "b": -1, "♭": -1}


def positive_mod(value: int, modulus: int) -> int:
    """Remainder of ``value / modulus`` that is always in ``0..modulus-1``."""
    return ((value % modulus) + modulus) % modulus


def floor_div(value: int, divisor: int) -> int:
    """Integer quotient rounded toward negative infinity (``-1 // 7 == -1``)."""
    return math.floor(value / divisor)


def pitch_class(value: int) -> int:
    """Reduce any semitone count (negative included) to a pitch class 0..11."""
    return positive_mod(value, SEMITONES_PER_OCTAVE)


def name_to_pitch_class(name: str) -> int:
    """
    Convert a note name to its pitch class.

    Accepts the sharp spellings and every single-accidental flat alias
    (``Db`` = ``C#``, ``Fb`` = ``E``, ``Cb`` = ``B`` ...), plus ``E#``/``B#``
    and the unicode ``♯``/``♭`` signs. The letter is case-insensitive.

    Raises:
        UnknownNote: If the name cannot be read as a note.
    """
    text = name.strip() if isinstance(name, str) else ""
    if not text:
        raise UnknownNote(name)

    letter, accidental = text[0].upper(), text[1:]
    if letter not in _NATURALS or accidental not in _ACCIDENTALS:
        raise UnknownNote(name)
    return pitch_class(_NATURALS[letter] + _ACCIDENTALS[accidental])


def pitch_class_to_name(pc: int) -> str:
    """Sharp spelling of a pitch class; out-of-range values wrap."""
    return NOTE_NAMES[pitch_class(pc)]


def normalize_note_name(name: str) -> str:
    """Respell any accepted note name with its canonical sharp spelling."""
    return pitch_class_to_name(name_to_pitch_class(name))


def midi_to_name(midi: int) -> str:
    """Sharp note name of a MIDI pitch, without octave (60 -> 'C')."""
    return pitch_class_to_name(midi)


def midi_to_octave(midi: int) -> int:
    """Scientific octave number of a MIDI pitch (60 -> 4, 59 -> 3)."""
    return floor_div(midi, SEMITONES_PER_OCTAVE) - 1


def midi_to_label(midi: int) -> str:
    """Note name plus octave, e.g. 'C4' or 'A#2'."""
    return f"{midi_to_name(midi)}{midi_to_octave(midi)}"


def note_to_midi(name: str, octave: int) -> int:
    """
    Convert a note name and an octave number to an absolute MIDI note.

    MIDI octave numbering: C-1 = 0, C0 = 12, ... C4 (Middle C) = 60.
    """
    return (octave + 1) * SEMITONES_PER_OCTAVE + name_to_pitch_class(name)
