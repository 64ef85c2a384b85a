"""
Jianpu (numbered notation) text <-> Note sequence.

Jianpu writes scale degrees as digits 1-7 in the current key and mode:
``0`` is a rest, ``-`` holds the previous note one more beat, ``|`` is a bar
line, underscores before a digit drop it an octave and dots after it raise
it an octave, and a trailing ``#``/``b`` alters it by a semitone.

The parser is built to recover usable melodies from OCR output, so it never
raises on text: anything it cannot read is dropped by ``clean_jianpu``.
"""

import logging
import re
from functools import lru_cache

from fretwork.errors import UnknownScale
from fretwork.note_models import KIND_TOKENS, SYMBOL_CHARS, Note, NoteKind
from fretwork.pitch import (
    MIDDLE_C_MIDI,
    SEMITONES_PER_OCTAVE,
    floor_div,
    name_to_pitch_class,
    pitch_class,
    pitch_class_to_name,
)
from fretwork.scales import SCALES, Scale, resolve_scale_id

logger = logging.getLogger(__name__)

BASE_OCTAVE = 4  # degree 1 with no octave marks sits in the middle-C octave
DEGREES = "1234567"
LOW_MARKS = "_\u0323"  # underscore, combining dot below
HIGH_MARKS = ".·"  # full stop, middle dot
ACCIDENTAL_SIGNS: dict[str, str] = {"#": "#", "♯": "#", "b": "b", "♭": "b"}
ACCIDENTAL_SEMITONES: dict[str, int] = {"": 0, "#": 1, "b": -1}
MAX_OCTAVE_MARKS = 2

# ── Cleaning patterns ────────────────────────────────────────────────────────
_LETTERS = re.compile(r"[A-Za-ac-z]+")  # lowercase b survives as the flat sign
_CJK = re.compile(r"[\u4e00-\u9fff]+")
_CJK_PUNCTUATION = re.compile(r"[，。！？、；：“”‘’（）【】《》「」『』〈〉…—～]")
_LATIN_PUNCTUATION = re.compile(r"[,!?;\"'<]")
_UNUSED_DIGITS = re.compile(r"[89]")
_NOT_JIANPU = re.compile(r"[^0-7\s.\u00b7_\u0323\-|#b\u266f\u266d()\[\]{}:=>]")
_WHITESPACE = re.compile(r"\s+")


def clean_jianpu(text: str) -> str:
    """
    Reduce free-form (typically OCR) text to jianpu characters.

    Letters other than ``b``, CJK ideographs, punctuation outside the
    reserved symbol set and the digits 8 and 9 are removed. Other digits in
    running text are kept. Whitespace is collapsed to single spaces.
    The function is total and idempotent.
    """
    cleaned = _LETTERS.sub("", text)
    cleaned = _CJK.sub("", cleaned)
    cleaned = _CJK_PUNCTUATION.sub("", cleaned)
    cleaned = _LATIN_PUNCTUATION.sub("", cleaned)
    cleaned = _UNUSED_DIGITS.sub("", cleaned)
    cleaned = _NOT_JIANPU.sub("", cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()


def is_valid_jianpu(text: str) -> bool:
    """True if cleaning leaves at least one jianpu digit."""
    return re.search(r"[0-7]", clean_jianpu(text)) is not None


# ------------------------------------------------------------------
# Degree -> pitch
# ------------------------------------------------------------------

@lru_cache(maxsize=None)
def _heptatonic_scale(mode: str) -> Scale:
    """The seven-degree scale used to read digits; anything else reads as major."""
    try:
        scale = SCALES[resolve_scale_id(mode)]
    except UnknownScale:
        logger.warning("Unknown mode %r; reading jianpu in major.", mode)
        return SCALES["major"]
    if len(scale) != 7:
        logger.warning("Mode %r has %d degrees; reading jianpu in major.", mode, len(scale))
        return SCALES["major"]
    return scale


def octave_marks(offset: int) -> tuple[str, str]:
    """(prefix, suffix) octave marks for an octave offset relative to octave 4."""
    if offset < 0:
        return "_" * -offset, ""
    return "", "." * offset


def degree_token(degree: int, octave_offset: int, accidental: str) -> str:
    """Canonical token of a pitched degree, e.g. (2, -1, '#') -> '_2#'."""
    prefix, suffix = octave_marks(octave_offset)
    return f"{prefix}{degree}{suffix}{accidental}"


def degree_to_note(
    degree: int,
    *,
    key: str = "C",
    mode: str = "major",
    octave_offset: int = 0,
    global_octave_offset: int = 0,
    accidental: str = "",
    index: int = 0,
) -> Note:
    """
    Build the pitched Note for one jianpu degree.

    The accidental is applied after the key offset, with no enharmonic
    respelling: ``3#`` in C major is always a raised third. The semitone
    sum is not reduced before adding octaves, so a sharp that pushes past B
    lands in the next octave's MIDI range while ``octave`` stays as written.

    Raises:
        UnknownNote: If ``key`` is not a note name.
    """
    scale = _heptatonic_scale(mode)
    total_semitone = scale.intervals[degree - 1] + name_to_pitch_class(key) + ACCIDENTAL_SEMITONES[accidental]
    total_octave = octave_offset + global_octave_offset
    return Note.pitched(
        midi=MIDDLE_C_MIDI + total_semitone + total_octave * SEMITONES_PER_OCTAVE,
        octave=BASE_OCTAVE + total_octave,
        note_name=pitch_class_to_name(total_semitone),
        display_str=degree_token(degree, octave_offset, accidental),
        degree=degree,
        accidental=accidental,
        index=index,
    )


def _spell_degree(scale: Scale, offset: int) -> tuple[int, str]:
    for accidental in ("", "#", "b"):
        for degree, interval in enumerate(scale.intervals, start=1):
            if pitch_class(interval + ACCIDENTAL_SEMITONES[accidental]) == offset:
                return degree, accidental
    return 1, ""


def jianpu_from_midi(midi: int, key: str = "C", mode: str = "major", index: int = 0) -> Note:
    """
    Spell an absolute pitch as a jianpu degree of ``key``/``mode``.

    A scale degree is preferred; otherwise the lowest degree that reaches
    the pitch when raised, then when lowered. Octave marks count from the
    key root in octave 4, so the result parses back to ``midi`` under the
    same key and mode.
    """
    scale = _heptatonic_scale(mode)
    key_pc = name_to_pitch_class(key)
    offset = pitch_class(midi - key_pc)
    degree, accidental = _spell_degree(scale, offset)

    interval = scale.intervals[degree - 1] + ACCIDENTAL_SEMITONES[accidental]
    octave_offset = floor_div(midi - MIDDLE_C_MIDI - key_pc - interval, SEMITONES_PER_OCTAVE)
    return Note.pitched(
        midi=midi,
        octave=BASE_OCTAVE + octave_offset,
        note_name=pitch_class_to_name(midi),
        display_str=degree_token(degree, octave_offset, accidental),
        degree=degree,
        accidental=accidental,
        index=index,
    )


# ------------------------------------------------------------------
# Parser
# ------------------------------------------------------------------

def parse_jianpu(
    text: str,
    key: str = "C",
    mode: str = "major",
    global_octave_offset: int = 0,
) -> list[Note]:
    """
    Parse jianpu text into a Note sequence.

    Args:
        text:                 Raw text; cleaned with ``clean_jianpu`` first.
        key:                  Tonic of degree 1 (sharp or flat spelling).
        mode:                 Seven-degree scale id or alias ("major", "Minor" ...).
        global_octave_offset: Octaves added to every pitched note.

    Returns:
        Notes in text order, each carrying its index in the result.

    Example:
        parse_jianpu("_1 1 1.")  ->  MIDI 48, 60, 72
    """
    chars = clean_jianpu(text)
    notes: list[Note] = []
    i, n = 0, len(chars)

    def emit_symbols(marks: str) -> None:
        for mark in marks:
            if mark == "_":
                notes.append(Note.symbol(mark, index=len(notes)))

    while i < n:
        char = chars[i]

        if char in LOW_MARKS:
            j = i
            while j < n and chars[j] in LOW_MARKS:
                j += 1
            run = chars[i:j]
            if j < n and chars[j] in DEGREES:
                # only the marks touching the digit lower it
                emit_symbols(run[:-MAX_OCTAVE_MARKS])
                i = _read_degree(chars, j, -min(len(run), MAX_OCTAVE_MARKS), notes, key, mode, global_octave_offset)
            else:
                emit_symbols(run)
                i = j
            continue

        if char in DEGREES:
            i = _read_degree(chars, i, 0, notes, key, mode, global_octave_offset)
            continue

        if char == KIND_TOKENS[NoteKind.REST]:
            notes.append(Note.rest(len(notes)))
        elif char == KIND_TOKENS[NoteKind.EXTENSION]:
            notes.append(Note.extension(len(notes)))
        elif char == KIND_TOKENS[NoteKind.SEPARATOR]:
            notes.append(Note.separator(len(notes)))
        elif char in SYMBOL_CHARS:
            notes.append(Note.symbol(char, len(notes)))
        i += 1

    return notes


def _read_degree(
    chars: str,
    i: int,
    octave_offset: int,
    notes: list[Note],
    key: str,
    mode: str,
    global_octave_offset: int,
) -> int:
    """Consume the digit at ``i`` with its trailing marks; return the next index."""
    degree = int(chars[i])
    i += 1

    if octave_offset == 0:
        while i < len(chars) and chars[i] in HIGH_MARKS and octave_offset < MAX_OCTAVE_MARKS:
            octave_offset += 1
            i += 1

    accidental = ""
    if i < len(chars) and chars[i] in ACCIDENTAL_SIGNS:
        accidental = ACCIDENTAL_SIGNS[chars[i]]
        i += 1

    notes.append(
        degree_to_note(
            degree,
            key=key,
            mode=mode,
            octave_offset=octave_offset,
            global_octave_offset=global_octave_offset,
            accidental=accidental,
            index=len(notes),
        )
    )
    return i


# ------------------------------------------------------------------
# Serializer
# ------------------------------------------------------------------

def note_token(note: Note) -> str:
    """The jianpu token for one note."""
    if note.display_str:
        return note.display_str
    if note.kind in KIND_TOKENS:
        return KIND_TOKENS[note.kind]
    if note.is_pitched and note.degree is not None:
        offset = (note.octave if note.octave is not None else BASE_OCTAVE) - BASE_OCTAVE
        return degree_token(note.degree, offset, note.accidental)
    return ""


def stringify_jianpu(notes: list[Note]) -> str:
    """Serialize notes back to jianpu text, tokens separated by single spaces."""
    return " ".join(token for token in (note_token(note) for note in notes) if token)


class JianpuParser:
    """
    Jianpu reader bound to one key, mode and global octave offset.

    Usage:
        parser = JianpuParser(key="G", mode="major", global_octave_offset=-1)
        notes = parser.parse("5 6 7 | 1. - -")
    """

    name = "jianpu"
    description = "Jianpu (numbered musical notation)"

    def __init__(self, key: str = "C", mode: str = "major", global_octave_offset: int = 0) -> None:
        # fail early on a bad key rather than on the first digit
        name_to_pitch_class(key)
        self.key = key
        self.mode = mode
        self.global_octave_offset = global_octave_offset

    def parse(self, text: str) -> list[Note]:
        return parse_jianpu(text, self.key, self.mode, self.global_octave_offset)

    def stringify(self, notes: list[Note]) -> str:
        return stringify_jianpu(notes)

    def clean(self, text: str) -> str:
        return clean_jianpu(text)

    def validate(self, text: str) -> bool:
        return is_valid_jianpu(text)
