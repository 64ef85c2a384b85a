"""Data model for melody items: pitched notes, rests, ties, bar lines and symbols."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from fretwork.errors import OutOfRange
from fretwork.fretboard import STANDARD_TUNING, check_tuning
from fretwork.pitch import midi_to_name, midi_to_octave

MIDI_MIN = 0
MIDI_MAX = 127

#: Characters kept as layout symbols; they carry no musical meaning
SYMBOL_CHARS: frozenset[str] = frozenset("()[]{}:=>_")


class NoteKind(str, Enum):
    """Tag of a melody item."""

    PITCHED = "note"
    REST = "rest"
    EXTENSION = "extension"
    SEPARATOR = "separator"
    SYMBOL = "symbol"


#: Literal token of every non-pitched kind except symbols
KIND_TOKENS: dict[NoteKind, str] = {
    NoteKind.REST: "0",
    NoteKind.EXTENSION: "-",
    NoteKind.SEPARATOR: "|",
}


@dataclass(frozen=True)
class Note:
    """
    A single item of a melody.

    Only PITCHED notes carry pitch fields. ``display_str`` is always the
    exact token the jianpu serializer emits for the item.

    Attributes:
        kind:        Which variant this item is.
        index:       Position in the sequence it was parsed into.
        display_str: Serialized token, e.g. "_1", "2#", "|", "C4".
        degree:      Jianpu scale degree 1..7 (None when built from MIDI).
        octave:      Scientific octave number (pitched only).
        midi:        Absolute MIDI pitch (pitched only).
        note_name:   Sharp-spelled pitch name, e.g. "D#" (pitched only).
        accidental:  "", "#" or "b" as written in jianpu.
    """

    kind: NoteKind
    index: int = 0
    display_str: str = ""
    degree: int | None = None
    octave: int | None = None
    midi: int | None = None
    note_name: str | None = None
    accidental: str = ""

    # ------------------------------------------------------------------
    # Variant predicates
    # ------------------------------------------------------------------

    @property
    def is_pitched(self) -> bool:
        return self.kind is NoteKind.PITCHED

    @property
    def is_rest(self) -> bool:
        return self.kind is NoteKind.REST

    @property
    def is_extension(self) -> bool:
        return self.kind is NoteKind.EXTENSION

    @property
    def is_separator(self) -> bool:
        return self.kind is NoteKind.SEPARATOR

    @property
    def is_symbol(self) -> bool:
        return self.kind is NoteKind.SYMBOL

    @property
    def consumes_tick(self) -> bool:
        """Pitched notes, rests and extensions each take one beat."""
        return self.kind in (NoteKind.PITCHED, NoteKind.REST, NoteKind.EXTENSION)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def pitched(
        cls,
        *,
        midi: int,
        octave: int,
        note_name: str,
        display_str: str,
        degree: int | None = None,
        accidental: str = "",
        index: int = 0,
    ) -> "Note":
        """Full pitched constructor; no range check (the caller may clamp)."""
        return cls(
            kind=NoteKind.PITCHED,
            index=index,
            display_str=display_str,
            degree=degree,
            octave=octave,
            midi=midi,
            note_name=note_name,
            accidental=accidental,
        )

    @classmethod
    def from_midi(cls, midi: int, index: int = 0) -> "Note":
        """
        Build a pitched note from an absolute MIDI number.

        Raises:
            OutOfRange: If midi is not in 0..127.
        """
        if not MIDI_MIN <= midi <= MIDI_MAX:
            raise OutOfRange(midi)
        name = midi_to_name(midi)
        octave = midi_to_octave(midi)
        return cls.pitched(
            midi=midi,
            octave=octave,
            note_name=name,
            display_str=f"{name}{octave}",
            index=index,
        )

    @classmethod
    def from_tab(
        cls,
        string: int,
        fret: int,
        tuning: tuple[int, ...] = STANDARD_TUNING,
        index: int = 0,
    ) -> "Note":
        """Pitched note sounding at ``fret`` on ``string`` (0 = high E)."""
        return cls.from_midi(check_tuning(tuning)[string] + fret, index=index)

    @classmethod
    def rest(cls, index: int = 0) -> "Note":
        return cls(kind=NoteKind.REST, index=index, display_str=KIND_TOKENS[NoteKind.REST])

    @classmethod
    def extension(cls, index: int = 0) -> "Note":
        return cls(kind=NoteKind.EXTENSION, index=index, display_str=KIND_TOKENS[NoteKind.EXTENSION])

    @classmethod
    def separator(cls, index: int = 0) -> "Note":
        return cls(kind=NoteKind.SEPARATOR, index=index, display_str=KIND_TOKENS[NoteKind.SEPARATOR])

    @classmethod
    def symbol(cls, char: str, index: int = 0) -> "Note":
        if char not in SYMBOL_CHARS:
            raise ValueError(f"Not a jianpu layout symbol: {char!r}")
        return cls(kind=NoteKind.SYMBOL, index=index, display_str=char)

    def with_index(self, index: int) -> "Note":
        return replace(self, index=index)

    # ------------------------------------------------------------------
    # Plain-dict layout used by saved scores
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "index": self.index,
            "kind": self.kind.value,
            "displayStr": self.display_str,
        }
        if self.is_pitched:
            data.update(
                jianpu=self.degree,
                midi=self.midi,
                noteName=self.note_name,
                octave=self.octave,
                accidental=self.accidental,
            )
        else:
            data["jianpu"] = self.display_str
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Note":
        """
        Restore a note from ``to_dict`` output.

        Records written with boolean flags (``isRest``, ``isExtension``,
        ``isSeparator``, ``isSymbol``) and ``midiNote``/``accidentalStr``
        keys are accepted as well.
        """
        kind = _kind_from_dict(data)
        index = int(data.get("index", 0))
        display = str(data.get("displayStr") or "")

        if kind is NoteKind.PITCHED:
            midi = data.get("midi", data.get("midiNote"))
            degree = data.get("jianpu")
            return cls.pitched(
                midi=int(midi),
                octave=int(data.get("octave", midi_to_octave(int(midi)))),
                note_name=str(data.get("noteName") or midi_to_name(int(midi))),
                display_str=display,
                degree=int(degree) if degree not in (None, "") else None,
                accidental=str(data.get("accidental", data.get("accidentalStr", "")) or ""),
                index=index,
            )
        if kind is NoteKind.SYMBOL:
            return cls.symbol(display or str(data.get("jianpu")), index=index)
        return cls(kind=kind, index=index, display_str=KIND_TOKENS[kind])


def _kind_from_dict(data: dict[str, Any]) -> NoteKind:
    if "kind" in data:
        return NoteKind(data["kind"])
    for flag, kind in (
        ("isRest", NoteKind.REST),
        ("isExtension", NoteKind.EXTENSION),
        ("isSeparator", NoteKind.SEPARATOR),
        ("isSymbol", NoteKind.SYMBOL),
    ):
        if data.get(flag):
            return kind
    return NoteKind.PITCHED
