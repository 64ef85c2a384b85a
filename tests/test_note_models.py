"""Unit tests for the Note model."""

import pytest

from fretwork.errors import OutOfRange
from fretwork.note_models import Note, NoteKind


def test_from_midi_fills_pitch_fields() -> None:
    note = Note.from_midi(63, index=2)
    assert note.kind is NoteKind.PITCHED
    assert note.note_name == "D#"
    assert note.octave == 4
    assert note.display_str == "D#4"
    assert note.degree is None
    assert note.index == 2


@pytest.mark.parametrize("midi", [-1, 128])
def test_from_midi_out_of_range(midi: int) -> None:
    with pytest.raises(OutOfRange):
        Note.from_midi(midi)


def test_from_tab_uses_tuning() -> None:
    assert Note.from_tab(5, 5).midi == 45
    assert Note.from_tab(0, 0).midi == 64


def test_non_pitched_tokens() -> None:
    assert Note.rest().display_str == "0"
    assert Note.extension().display_str == "-"
    assert Note.separator().display_str == "|"
    assert Note.symbol("(").display_str == "("


def test_symbol_rejects_other_characters() -> None:
    with pytest.raises(ValueError):
        Note.symbol("x")


def test_consumes_tick() -> None:
    assert Note.from_midi(60).consumes_tick
    assert Note.rest().consumes_tick
    assert Note.extension().consumes_tick
    assert not Note.separator().consumes_tick
    assert not Note.symbol(":").consumes_tick


def test_predicates_are_exclusive() -> None:
    note = Note.separator()
    assert note.is_separator
    assert not (note.is_pitched or note.is_rest or note.is_extension or note.is_symbol)


def test_with_index_returns_copy() -> None:
    note = Note.rest(0)
    moved = note.with_index(5)
    assert moved.index == 5
    assert note.index == 0


def test_dict_round_trip_pitched() -> None:
    note = Note.pitched(midi=61, octave=4, note_name="C#", display_str="1#", degree=1, accidental="#", index=3)
    data = note.to_dict()
    assert data["kind"] == "note"
    assert data["jianpu"] == 1
    assert Note.from_dict(data) == note


def test_dict_round_trip_symbol() -> None:
    note = Note.symbol("[", index=1)
    assert Note.from_dict(note.to_dict()) == note


def test_from_dict_accepts_flag_records() -> None:
    assert Note.from_dict({"isSeparator": True, "jianpu": "|"}).is_separator
    assert Note.from_dict({"isExtension": True}).is_extension
    assert Note.from_dict({"isRest": True}).is_rest


def test_from_dict_accepts_legacy_pitch_keys() -> None:
    note = Note.from_dict({"jianpu": 5, "midiNote": 67, "octave": 4, "accidentalStr": "", "displayStr": "5"})
    assert note.is_pitched
    assert note.midi == 67
    assert note.note_name == "G"
    assert note.degree == 5
