"""Unit tests for the scale catalogue and the scale mixer."""

import pytest

from fretwork.errors import UnknownScale
from fretwork.scales import (
    SCALE_ALIASES,
    SCALES,
    ScaleSelection,
    degree_for,
    get_scale,
    interval_for,
    is_note_in_scale,
    note_scale_info,
    resolve_scale_id,
    scale_notes,
)

_NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]


def test_catalogue_has_twenty_scales() -> None:
    assert len(SCALES) == 20


@pytest.mark.parametrize("scale_id", sorted(SCALES))
def test_catalogue_entries_are_well_formed(scale_id: str) -> None:
    scale = SCALES[scale_id]
    assert scale.id == scale_id
    assert 5 <= len(scale) <= 12
    assert scale.intervals[0] == 0
    assert list(scale.intervals) == sorted(set(scale.intervals))
    assert len(scale.degrees) == len(scale.intervals) == len(scale.interval_names)


def test_aliases_point_into_catalogue() -> None:
    for target in SCALE_ALIASES.values():
        assert target in SCALES


def test_resolve_scale_id() -> None:
    assert resolve_scale_id("aeolian") == "aeolian"
    assert resolve_scale_id("Minor") == "aeolian"
    assert resolve_scale_id("Major") == "major"


def test_unknown_scale_raises() -> None:
    with pytest.raises(UnknownScale):
        get_scale("bebop")


def test_scale_notes_a_minor() -> None:
    assert scale_notes("A", "aeolian") == ["A", "B", "C", "D", "E", "F", "G"]


def test_scale_notes_flat_root_spelled_with_sharps() -> None:
    assert scale_notes("Eb", "major-pentatonic") == ["D#", "F", "G", "A#", "C"]


def test_scale_notes_chromatic_covers_every_pitch_class() -> None:
    assert sorted(scale_notes("C", "chromatic")) == sorted(_NOTE_NAMES)


def test_is_note_in_scale_ignores_spelling() -> None:
    assert is_note_in_scale("Bb", scale_notes("F", "major"))
    assert not is_note_in_scale("B", scale_notes("F", "major"))


def test_interval_for_labels() -> None:
    assert interval_for("C", "A", "aeolian") == "3m"
    assert interval_for("A", "A", "aeolian") == "1P"
    assert interval_for("F#", "C", "lydian") == "4A"


def test_degree_for_labels() -> None:
    assert degree_for("G", "A", "aeolian") == "bVII"
    assert degree_for("C#", "A", "aeolian") is None


@pytest.mark.parametrize("root,scale_id", [("A", "aeolian"), ("D", "blues"), ("F#", "japanese")])
def test_interval_is_none_exactly_when_out_of_scale(root: str, scale_id: str) -> None:
    notes = scale_notes(root, scale_id)
    for name in _NOTE_NAMES:
        assert (interval_for(name, root, scale_id) is None) == (name not in notes)


# ── Scale mixer ──────────────────────────────────────────────────────────────

def test_note_scale_info_multiple_selections() -> None:
    selections = [
        ScaleSelection("C", "major"),
        ScaleSelection("A", "minor-pentatonic"),
    ]
    info = note_scale_info("A", selections)
    assert info.in_scales == [(0, True), (1, True)]
    assert info.root_of == [1]


def test_note_scale_info_respects_enabled_notes() -> None:
    selections = [ScaleSelection("C", "major", enabled_notes=frozenset({"C", "E", "G"}))]
    assert note_scale_info("E", selections).in_scales == [(0, True)]
    assert note_scale_info("D", selections).in_scales == [(0, False)]


def test_note_scale_info_out_of_every_scale() -> None:
    info = note_scale_info("C#", [ScaleSelection("C", "major")])
    assert info.in_scales == []
    assert info.root_of == []
