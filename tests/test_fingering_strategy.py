"""Unit tests for the 3NPS layout engine and the other fingering strategies."""

import pytest

from fretwork.fingering_strategy import (
    FingeringStrategy,
    HandPositionFingering,
    LowestFretFingering,
    ThreeNpsFingering,
    assign_3nps_positions,
    auto_octave_shift,
    build_3nps_map,
    describe_positions,
)
from fretwork.fretboard import MAX_FRET, STANDARD_TUNING, Position
from fretwork.jianpu import parse_jianpu
from fretwork.note_models import Note
from fretwork.scales import SCALES, scale_notes


def _melody(*midis: int) -> list[Note]:
    return [Note.from_midi(m, index=i) for i, m in enumerate(midis)]


# ── Map ──────────────────────────────────────────────────────────────────────

def test_a_minor_map_from_low_e() -> None:
    scale_map = build_3nps_map(5, "A", "aeolian", STANDARD_TUNING)
    assert scale_map[0] == Position(5, 5, 45)
    assert len(scale_map) == 18

    frets = {s: [p.fret for p in scale_map if p.string == s] for s in range(6)}
    assert frets == {
        5: [5, 7, 8],
        4: [5, 7, 8],
        3: [5, 7, 9],
        2: [5, 7, 9],
        1: [6, 8, 10],
        0: [7, 8, 10],
    }


def test_map_climbs_toward_string_zero() -> None:
    scale_map = build_3nps_map(5, "A", "aeolian")
    assert [p.string for p in scale_map] == [5] * 3 + [4] * 3 + [3] * 3 + [2] * 3 + [1] * 3 + [0] * 3
    midis = [p.midi for p in scale_map]
    assert midis == sorted(midis)


def test_map_covers_scale_pitch_classes() -> None:
    scale_map = build_3nps_map(5, "A", "aeolian")
    names = {Note.from_midi(p.midi).note_name for p in scale_map}
    assert names == set(scale_notes("A", "aeolian"))


def test_lower_extension_below_start_string() -> None:
    scale_map = build_3nps_map(4, "A", "aeolian")
    assert scale_map[0] == Position(4, 0, 45)
    assert scale_map[-3:] == [Position(5, 3, 43), Position(5, 1, 41), Position(5, 0, 40)]


def test_root_stays_within_first_octave_of_frets() -> None:
    for key in ["C", "D#", "F", "G#", "B"]:
        for start in range(6):
            assert 0 <= build_3nps_map(start, key, "major")[0].fret <= 11


@pytest.mark.parametrize("mode", ["major", "dorian", "harmonic-minor", "minor-pentatonic", "blues", "chromatic"])
@pytest.mark.parametrize("start", range(6))
def test_map_entries_are_playable(mode: str, start: int) -> None:
    for entry in build_3nps_map(start, "F#", mode):
        assert 0 <= entry.fret <= MAX_FRET
        assert STANDARD_TUNING[entry.string] + entry.fret == entry.midi


def test_pentatonic_cycles_through_five_degrees() -> None:
    scale_map = build_3nps_map(5, "A", "minor-pentatonic")
    pcs = [p.midi % 12 for p in scale_map[:6]]
    assert pcs == [9, 0, 2, 4, 7, 9]
    assert len(SCALES["minor-pentatonic"]) == 5


def test_unknown_mode_lays_out_major() -> None:
    assert build_3nps_map(5, "C", "nope") == build_3nps_map(5, "C", "major")


def test_bad_start_string() -> None:
    with pytest.raises(ValueError):
        build_3nps_map(6, "C", "major")


# ── Assignment ───────────────────────────────────────────────────────────────

def test_first_note_aligned_to_map_root_octave() -> None:
    positions = assign_3nps_positions(_melody(60), 5, "A", "aeolian")
    assert positions == [Position(5, 8, 48)]


def test_auto_shift_rounds_to_nearest_octave() -> None:
    scale_map = build_3nps_map(5, "A", "aeolian")
    assert auto_octave_shift(_melody(60), scale_map) == -12
    assert auto_octave_shift(_melody(45), scale_map) == 0
    assert auto_octave_shift(_melody(69), scale_map) == -24


def test_auto_shift_half_way_rounds_up() -> None:
    scale_map = [Position(5, 6, 46)]
    assert auto_octave_shift(_melody(52), scale_map) == 0
    assert auto_octave_shift(_melody(40), scale_map) == 12


def test_auto_shift_uses_first_pitched_note_only() -> None:
    notes = [Note.rest(0), Note.separator(1), *_melody(72, 45)]
    assert auto_octave_shift(notes, build_3nps_map(5, "A", "aeolian")) == -24


def test_user_shift_adds_whole_octaves() -> None:
    positions = assign_3nps_positions(_melody(60), 5, "A", "aeolian", user_octave_shift=1)
    assert positions[0] is not None
    assert positions[0].midi == 60
    assert positions[0] in build_3nps_map(5, "A", "aeolian")


def test_out_of_scale_note_uses_closest_position() -> None:
    positions = assign_3nps_positions(_melody(60, 61), 5, "A", "aeolian")
    # C#3 is not in A minor: nearest fret to 7 is string 5 fret 9
    assert positions[1] == Position(5, 9, 49)


def test_unreachable_notes_are_none() -> None:
    positions = assign_3nps_positions(_melody(60, 62), 5, "A", "aeolian", user_octave_shift=-3)
    assert positions == [None, None]


def test_output_parallel_to_input() -> None:
    notes = parse_jianpu("6 7 | 1. - 0 (2.) 3.#", key="C", mode="aeolian")
    positions = assign_3nps_positions(notes, 5, "A", "aeolian")
    assert len(positions) == len(notes)
    for note, position in zip(notes, positions):
        if not note.is_pitched:
            assert position is None


def test_positions_sound_shifted_pitch() -> None:
    notes = parse_jianpu("1 3 5 1. 7 6 #4 2")
    strategy = ThreeNpsFingering(start_string=5, key="A", mode="aeolian")
    positions = strategy.assign(notes)
    shift = auto_octave_shift(notes, strategy.scale_map)
    for note, position in zip(notes, positions):
        assert position is not None
        assert STANDARD_TUNING[position.string] + position.fret == note.midi + shift


def test_describe_positions() -> None:
    summary = describe_positions([Position(5, 5, 45), None, Position(3, 9, 59)])
    assert (summary.min_fret, summary.max_fret) == (5, 9)
    assert summary.text == "3NPS (Range: 5-9)"


def test_describe_positions_empty() -> None:
    summary = describe_positions([None, None])
    assert summary.min_fret is None
    assert summary.text == "3NPS"


# ── Other strategies ─────────────────────────────────────────────────────────

def test_strategies_share_the_interface() -> None:
    for strategy in (ThreeNpsFingering(), LowestFretFingering(), HandPositionFingering(5)):
        assert isinstance(strategy, FingeringStrategy)


def test_lowest_fret_fingering() -> None:
    notes = [*_melody(64, 45), Note.rest(2)]
    assert LowestFretFingering().assign(notes) == [Position(0, 0, 64), Position(4, 0, 45), None]


def test_hand_position_fingering() -> None:
    assert HandPositionFingering(5).assign(_melody(60)) == [Position(2, 5, 60)]


def test_strategy_leaves_unreachable_pitch_empty() -> None:
    assert LowestFretFingering().assign(_melody(20)) == [None]


def test_three_nps_instance_is_reusable() -> None:
    strategy = ThreeNpsFingering(start_string=5, key="A", mode="aeolian")
    first = strategy.assign(_melody(60, 62))
    second = strategy.assign(_melody(45, 47))
    assert first == ThreeNpsFingering(start_string=5, key="A", mode="aeolian").assign(_melody(60, 62))
    assert second == [Position(5, 5, 45), Position(5, 7, 47)]
    assert strategy.assign(_melody(60, 62)) == first


@pytest.mark.parametrize("start_string", range(6))
@pytest.mark.parametrize("key", ["C", "F#", "B"])
def test_map_always_holds_the_root(start_string: int, key: str) -> None:
    scale_map = build_3nps_map(start_string, key, "major")
    assert scale_map[0].string == start_string
    assert 0 <= scale_map[0].fret < 12
