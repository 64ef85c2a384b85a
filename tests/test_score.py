"""Unit tests for the Score record."""

import json
from pathlib import Path

import pytest

from fretwork.fretboard import Position
from fretwork.score import Score


def test_parse_uses_settings() -> None:
    score = Score.parse("1 2 3", key="G", octave_offset=0)
    assert [n.midi for n in score.notes] == [67, 69, 71]


def test_default_octave_offset_is_minus_one() -> None:
    score = Score.parse("1")
    assert score.notes[0].midi == 48


def test_to_dict_layout() -> None:
    data = Score.parse("1 | 2", tempo=90, time_signature="3/4").to_dict()
    assert set(data) == {"text", "notes", "key", "mode", "tempo", "timeSignature", "startString", "octaveOffset"}
    assert data["tempo"] == 90
    assert data["timeSignature"] == "3/4"
    assert len(data["notes"]) == 3


def test_json_round_trip() -> None:
    score = Score.parse("_6 1 2# | 3. - 0 (5)", key="D", mode="dorian", tempo=72, start_string=4)
    restored = Score.from_json(score.to_json())
    assert restored == score


def test_wrapped_record_with_scale_type() -> None:
    payload = {
        "name": "GuitarScore",
        "data": {"text": "1 3 5", "key": "A", "scaleType": "Minor", "tempo": 100, "startString": 5},
    }
    score = Score.from_dict(payload)
    assert score.mode == "Minor"
    assert score.tempo == 100
    assert [n.midi for n in score.notes] == [57, 60, 64]


def test_missing_notes_are_reparsed() -> None:
    score = Score.from_dict({"text": "1 2", "octaveOffset": 0})
    assert [n.midi for n in score.notes] == [60, 62]


def test_stored_notes_win_over_text() -> None:
    stored = Score.parse("5", octave_offset=0)
    data = stored.to_dict()
    data["text"] = "1"
    assert Score.from_dict(data).notes[0].midi == 67


def test_empty_record_rejected() -> None:
    with pytest.raises(ValueError):
        Score.from_dict({"key": "C"})


def test_non_object_rejected() -> None:
    with pytest.raises(ValueError):
        Score.from_json("[1, 2, 3]")


def test_named_json_is_wrapped() -> None:
    payload = json.loads(Score.parse("1").to_json(name="Tune"))
    assert payload["name"] == "Tune"
    assert payload["data"]["text"] == "1"


def test_fingering_uses_stored_settings() -> None:
    score = Score.parse("1", key="A", mode="aeolian", octave_offset=0)
    assert score.fingering() == [Position(5, 5, 45)]


def test_normalized_text() -> None:
    assert Score.parse("lyrics 1  2 |3").normalized_text() == "1 2 | 3"


@pytest.mark.integration
def test_save_and_load(tmp_path: Path) -> None:
    path = tmp_path / "tune.json"
    score = Score.parse("3 3 4 5 | 5 4 3 2", tempo=96)
    score.save(path)
    assert json.loads(path.read_text(encoding="utf-8"))["name"] == Score.DEFAULT_NAME
    assert Score.load(path) == score
