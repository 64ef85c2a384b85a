"""CLI tests driven through click's CliRunner."""

from pathlib import Path

import pytest
from click.testing import CliRunner, Result

from fretwork import __version__
from fretwork.cli import main
from fretwork.score import Score


def _run(*args: str) -> Result:
    return CliRunner().invoke(main, list(args))


def test_version() -> None:
    result = _run("--version")
    assert result.exit_code == 0
    assert __version__ in result.output


def test_scale_lists_notes_degrees_and_intervals() -> None:
    result = _run("scale", "A", "aeolian")
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0] == "A Natural Minor (Aeolian)"
    assert lines[3].split() == ["C", "bIII", "3m"]
    assert len(lines) == 8


def test_scale_unknown_scale() -> None:
    result = _run("scale", "A", "bebop")
    assert result.exit_code == 1
    assert "ERROR" in result.output


def test_scale_unknown_root() -> None:
    result = _run("scale", "H", "major")
    assert result.exit_code == 1


def test_parse_prints_normalised_text_and_notes() -> None:
    result = _run("parse", "1 2# | _3")
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0] == "1 2# | _3"
    assert "MIDI 60" in lines[1]
    assert "MIDI 63" in lines[2]
    assert "separator" in lines[3]
    assert "MIDI 52" in lines[4]


def test_parse_rejects_unknown_mode() -> None:
    result = _run("parse", "1", "--mode", "bebop")
    assert result.exit_code == 2


def test_parse_rejects_unknown_key() -> None:
    result = _run("parse", "1", "--key", "H")
    assert result.exit_code == 1
    assert "Unknown note name" in result.output


def test_parse_without_jianpu() -> None:
    result = _run("parse", "hello world")
    assert result.exit_code == 1


@pytest.mark.integration
def test_parse_save_writes_score(tmp_path: Path) -> None:
    path = tmp_path / "tune.json"
    result = _run("parse", "1 2 3", "--key", "G", "--save", str(path))
    assert result.exit_code == 0
    score = Score.load(path)
    assert score.key == "G"
    assert [n.midi for n in score.notes] == [67, 69, 71]


def test_fingering_shows_positions_and_range() -> None:
    result = _run("fingering", "1 3 5", "--key", "A", "--mode", "aeolian")
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert "string 5 (E) fret 5" in lines[0]
    assert lines[-1] == "3NPS (Range: 5-8)"


def test_fingering_start_string_range_checked() -> None:
    result = _run("fingering", "1", "--start-string", "6")
    assert result.exit_code == 2


@pytest.mark.integration
def test_play_writes_midi(tmp_path: Path) -> None:
    out = tmp_path / "melody.mid"
    result = _run("play", "1 2 3 | 5 - -", "-o", str(out), "--tempo", "90")
    assert result.exit_code == 0, result.output
    assert "[3/3]" in result.output
    assert "4 note(s)" in result.output
    assert out.read_bytes()[:4] == b"MThd"


@pytest.mark.integration
def test_play_from_score_file(tmp_path: Path) -> None:
    score_path = tmp_path / "tune.json"
    Score.parse("3 3 4 5", tempo=100).save(score_path)
    out = tmp_path / "tune.mid"
    result = _run("play", "--score", str(score_path), "-o", str(out), "--no-count-in")
    assert result.exit_code == 0, result.output
    assert out.exists()


def test_play_needs_text_or_score() -> None:
    result = _run("play")
    assert result.exit_code == 1
    assert "ERROR" in result.output


def test_play_rejects_bad_time_signature() -> None:
    result = _run("play", "1", "--time-signature", "four")
    assert result.exit_code == 2


def test_play_rejects_tempo_out_of_range() -> None:
    result = _run("play", "1", "--tempo", "10")
    assert result.exit_code == 2


def test_play_melody_without_notes() -> None:
    result = _run("play", "0 - |")
    assert result.exit_code == 1


@pytest.mark.integration
def test_verbose_flag(tmp_path: Path) -> None:
    out = tmp_path / "v.mid"
    result = _run("--verbose", "play", "1", "-o", str(out))
    assert result.exit_code == 0
