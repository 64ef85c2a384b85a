"""fretwork: jianpu melodies, scales and 3NPS fingerings for six-string guitar."""

__version__ = "0.1.0"

from fretwork.errors import FretworkError, OutOfRange, UnknownNote, UnknownScale
from fretwork.fingering_strategy import (
    FingeringStrategy,
    HandPositionFingering,
    LowestFretFingering,
    ThreeNpsFingering,
    assign_3nps_positions,
    build_3nps_map,
    describe_positions,
)
from fretwork.fretboard import STANDARD_TUNING, Position, positions_for_midi
from fretwork.jianpu import JianpuParser, clean_jianpu, parse_jianpu, stringify_jianpu
from fretwork.note_models import Note, NoteKind
from fretwork.playback import LoopRange, PlaybackController, VirtualScheduler, create_playback
from fretwork.practice import SpeedTrainer
from fretwork.scales import SCALES, interval_for, scale_notes
from fretwork.score import Score

__all__ = [
    "__version__",
    "FingeringStrategy",
    "FretworkError",
    "HandPositionFingering",
    "JianpuParser",
    "LoopRange",
    "LowestFretFingering",
    "Note",
    "NoteKind",
    "OutOfRange",
    "PlaybackController",
    "Position",
    "SCALES",
    "STANDARD_TUNING",
    "Score",
    "SpeedTrainer",
    "ThreeNpsFingering",
    "UnknownNote",
    "UnknownScale",
    "VirtualScheduler",
    "assign_3nps_positions",
    "build_3nps_map",
    "clean_jianpu",
    "create_playback",
    "describe_positions",
    "interval_for",
    "parse_jianpu",
    "positions_for_midi",
    "scale_notes",
    "stringify_jianpu",
]
