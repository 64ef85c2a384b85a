"""Score: the saved form of a jianpu melody and its playback settings."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from fretwork.fingering_strategy import ThreeNpsFingering
from fretwork.fretboard import Position
from fretwork.jianpu import parse_jianpu, stringify_jianpu
from fretwork.note_models import Note

logger = logging.getLogger(__name__)


@dataclass
class Score:
    """
    A melody as written, as parsed, and the settings it is played with.

    JSON layout (camelCase keys)::

        {"text": "1 2 3 | 5 - -", "notes": [...], "key": "C", "mode": "major",
         "tempo": 120, "timeSignature": "4/4", "startString": 5, "octaveOffset": -1}

    ``octave_offset`` is the global octave offset the text is parsed with.
    The default of -1 puts an unmarked ``1`` on C3, inside the guitar's
    written range.
    """

    DEFAULT_NAME = "GuitarScore"

    text: str = ""
    notes: list[Note] = field(default_factory=list)
    key: str = "C"
    mode: str = "major"
    tempo: int = 120
    time_signature: str = "4/4"
    start_string: int = 5
    octave_offset: int = -1

    @classmethod
    def parse(cls, text: str, **settings: Any) -> "Score":
        """Build a score from jianpu text; ``settings`` are any other field."""
        score = cls(text=text, **settings)
        score.reparse()
        return score

    def reparse(self) -> None:
        """Rebuild ``notes`` from ``text`` with the current key, mode and offset."""
        self.notes = parse_jianpu(self.text, self.key, self.mode, self.octave_offset)

    def normalized_text(self) -> str:
        return stringify_jianpu(self.notes)

    def fingering(self, user_octave_shift: int = 0) -> list[Position | None]:
        """3NPS positions of the notes for the stored key, mode and start string."""
        strategy = ThreeNpsFingering(
            start_string=self.start_string,
            key=self.key,
            mode=self.mode,
            user_octave_shift=user_octave_shift,
        )
        return strategy.assign(self.notes)

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "notes": [note.to_dict() for note in self.notes],
            "key": self.key,
            "mode": self.mode,
            "tempo": self.tempo,
            "timeSignature": self.time_signature,
            "startString": self.start_string,
            "octaveOffset": self.octave_offset,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Score":
        """
        Restore a score from a record.

        Also accepts the ``{"name": ..., "data": {...}}`` wrapper and the
        ``scaleType`` key in place of ``mode``. Records without notes are
        reparsed from their text.

        Raises:
            ValueError: If the record has neither notes nor text.
        """
        if not isinstance(data, dict):
            raise ValueError("Score record must be a JSON object.")
        record = data["data"] if isinstance(data.get("data"), dict) else data
        raw_notes = record.get("notes") or []
        text = record.get("text") or ""
        if not raw_notes and not text:
            raise ValueError("Score record has neither notes nor text.")

        score = cls(
            text=text,
            key=record.get("key") or "C",
            mode=record.get("mode") or record.get("scaleType") or "major",
            tempo=int(record.get("tempo") or 120),
            time_signature=record.get("timeSignature") or "4/4",
        )
        if isinstance(record.get("startString"), int):
            score.start_string = record["startString"]
        if isinstance(record.get("octaveOffset"), int):
            score.octave_offset = record["octaveOffset"]

        if raw_notes:
            score.notes = [Note.from_dict(item) for item in raw_notes]
        else:
            logger.debug("Score record has no notes; reparsing %d characters of text.", len(text))
            score.reparse()
        return score

    def to_json(self, name: str | None = None, indent: int = 2) -> str:
        """JSON text; with ``name`` the record is wrapped as ``{name, data}``."""
        payload: dict[str, Any] = self.to_dict()
        if name is not None:
            payload = {"name": name, "data": payload}
        return json.dumps(payload, indent=indent, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> "Score":
        return cls.from_dict(json.loads(text))

    def save(self, path: str | Path, name: str | None = DEFAULT_NAME) -> None:
        Path(path).write_text(self.to_json(name=name), encoding="utf-8")

    @classmethod
    def load(cls, path: str | Path) -> "Score":
        return cls.from_json(Path(path).read_text(encoding="utf-8"))
