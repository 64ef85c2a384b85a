"""Scale catalogue: interval tables, scale notes and degree labels."""

from dataclasses import dataclass, field

from fretwork.errors import UnknownScale
from fretwork.pitch import name_to_pitch_class, pitch_class, pitch_class_to_name


@dataclass(frozen=True)
class Scale:
    """
    One catalogue entry.

    Attributes:
        id:             Catalogue key, e.g. "aeolian".
        display_name:   Human-readable name, e.g. "Natural Minor (Aeolian)".
        intervals:      Ascending semitone offsets from the root; first is 0.
        degrees:        Roman-numeral label per interval ("I", "bIII", ...).
        interval_names: Interval quality per interval ("1P", "3m", "4A", ...).
    """

    id: str
    display_name: str
    intervals: tuple[int, ...]
    degrees: tuple[str, ...]
    interval_names: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.intervals)


def _scale(
    scale_id: str,
    display_name: str,
    intervals: list[int],
    degrees: list[str],
    interval_names: list[str],
) -> Scale:
    return Scale(scale_id, display_name, tuple(intervals), tuple(degrees), tuple(interval_names))


# ── Catalogue ────────────────────────────────────────────────────────────────

SCALES: dict[str, Scale] = {
    scale.id: scale
    for scale in (
        # Major modes
        _scale("major", "Major (Ionian)", [0, 2, 4, 5, 7, 9, 11],
               ["I", "II", "III", "IV", "V", "VI", "VII"],
               ["1P", "2M", "3M", "4P", "5P", "6M", "7M"]),
        _scale("dorian", "Dorian", [0, 2, 3, 5, 7, 9, 10],
               ["I", "II", "bIII", "IV", "V", "VI", "bVII"],
               ["1P", "2M", "3m", "4P", "5P", "6M", "7m"]),
        _scale("phrygian", "Phrygian", [0, 1, 3, 5, 7, 8, 10],
               ["I", "bII", "bIII", "IV", "V", "bVI", "bVII"],
               ["1P", "2m", "3m", "4P", "5P", "6m", "7m"]),
        _scale("lydian", "Lydian", [0, 2, 4, 6, 7, 9, 11],
               ["I", "II", "III", "#IV", "V", "VI", "VII"],
               ["1P", "2M", "3M", "4A", "5P", "6M", "7M"]),
        _scale("mixolydian", "Mixolydian", [0, 2, 4, 5, 7, 9, 10],
               ["I", "II", "III", "IV", "V", "VI", "bVII"],
               ["1P", "2M", "3M", "4P", "5P", "6M", "7m"]),
        _scale("aeolian", "Natural Minor (Aeolian)", [0, 2, 3, 5, 7, 8, 10],
               ["I", "II", "bIII", "IV", "V", "bVI", "bVII"],
               ["1P", "2M", "3m", "4P", "5P", "6m", "7m"]),
        _scale("locrian", "Locrian", [0, 1, 3, 5, 6, 8, 10],
               ["I", "bII", "bIII", "IV", "bV", "bVI", "bVII"],
               ["1P", "2m", "3m", "4P", "5d", "6m", "7m"]),
        # Minor variants
        _scale("harmonic-minor", "Harmonic Minor", [0, 2, 3, 5, 7, 8, 11],
               ["I", "II", "bIII", "IV", "V", "bVI", "VII"],
               ["1P", "2M", "3m", "4P", "5P", "6m", "7M"]),
        _scale("melodic-minor", "Melodic Minor", [0, 2, 3, 5, 7, 9, 11],
               ["I", "II", "bIII", "IV", "V", "VI", "VII"],
               ["1P", "2M", "3m", "4P", "5P", "6M", "7M"]),
        # Pentatonic & blues
        _scale("major-pentatonic", "Major Pentatonic", [0, 2, 4, 7, 9],
               ["I", "II", "III", "V", "VI"],
               ["1P", "2M", "3M", "5P", "6M"]),
        _scale("minor-pentatonic", "Minor Pentatonic", [0, 3, 5, 7, 10],
               ["I", "bIII", "IV", "V", "bVII"],
               ["1P", "3m", "4P", "5P", "7m"]),
        _scale("blues", "Blues", [0, 3, 5, 6, 7, 10],
               ["I", "bIII", "IV", "b5", "V", "bVII"],
               ["1P", "3m", "4P", "5d", "5P", "7m"]),
        # Symmetric scales
        _scale("whole-tone", "Whole Tone", [0, 2, 4, 6, 8, 10],
               ["I", "II", "III", "#IV", "#V", "#VI"],
               ["1P", "2M", "3M", "4A", "5A", "6A"]),
        _scale("diminished-hw", "Diminished (Half-Whole)", [0, 1, 3, 4, 6, 7, 9, 10],
               ["I", "bII", "bIII", "III", "b5", "V", "VI", "bVII"],
               ["1P", "2m", "3m", "3M", "5d", "5P", "6M", "7m"]),
        _scale("diminished-wh", "Diminished (Whole-Half)", [0, 2, 3, 5, 6, 8, 9, 11],
               ["I", "II", "bIII", "IV", "b5", "bVI", "VI", "VII"],
               ["1P", "2M", "3m", "4P", "5d", "6m", "6M", "7M"]),
        _scale("chromatic", "Chromatic", [0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11],
               ["I", "bII", "II", "bIII", "III", "IV", "b5", "V", "bVI", "VI", "bVII", "VII"],
               ["1P", "2m", "2M", "3m", "3M", "4P", "5d", "5P", "6m", "6M", "7m", "7M"]),
        # Exotic / world scales
        _scale("phrygian-dominant", "Phrygian Dominant", [0, 1, 4, 5, 7, 8, 10],
               ["I", "bII", "III", "IV", "V", "bVI", "bVII"],
               ["1P", "2m", "3M", "4P", "5P", "6m", "7m"]),
        _scale("hungarian-minor", "Hungarian Minor", [0, 2, 3, 6, 7, 8, 11],
               ["I", "II", "bIII", "#IV", "V", "bVI", "VII"],
               ["1P", "2M", "3m", "4A", "5P", "6m", "7M"]),
        _scale("japanese", "Japanese (In Sen)", [0, 1, 5, 7, 8],
               ["I", "bII", "IV", "V", "bVI"],
               ["1P", "2m", "4P", "5P", "6m"]),
        _scale("arabic", "Arabic (Double Harmonic)", [0, 1, 4, 5, 7, 8, 11],
               ["I", "bII", "III", "IV", "V", "bVI", "VII"],
               ["1P", "2m", "3M", "4P", "5P", "6m", "7M"]),
    )
}

#: Mode names used by score records and the practice UI, mapped to catalogue ids
SCALE_ALIASES: dict[str, str] = {
    "Major": "major",
    "Minor": "aeolian",
    "minor": "aeolian",
    "natural-minor": "aeolian",
    "ionian": "major",
    "HarmonicMinor": "harmonic-minor",
    "MelodicMinor": "melodic-minor",
    "Dorian": "dorian",
    "Phrygian": "phrygian",
    "Lydian": "lydian",
    "Mixolydian": "mixolydian",
    "Locrian": "locrian",
}


def resolve_scale_id(name: str) -> str:
    """
    Map a catalogue id or one of its aliases to the catalogue id.

    Raises:
        UnknownScale: If the name is neither.
    """
    if name in SCALES:
        return name
    if name in SCALE_ALIASES:
        return SCALE_ALIASES[name]
    raise UnknownScale(name)


def get_scale(scale_id: str) -> Scale:
    """Look up a scale by id or alias; raises UnknownScale."""
    return SCALES[resolve_scale_id(scale_id)]


def scale_notes(root: str, scale_id: str) -> list[str]:
    """
    Note names of a scale, in interval order, sharp-spelled.

    Example:
        scale_notes("A", "aeolian") -> ['A', 'B', 'C', 'D', 'E', 'F', 'G']
    """
    root_pc = name_to_pitch_class(root)
    return [pitch_class_to_name(root_pc + interval) for interval in get_scale(scale_id).intervals]


def is_note_in_scale(name: str, notes: list[str]) -> bool:
    """True if the note's pitch class is one of ``notes`` (any spelling)."""
    target = name_to_pitch_class(name)
    return any(name_to_pitch_class(note) == target for note in notes)


def _degree_index(name: str, root: str, scale_id: str) -> int | None:
    offset = pitch_class(name_to_pitch_class(name) - name_to_pitch_class(root))
    intervals = get_scale(scale_id).intervals
    return intervals.index(offset) if offset in intervals else None


def interval_for(name: str, root: str, scale_id: str) -> str | None:
    """
    Interval-quality label of ``name`` relative to ``root`` in the scale.

    Returns:
        The catalogue label (e.g. "3m"), or None when the note is chromatic
        to the scale.
    """
    index = _degree_index(name, root, scale_id)
    return None if index is None else get_scale(scale_id).interval_names[index]


def degree_for(name: str, root: str, scale_id: str) -> str | None:
    """Roman-numeral degree label of ``name``, or None when out of scale."""
    index = _degree_index(name, root, scale_id)
    return None if index is None else get_scale(scale_id).degrees[index]


# ── Scale mixer ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ScaleSelection:
    """
    One scale shown on the fretboard at the same time as others.

    ``enabled_notes`` restricts which of the scale's notes are highlighted;
    None means all of them.
    """

    root: str
    scale_id: str
    enabled_notes: frozenset[str] | None = None

    def notes(self) -> list[str]:
        return scale_notes(self.root, self.scale_id)

    def is_enabled(self, name: str) -> bool:
        if self.enabled_notes is None:
            return True
        return is_note_in_scale(name, list(self.enabled_notes))


@dataclass(frozen=True)
class ScaleMembership:
    """Which selections contain a note and which ones it is the root of."""

    in_scales: list[tuple[int, bool]] = field(default_factory=list)
    root_of: list[int] = field(default_factory=list)


def note_scale_info(name: str, selections: list[ScaleSelection]) -> ScaleMembership:
    """
    Describe how a note relates to several simultaneous scale selections.

    Returns:
        ScaleMembership where ``in_scales`` holds ``(selection_index,
        enabled)`` for every selection containing the note, and ``root_of``
        the indices of selections rooted on it.
    """
    target = name_to_pitch_class(name)
    in_scales = [
        (idx, selection.is_enabled(name))
        for idx, selection in enumerate(selections)
        if is_note_in_scale(name, selection.notes())
    ]
    root_of = [
        idx for idx, selection in enumerate(selections)
        if name_to_pitch_class(selection.root) == target
    ]
    return ScaleMembership(in_scales=in_scales, root_of=root_of)
