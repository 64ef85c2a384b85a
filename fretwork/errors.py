"""Exception types raised by the fretwork core on programmer errors."""


class FretworkError(Exception):
    """Base class for every error raised by fretwork."""


class UnknownNote(FretworkError, ValueError):
    """A note name that is neither a canonical sharp spelling nor a flat alias."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown note name: {name!r}")
        self.name = name


class UnknownScale(FretworkError, ValueError):
    """A scale id (or alias) that is not in the catalogue."""

    def __init__(self, scale_id: str) -> None:
        super().__init__(f"Unknown scale: {scale_id!r}")
        self.scale_id = scale_id


class OutOfRange(FretworkError, ValueError):
    """A MIDI pitch outside 0..127 passed to an explicit constructor."""

    def __init__(self, midi: int) -> None:
        super().__init__(f"MIDI pitch out of range (0-127): {midi}")
        self.midi = midi
