"""MidiSink: records playback events on a virtual clock and writes them as MIDI."""

from dataclasses import dataclass
from pathlib import Path

from midiutil import MIDIFile

from fretwork.fretboard import STRING_COUNT
from fretwork.playback import PlaybackController, TimeSignature, VirtualScheduler

# Format 1 layout: track 0 only carries tempo and time signature.
TRACK_CONDUCTOR = 0
TRACK_MELODY = 1   # one channel per guitar string, 0 = high E
TRACK_CLICK = 2

CHANNEL_PERCUSSION = 9  # General MIDI drum channel

# General MIDI percussion keys
CLICK_HIGH = 76  # Hi Wood Block
CLICK_LOW = 77   # Low Wood Block


@dataclass(frozen=True)
class RecordedEvent:
    """A sink call stamped with the scheduler time it happened at."""

    time: float
    pitch: int
    velocity: int
    string: int | None = None  # None for metronome clicks


class MidiSink:
    """
    AudioSink that renders playback into a Standard MIDI File.

    Attach it to a PlaybackController running on the same VirtualScheduler,
    drive the scheduler to completion, then call ``export()``:

        scheduler = VirtualScheduler()
        sink = MidiSink(scheduler, tempo=90)
        controller = PlaybackController(sink, scheduler, bpm=90)
        controller.load(notes, positions)
        controller.play()
        scheduler.run_until_idle()
        sink.export("melody.mid")

    Event times (seconds) become beats as ``seconds * tempo / 60``, so the
    tempo given here should match the controller's bpm.
    """

    DEFAULT_TEMPO = PlaybackController.DEFAULT_BPM
    DEFAULT_VELOCITY = 80      # velocity at gain 1.0
    CLICK_VELOCITY = 100
    NOTE_DURATION = 1.0        # beats
    CLICK_DURATION = 0.25      # beats

    def __init__(
        self,
        scheduler: VirtualScheduler,
        tempo: float = DEFAULT_TEMPO,
        time_signature: str | TimeSignature = "4/4",
        velocity: int = DEFAULT_VELOCITY,
    ) -> None:
        """
        Args:
            scheduler:      Clock the controller runs on.
            tempo:          File tempo in beats per minute.
            time_signature: Written to the conductor track.
            velocity:       Base velocity, scaled by each note's gain.
        """
        self.scheduler = scheduler
        self.tempo = tempo
        self.time_signature = (
            time_signature if isinstance(time_signature, TimeSignature)
            else TimeSignature.parse(time_signature)
        )
        self.velocity = velocity
        self.events: list[RecordedEvent] = []

    # ------------------------------------------------------------------
    # AudioSink
    # ------------------------------------------------------------------

    def play(self, midi: int, string_index: int, *, gain: float) -> None:
        velocity = min(127, round(gain * self.velocity))
        self.events.append(RecordedEvent(self.scheduler.now, midi, velocity, string_index))

    def click(self, high: bool) -> None:
        pitch = CLICK_HIGH if high else CLICK_LOW
        self.events.append(RecordedEvent(self.scheduler.now, pitch, self.CLICK_VELOCITY))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _seconds_to_beats(self, seconds: float) -> float:
        return seconds * (self.tempo / 60.0)

    def _time_signature_power(self) -> int:
        """MIDI stores the denominator as a power of two (4 -> 2)."""
        denominator = self.time_signature.denominator
        if denominator & (denominator - 1):
            raise ValueError(f"MIDI needs a power-of-two denominator, got {denominator}.")
        return denominator.bit_length() - 1

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def note_events(self) -> list[RecordedEvent]:
        return [event for event in self.events if event.string is not None]

    @property
    def click_events(self) -> list[RecordedEvent]:
        return [event for event in self.events if event.string is None]

    def build(self) -> MIDIFile:
        """Assemble the recorded events into a midiutil MIDIFile."""
        midi = MIDIFile(numTracks=3, removeDuplicates=False, deinterleave=False)

        midi.addTempo(TRACK_CONDUCTOR, 0, self.tempo)
        midi.addTimeSignature(
            TRACK_CONDUCTOR, 0, self.time_signature.numerator, self._time_signature_power(), 24
        )
        midi.addTrackName(TRACK_MELODY, 0, "Guitar")
        midi.addTrackName(TRACK_CLICK, 0, "Count-in")

        # recording starts at the first event, not at scheduler time 0
        origin = self.events[0].time if self.events else 0.0
        for event in self.events:
            start = self._seconds_to_beats(event.time - origin)
            if event.string is None:
                midi.addNote(
                    track=TRACK_CLICK,
                    channel=CHANNEL_PERCUSSION,
                    pitch=event.pitch,
                    time=start,
                    duration=self.CLICK_DURATION,
                    volume=event.velocity,
                )
            else:
                midi.addNote(
                    track=TRACK_MELODY,
                    channel=event.string % STRING_COUNT,
                    pitch=event.pitch,
                    time=start,
                    duration=self.NOTE_DURATION,
                    volume=event.velocity,
                )
        return midi

    def export(self, output_path: str | Path) -> None:
        """
        Write the recording as a Standard MIDI File (format 1, 3 tracks).

        Raises:
            OSError: If the output file cannot be opened for writing.
        """
        midi = self.build()
        with open(output_path, "wb") as f:
            midi.writeFile(f)
