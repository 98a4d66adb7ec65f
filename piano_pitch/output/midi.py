"""MIDI file export of detected key presses."""

import pretty_midi
from typing import Mapping
from pathlib import Path

from ..core import KeyPresses, PianoKey
from ..core.constants import MIDI_MAX


class MIDIExporter:
    """Export key presses to a Standard MIDI File."""

    def __init__(
        self,
        tempo: float = 120.0,
        instrument_name: str = "Acoustic Grand Piano",
        instrument_program: int = 0,
        min_velocity: int = 20,
    ):
        """
        Initialize MIDIExporter.

        Args:
            tempo: Tempo in BPM
            instrument_name: MIDI instrument name
            instrument_program: MIDI program number (0-127)
            min_velocity: Velocity given to the quietest press
        """
        self.tempo = tempo
        self.instrument_name = instrument_name
        self.instrument_program = instrument_program
        self.min_velocity = min_velocity

    def export(self, key_presses: Mapping[PianoKey, KeyPresses], output_path: str) -> None:
        """
        Export key presses to MIDI file.

        Args:
            key_presses: Presses per piano key
            output_path: Path to output MIDI file
        """
        midi = self.to_pretty_midi(key_presses)

        # Ensure output directory exists
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)

        midi.write(str(output_path))

    def to_pretty_midi(self, key_presses: Mapping[PianoKey, KeyPresses]) -> pretty_midi.PrettyMIDI:
        """Convert key presses to PrettyMIDI object without saving."""
        midi = pretty_midi.PrettyMIDI(initial_tempo=self.tempo)

        instrument = pretty_midi.Instrument(
            program=self.instrument_program,
            name=self.instrument_name,
        )

        loudest = max(
            (press.intensity for presses in key_presses.values() for press in presses),
            default=0.0,
        )

        for key, presses in key_presses.items():
            for press in presses:
                instrument.notes.append(
                    pretty_midi.Note(
                        velocity=self._intensity_to_velocity(press.intensity, loudest),
                        pitch=key.midi_note,
                        start=press.start_secs,
                        end=press.start_secs + press.duration_secs,
                    )
                )

        instrument.notes.sort(key=lambda n: (n.start, n.pitch))
        midi.instruments.append(instrument)
        return midi

    def _intensity_to_velocity(self, intensity: float, loudest: float) -> int:
        """Scale intensity linearly into [min_velocity, 127]."""
        if loudest <= 0:
            return MIDI_MAX
        span = MIDI_MAX - self.min_velocity
        return int(round(self.min_velocity + span * min(intensity / loudest, 1.0)))
