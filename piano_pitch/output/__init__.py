"""Output layer - MIDI playback and export.

This layer hands detected key presses to the outside world:
- MIDI command encoding
- Output sinks (mido ports, recording, disconnected)
- Real-time note scheduling
- MIDI files
"""

from .commands import (
    AllSoundOff,
    MidiCommand,
    MidiNote,
    NoteOff,
    NoteOn,
    PitchBendChange,
    command_from_bytes,
)
from .sink import (
    MidiSink,
    MidoSink,
    NullSink,
    RecordingSink,
    open_default_sink,
    output_port_names,
)
from .scheduler import NoteScheduler, PlaybackSession, PlaybackState
from .midi import MIDIExporter

__all__ = [
    "AllSoundOff",
    "MidiCommand",
    "MidiNote",
    "NoteOff",
    "NoteOn",
    "PitchBendChange",
    "command_from_bytes",
    "MidiSink",
    "MidoSink",
    "NullSink",
    "RecordingSink",
    "open_default_sink",
    "output_port_names",
    "NoteScheduler",
    "PlaybackSession",
    "PlaybackState",
    "MIDIExporter",
]
