"""MIDI channel messages sent to an output device (channel 1)."""

from dataclasses import dataclass
from typing import Union

from ..core import PianoKey
from ..core.constants import MIDI_KEY_OFFSET, MIDI_MAX, MIDI_MIN

NOTE_OFF_STATUS = 0x80
NOTE_ON_STATUS = 0x90
CONTROL_CHANGE_STATUS = 0xB0
PITCH_BEND_STATUS = 0xE0
ALL_SOUND_OFF_CONTROLLER = 0x78


@dataclass(frozen=True, order=True)
class MidiNote:
    """A 7-bit MIDI note number."""

    number: int

    def __post_init__(self):
        if not MIDI_MIN <= self.number <= MIDI_MAX:
            raise ValueError(f"MIDI notes can only be between 0-127, got {self.number}")

    @classmethod
    def from_piano_key(cls, key: PianoKey) -> "MidiNote":
        return cls(key.number + MIDI_KEY_OFFSET)

    def to_piano_key(self):
        """Piano key for this note, or None outside A0-C8."""
        return PianoKey.new(self.number - MIDI_KEY_OFFSET)


def _check_7bit(name: str, value: int) -> None:
    if not 0 <= value <= 0x7F:
        raise ValueError(f"{name} must be 7-bit (0-127), got {value}")


@dataclass(frozen=True)
class NoteOn:
    note: MidiNote
    velocity: int = 0x7F

    def __post_init__(self):
        _check_7bit("velocity", self.velocity)

    def to_bytes(self) -> bytes:
        return bytes([NOTE_ON_STATUS, self.note.number, self.velocity])


@dataclass(frozen=True)
class NoteOff:
    note: MidiNote
    velocity: int = 0x7F

    def __post_init__(self):
        _check_7bit("velocity", self.velocity)

    def to_bytes(self) -> bytes:
        return bytes([NOTE_OFF_STATUS, self.note.number, self.velocity])


@dataclass(frozen=True)
class AllSoundOff:
    def to_bytes(self) -> bytes:
        return bytes([CONTROL_CHANGE_STATUS, ALL_SOUND_OFF_CONTROLLER, 0])


@dataclass(frozen=True)
class PitchBendChange:
    """14-bit pitch bend, 0x2000 is centre."""

    value: int

    def __post_init__(self):
        if not 0 <= self.value <= 0x3FFF:
            raise ValueError(f"Pitch bend must be 14-bit (0-16383), got {self.value}")

    def to_bytes(self) -> bytes:
        return bytes([PITCH_BEND_STATUS, self.value & 0x7F, (self.value >> 7) & 0x7F])


MidiCommand = Union[NoteOn, NoteOff, AllSoundOff, PitchBendChange]


def command_from_bytes(data: bytes) -> MidiCommand:
    """
    Parse the three bytes of a channel-1 command.

    Raises:
        ValueError: If the bytes are not one of the supported commands
    """
    if len(data) != 3:
        raise ValueError(f"Expected 3 bytes, got {len(data)}")

    status, first, second = data
    if status == NOTE_ON_STATUS:
        return NoteOn(MidiNote(first), second)
    if status == NOTE_OFF_STATUS:
        return NoteOff(MidiNote(first), second)
    if status == CONTROL_CHANGE_STATUS and first == ALL_SOUND_OFF_CONTROLLER:
        return AllSoundOff()
    if status == PITCH_BEND_STATUS:
        return PitchBendChange(first | (second << 7))

    raise ValueError(f"Unsupported MIDI command: {bytes(data).hex()}")
