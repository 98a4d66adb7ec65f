"""Piano keys and their musical note spelling (twelve tone equal temperament)."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional
import math

from .constants import (
    A4_FREQUENCY,
    A4_KEY,
    MIDI_KEY_OFFSET,
    PIANO_KEY_MAX,
    PIANO_KEY_MIN,
)

# Key 1 (A0) is nine semitones above C0, so key + 8 counts semitones from C0
_KEY_TO_C0 = 8

_NATURAL_OFFSETS = frozenset({0, 2, 4, 5, 7, 9, 11})


class Accidental(Enum):
    """Enharmonic spelling preference."""

    SHARP = "sharp"
    FLAT = "flat"

    @property
    def semitone_delta(self) -> int:
        """The semitone change represented by this accidental."""
        return 1 if self is Accidental.SHARP else -1

    def symbol(self, unicode: bool = False) -> str:
        if self is Accidental.SHARP:
            return "♯" if unicode else "#"
        return "♭" if unicode else "b"


class NoteLetter(Enum):
    """Note letters with their semitone offset from C."""

    C = 0
    D = 2
    E = 4
    F = 5
    G = 7
    A = 9
    B = 11

    @property
    def semitone(self) -> int:
        return self.value


@dataclass(frozen=True)
class MusicalNote:
    """A spelled note: letter, optional accidental and octave (e.g. C#4)."""

    letter: NoteLetter
    accidental: Optional[Accidental]
    octave: int

    def __str__(self) -> str:
        return self.format()

    def format(self, unicode: bool = False) -> str:
        accidental = self.accidental.symbol(unicode) if self.accidental else ""
        return f"{self.letter.name}{accidental}{self.octave}"

    @property
    def semitone_offset(self) -> int:
        """Semitones this note is away from the C of its octave."""
        delta = self.accidental.semitone_delta if self.accidental else 0
        return self.letter.semitone + delta

    @property
    def semitone(self) -> int:
        """Equal temperament semitone counted from C0."""
        return self.octave * 12 + self.semitone_offset

    def is_same_pitch_as(self, other: "MusicalNote") -> bool:
        """True when both spellings name the same pitch (e.g. A#0 and Bb0)."""
        return self.octave == other.octave and self.semitone_offset == other.semitone_offset

    def as_key(self) -> Optional["PianoKey"]:
        """Piano key sounding this note, or None outside the keyboard."""
        if self.octave > 8:
            return None
        return PianoKey.new(self.semitone - _KEY_TO_C0)


# (note offset from C, preference) -> (letter, accidental)
_SPELLINGS = {
    (1, Accidental.SHARP): (NoteLetter.C, Accidental.SHARP),
    (1, Accidental.FLAT): (NoteLetter.D, Accidental.FLAT),
    (3, Accidental.SHARP): (NoteLetter.D, Accidental.SHARP),
    (3, Accidental.FLAT): (NoteLetter.E, Accidental.FLAT),
    (6, Accidental.SHARP): (NoteLetter.F, Accidental.SHARP),
    (6, Accidental.FLAT): (NoteLetter.G, Accidental.FLAT),
    (8, Accidental.SHARP): (NoteLetter.G, Accidental.SHARP),
    (8, Accidental.FLAT): (NoteLetter.A, Accidental.FLAT),
    (10, Accidental.SHARP): (NoteLetter.A, Accidental.SHARP),
    (10, Accidental.FLAT): (NoteLetter.B, Accidental.FLAT),
}


@dataclass(frozen=True, order=True)
class PianoKey:
    """A physical piano key, 1 (A0) through 88 (C8)."""

    number: int

    def __post_init__(self):
        if not PIANO_KEY_MIN <= self.number <= PIANO_KEY_MAX:
            raise ValueError(f"Piano key must be in 1-88, got {self.number}")

    @classmethod
    def new(cls, number: int) -> Optional["PianoKey"]:
        """Key for ``number``, or None outside 1-88."""
        if PIANO_KEY_MIN <= number <= PIANO_KEY_MAX:
            return cls(number)
        return None

    @classmethod
    def all(cls) -> Iterator["PianoKey"]:
        """All keys from highest to lowest."""
        for number in range(PIANO_KEY_MAX, PIANO_KEY_MIN - 1, -1):
            yield cls(number)

    @classmethod
    def from_concert_pitch(cls, freq: float) -> Optional["PianoKey"]:
        """
        Nearest key to a frequency.

        Args:
            freq: Frequency in Hz

        Returns:
            PianoKey, or None when the frequency rounds outside the keyboard
        """
        if not freq > 0 or math.isinf(freq):
            return None
        number = int(round(12 * math.log2(freq / A4_FREQUENCY))) + A4_KEY
        return cls.new(number)

    @property
    def concert_pitch(self) -> float:
        """Frequency in Hz."""
        return A4_FREQUENCY * 2 ** ((self.number - A4_KEY) / 12)

    @property
    def midi_note(self) -> int:
        """MIDI note number (A0 = 21, C8 = 108)."""
        return self.number + MIDI_KEY_OFFSET

    @property
    def note_offset(self) -> int:
        """Semitone offset from C within the key's octave."""
        return (self.number + _KEY_TO_C0) % 12

    def as_note(self, preference: Accidental = Accidental.SHARP) -> MusicalNote:
        """Spell this key, using ``preference`` for black keys."""
        key_from_c0 = self.number + _KEY_TO_C0
        offset = key_from_c0 % 12
        octave = key_from_c0 // 12

        if offset in _NATURAL_OFFSETS:
            return MusicalNote(NoteLetter(offset), None, octave)

        letter, accidental = _SPELLINGS[(offset, preference)]
        return MusicalNote(letter, accidental, octave)

    @property
    def is_white(self) -> bool:
        return self.note_offset in _NATURAL_OFFSETS

    @property
    def is_black(self) -> bool:
        return not self.is_white

    def __str__(self) -> str:
        return str(self.as_note())
