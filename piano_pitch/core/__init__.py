"""Core types and constants for Piano Pitch."""

from .waveform import Waveform
from .key import Accidental, MusicalNote, NoteLetter, PianoKey
from .keypress import KeyPress, KeyPresses
from .status import Status, StatusCell, StatusKind
from .exceptions import (
    AnalysisError,
    KeyPressMismatchError,
    SpectrumError,
    UnsupportedWidthError,
)
from .constants import (
    DEFAULT_FFT_WIDTH,
    DEFAULT_STEP_FRACTION,
    DEFAULT_THRESHOLD,
    DEFAULT_WINDOW_FRACTION,
    MAX_IMAGE_DIMENSION,
)

__all__ = [
    "Waveform",
    "Accidental",
    "MusicalNote",
    "NoteLetter",
    "PianoKey",
    "KeyPress",
    "KeyPresses",
    "Status",
    "StatusCell",
    "StatusKind",
    "AnalysisError",
    "KeyPressMismatchError",
    "SpectrumError",
    "UnsupportedWidthError",
    "DEFAULT_FFT_WIDTH",
    "DEFAULT_STEP_FRACTION",
    "DEFAULT_THRESHOLD",
    "DEFAULT_WINDOW_FRACTION",
    "MAX_IMAGE_DIMENSION",
]
